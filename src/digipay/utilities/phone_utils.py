import re
import logging

logger = logging.getLogger(__name__)


def normalize_mobile_number(phone: str) -> str:
    """
    Normalize Indian mobile numbers to the 10-digit national format.

    Rules:
    - Remove every non-digit character
      Example: "98765 43210" -> 9876543210
    - 12 digits starting with 91: drop the country code
      Example: +91 9876543210 -> 9876543210
    - 11 digits starting with 0: drop the trunk prefix
      Example: 09876543210 -> 9876543210

    Anything else is returned cleaned but otherwise untouched; the gateway
    has the final say on whether it is a valid number.
    """
    if not phone:
        return phone

    cleaned_phone = re.sub(r'\D', '', phone)

    if not cleaned_phone:
        logger.warning(f"Phone number has no digits: {phone}")
        return ""

    if len(cleaned_phone) == 12 and cleaned_phone.startswith('91'):
        return cleaned_phone[2:]

    if len(cleaned_phone) == 11 and cleaned_phone.startswith('0'):
        return cleaned_phone[1:]

    if len(cleaned_phone) != 10:
        logger.warning(f"Unexpected mobile number format: {phone} (cleaned: {cleaned_phone})")

    return cleaned_phone
