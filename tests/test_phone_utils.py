import pytest

from digipay.utilities.phone_utils import normalize_mobile_number


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("9876543210", "9876543210"),
        ("98765 43210", "9876543210"),
        ("+91 98765 43210", "9876543210"),
        ("09876543210", "9876543210"),
        ("12345", "12345"),
        ("", ""),
        ("n/a", ""),
    ],
)
def test_normalize_mobile_number(raw, expected):
    assert normalize_mobile_number(raw) == expected
