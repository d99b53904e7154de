from enum import Enum


class TransactionPhase(str, Enum):
    NONE = "NONE"          # no transaction, form is editable
    ACTIVE = "ACTIVE"      # INITIATED / PENDING
    TERMINAL = "TERMINAL"  # absorbing until a new payment is started
