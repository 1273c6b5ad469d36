import enum


class CreditTransactionType(enum.Enum):
    """Kinds of credit ledger events."""
    FUNCTION_CALL = "function_call"
    MESSAGE = "message"
    RESET = "reset"
    UPGRADE = "upgrade"

    @property
    def is_consumable(self) -> bool:
        return self in (CreditTransactionType.FUNCTION_CALL, CreditTransactionType.MESSAGE)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")
