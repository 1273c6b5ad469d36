from .chat_thread import ChatThread
from .credit_transaction import CreditTransaction
from .credit_transaction_type import CreditTransactionType
from .expense import Expense
from .expense_tag import ExpenseTag
from .tag import Tag
from .user_credit import UserCredit

__all__ = (
    "ChatThread",
    "CreditTransaction",
    "CreditTransactionType",
    "Expense",
    "ExpenseTag",
    "Tag",
    "UserCredit",
)
