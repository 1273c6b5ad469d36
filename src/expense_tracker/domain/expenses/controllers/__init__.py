from .expenses import ExpenseController
from .tags import TagController

__all__ = ("ExpenseController", "TagController")
