from .credits import CreditController

__all__ = ("CreditController",)
