from .system import SystemController

__all__ = ("SystemController",)
