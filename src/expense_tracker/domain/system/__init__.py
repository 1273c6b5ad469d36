"""System domain."""

from . import controllers, schemas

__all__ = ("controllers", "schemas")
