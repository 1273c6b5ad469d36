"""Expenses and tags domain."""

from . import controllers, deps, schemas, services, urls

__all__ = ("controllers", "deps", "schemas", "services", "urls")
