from __future__ import annotations

from .base import get_settings

__all__ = ("get_settings",)
