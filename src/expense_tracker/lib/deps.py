"""Provider factories for services and list filters."""

from __future__ import annotations

from advanced_alchemy.extensions.litestar.providers import (
    create_filter_dependencies,
    create_service_provider,
)

__all__ = (
    "create_filter_dependencies",
    "create_service_provider",
)
