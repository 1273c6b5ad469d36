"""Tool definitions for the expense assistant.

This module exposes the registered tool handlers to the agent as
FunctionTool objects.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .dispatcher import TOOL_REGISTRY, make_tool_invoker

if TYPE_CHECKING:
    from collections.abc import Sequence

    from agents import FunctionTool

__all__ = ["get_tool_definitions"]


def _build_tool_objects() -> dict[str, FunctionTool]:
    """Create FunctionTool objects for all registered expense tools."""
    from agents import FunctionTool

    return {
        name: FunctionTool(
            name=name,
            description=spec.description,
            params_json_schema=spec.args_model.model_json_schema(),
            on_invoke_tool=make_tool_invoker(name),
            strict_json_schema=False,
        )
        for name, spec in TOOL_REGISTRY.items()
    }


def get_tool_definitions() -> Sequence[FunctionTool]:
    """Return every expense tool, in registration order."""
    return list(_build_tool_objects().values())
