"""Expense assistant tools."""

from .agent_factory import get_expense_agent
from .dispatcher import TOOL_REGISTRY, dispatch_tool
from .tool_context import clear_agent_context, get_agent_context, set_agent_context
from .tool_definitions import get_tool_definitions

__all__ = [
    "TOOL_REGISTRY",
    "clear_agent_context",
    "dispatch_tool",
    "get_agent_context",
    "get_expense_agent",
    "get_tool_definitions",
    "set_agent_context",
]
