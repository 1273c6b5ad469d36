"""Agent factory for creating the expense assistant."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from expense_tracker.config import get_settings

from .system_instructions import EXPENSE_SYSTEM_INSTRUCTIONS
from .tool_definitions import get_tool_definitions

if TYPE_CHECKING:
    from agents import Agent, Tool

__all__ = ["get_expense_agent"]


def _get_model() -> Any:
    """Get the configured LiteLLM model instance."""
    from agents.extensions.models.litellm_model import LitellmModel

    settings = get_settings()

    return LitellmModel(
        model=settings.ai.MODEL,
        api_key=settings.ai.API_KEY or None,
        base_url=settings.ai.BASE_URL or None,
    )


def get_expense_agent() -> Agent:
    """Create and return the expense agent with every expense tool attached."""
    from agents import Agent

    tools = cast("list[Tool]", list(get_tool_definitions()))
    return Agent(
        name="ExpenseAssistant",
        instructions=EXPENSE_SYSTEM_INSTRUCTIONS,
        model=_get_model(),
        tools=tools,
    )
