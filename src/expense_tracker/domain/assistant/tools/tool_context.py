"""Context management for expense assistant tools.

Tool implementations are invoked by the agent runner with only their JSON
arguments, so the services and caller identity they act on are bound here
for the duration of one chat request.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_tracker.domain.credits.services import UserCreditService
    from expense_tracker.domain.expenses.services import ExpenseService, TagService
    from expense_tracker.lib.credit_ledger import CreditLedger

__all__ = [
    "AgentContext",
    "clear_agent_context",
    "get_agent_context",
    "set_agent_context",
]


@dataclass(frozen=True, slots=True)
class AgentContext:
    expense_service: ExpenseService
    tag_service: TagService
    user_id: str
    credit_service: UserCreditService | None = None
    credit_ledger: CreditLedger | None = None

    @property
    def session(self) -> AsyncSession:
        return self.expense_service.repository.session

    @property
    def charges_credits(self) -> bool:
        return self.credit_service is not None and self.credit_ledger is not None


_agent_context: ContextVar[AgentContext | None] = ContextVar("expense_agent_context", default=None)


def set_agent_context(
    expense_service: ExpenseService,
    tag_service: TagService,
    user_id: str,
    credit_service: UserCreditService | None = None,
    credit_ledger: CreditLedger | None = None,
) -> AgentContext:
    """Inject services & user context for subsequent tool calls."""
    context = AgentContext(
        expense_service=expense_service,
        tag_service=tag_service,
        user_id=user_id,
        credit_service=credit_service,
        credit_ledger=credit_ledger,
    )
    _agent_context.set(context)
    return context


def clear_agent_context() -> None:
    _agent_context.set(None)


def get_agent_context() -> AgentContext | None:
    return _agent_context.get()

