"""Services for the expense assistant domain."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast
from uuid import UUID

import structlog
from advanced_alchemy.filters import OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from advanced_alchemy.service import SQLAlchemyAsyncRepositoryService
from agents import ItemHelpers, Runner, SQLiteSession
from openai.types.responses import ResponseTextDeltaEvent

from expense_tracker.db import models as m
from expense_tracker.db.models import CreditTransactionType
from expense_tracker.lib.exceptions import InsufficientCreditsException, NotFoundOrForbiddenError

from .tools.agent_factory import get_expense_agent
from .tools.tool_context import clear_agent_context, set_agent_context

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from expense_tracker.domain.credits.services import UserCreditService
    from expense_tracker.domain.expenses.services import ExpenseService, TagService
    from expense_tracker.lib.credit_ledger import ConsumeResult, CreditLedger

__all__ = ("ChatThreadService", "ExpenseAgentService")

logger = structlog.get_logger()

DEFAULT_THREAD_TITLE = "New Chat"
THREAD_TITLE_MAX_LENGTH = 50


def title_from_message(message: str) -> str:
    """First line of the opening message, shortened to fit a sidebar."""
    first_line = message.strip().splitlines()[0].strip() if message.strip() else ""
    if not first_line:
        return DEFAULT_THREAD_TITLE
    if len(first_line) > THREAD_TITLE_MAX_LENGTH:
        return first_line[: THREAD_TITLE_MAX_LENGTH - 3].rstrip() + "..."
    return first_line


class ChatThreadService(SQLAlchemyAsyncRepositoryService[m.ChatThread]):
    """Handles database operations for assistant conversations."""

    class Repository(SQLAlchemyAsyncRepository[m.ChatThread]):
        """Chat Thread SQLAlchemy Repository."""

        model_type = m.ChatThread

    repository_type = Repository

    async def list_threads(self, user_id: str) -> list[m.ChatThread]:
        """The user's threads, most recently active first."""
        results = await self.list(
            m.ChatThread.user_id == user_id,
            OrderBy(field_name="updated_at", sort_order="desc"),
        )
        return list(results)

    async def create_thread(self, user_id: str, title: str | None = None) -> m.ChatThread:
        return await self.create({"user_id": user_id, "title": title or DEFAULT_THREAD_TITLE})

    async def get_owned_thread(self, thread_id: UUID | str, user_id: str) -> m.ChatThread:
        """Resolve a thread id for its owner.

        Raises:
            NotFoundOrForbiddenError: If the id is malformed, unknown or someone else's
        """
        try:
            thread_uuid = thread_id if isinstance(thread_id, UUID) else UUID(str(thread_id))
        except ValueError:
            thread = None
        else:
            thread = await self.get_one_or_none(m.ChatThread.id == thread_uuid, m.ChatThread.user_id == user_id)
        if thread is None:
            raise NotFoundOrForbiddenError(
                detail="Thread not found or you do not have permission to access it")
        return thread

    async def rename_thread(self, thread_id: UUID | str, user_id: str, title: str) -> m.ChatThread:
        thread = await self.get_owned_thread(thread_id, user_id)
        thread.title = title
        return await self.update(thread)

    async def touch(self, thread: m.ChatThread) -> m.ChatThread:
        """Bump ``updated_at`` so the thread sorts as most recent."""
        thread.updated_at = datetime.now(UTC)
        return await self.update(thread)

    async def delete_thread_for_user(self, thread_id: UUID | str, user_id: str) -> m.ChatThread:
        thread = await self.get_owned_thread(thread_id, user_id)
        return await self.delete(thread.id)


class ExpenseAgentService:
    """Runs the expense assistant with SQLite-backed conversation history.

    Each chat message costs one ``message`` credit; each tool the agent calls
    costs one ``function_call`` credit, charged by the tool dispatcher.
    Conversations are owned ``ChatThread`` rows whose id is the agent session id.
    """

    def __init__(
        self,
        expense_service: ExpenseService,
        tag_service: TagService,
        credit_service: UserCreditService,
        credit_ledger: CreditLedger,
        thread_service: ChatThreadService,
        session_db_path: str = "conversations.db",
        max_turns: int = 20,
    ) -> None:
        """Initialize the service with required dependencies.

        Args:
            expense_service: Service for expense operations
            tag_service: Service for tag operations
            credit_service: Service for credit rows and transactions
            credit_ledger: Quota rules applied to messages and tool calls
            thread_service: Service for the user's conversation threads
            session_db_path: Path to SQLite database for storing conversations
            max_turns: Maximum agent turns per message
        """
        self.expense_service = expense_service
        self.tag_service = tag_service
        self.credit_service = credit_service
        self.credit_ledger = credit_ledger
        self.thread_service = thread_service
        self.session_db_path = session_db_path
        self.max_turns = max_turns

    def _open_session(self, session_id: str) -> SQLiteSession:
        return SQLiteSession(session_id, self.session_db_path)

    async def consume_message_credit(self, user_id: str) -> ConsumeResult:
        """Charge one message credit and persist it before the agent runs.

        Raises:
            InsufficientCreditsException: If the daily message quota is used up
        """
        result = await self.credit_ledger.consume(
            user_id,
            CreditTransactionType.MESSAGE,
            self.credit_service,
            description="Chat message",
        )
        await self.credit_service.repository.session.commit()
        return result

    async def _start_turn(
        self,
        user_id: str,
        message: str,
        session_id: str | None,
    ) -> tuple[m.ChatThread, ConsumeResult]:
        """Check thread ownership, charge the message, then open or bump the thread.

        A foreign or unknown ``session_id`` is refused before any credit is spent.
        """
        thread = await self.thread_service.get_owned_thread(session_id, user_id) if session_id else None
        consumed = await self.consume_message_credit(user_id)
        if thread is None:
            thread = await self.thread_service.create_thread(user_id, title_from_message(message))
        else:
            thread = await self.thread_service.touch(thread)
        await self.thread_service.repository.session.commit()
        return thread, consumed

    def _bind_tools(self, user_id: str) -> None:
        set_agent_context(
            self.expense_service,
            self.tag_service,
            user_id,
            credit_service=self.credit_service,
            credit_ledger=self.credit_ledger,
        )

    async def chat_with_agent(
        self,
        user_id: str,
        message: str,
        session_id: str | None = None,
    ) -> tuple[str, str]:
        """Send a message to the expense agent.

        Args:
            user_id: ID of the user sending the message
            message: The message to send to the agent
            session_id: Optional thread id. If None, a new thread is created

        Returns:
            The agent's final output and the session id used

        Raises:
            InsufficientCreditsException: If the user has no message credits left today
            NotFoundOrForbiddenError: If ``session_id`` is not one of the user's threads
        """
        thread, _ = await self._start_turn(user_id, message, session_id)
        session_id = str(thread.id)

        session = self._open_session(session_id)
        self._bind_tools(user_id)
        try:
            result = await Runner.run(
                get_expense_agent(),
                message,
                session=session,
                max_turns=self.max_turns,
            )
        finally:
            clear_agent_context()
            session.close()

        return str(result.final_output), session_id

    async def stream_chat_with_agent(
        self,
        user_id: str,
        message: str,
        session_id: str | None = None,
        *,
        history_limit: int = 10,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Stream agent responses as structured events.

        Args:
            user_id: ID of the user sending the message.
            message: Message to send to the agent.
            session_id: Optional existing thread id.
            history_limit: Maximum number of history items to include in the
                final history event.

        Yields:
            Dictionaries containing ``event`` and ``data`` keys suitable for
            conversion into Server-Sent Events.
        """
        try:
            thread, consumed = await self._start_turn(user_id, message, session_id)
        except InsufficientCreditsException as exc:
            yield {
                "event": "insufficient_credits",
                "data": {
                    "message": exc.detail,
                    "error_code": "INSUFFICIENT_CREDITS",
                    "credit_type": exc.credit_type.value,
                    "credits_remaining": exc.remaining,
                },
            }
            return
        except NotFoundOrForbiddenError as exc:
            yield {"event": "error", "data": {"message": exc.detail}}
            return

        session_id = str(thread.id)
        yield {
            "event": "session_initialized",
            "data": {"session_id": session_id, "title": thread.title, "messages_remaining": consumed.remaining},
        }

        session = self._open_session(session_id)
        self._bind_tools(user_id)
        last_message: str | None = None
        last_message_chunks: list[str] = []

        try:
            stream = Runner.run_streamed(
                get_expense_agent(),
                message,
                session=session,
                max_turns=self.max_turns,
            )
            async for event in stream.stream_events():
                payloads, message_update = self._dispatch_stream_event(event, last_message_chunks)
                if message_update is not None:
                    last_message = message_update
                for payload in payloads:
                    yield payload

            yield {
                "event": "completed",
                "data": {
                    "final_message": last_message
                    if last_message is not None
                    else ("".join(last_message_chunks) if last_message_chunks else None),
                },
            }
        except Exception as exc:
            logger.exception("Agent streaming failed", user_id=user_id, session_id=session_id, error=str(exc))
            yield {
                "event": "error",
                "data": {
                    "message": f"Agent streaming failed: {exc!s}",
                },
            }
            return
        finally:
            clear_agent_context()
            session.close()

        history = await self.get_session_history(session_id=session_id, limit=history_limit)
        yield {
            "event": "history",
            "data": history,
        }

    def _dispatch_stream_event(
        self,
        event: Any,
        last_message_chunks: list[str],
    ) -> tuple[list[dict[str, Any]], str | None]:
        if event.type == "raw_response_event":
            return self._handle_raw_response_event(event, last_message_chunks)
        if event.type == "run_item_stream_event":
            return self._handle_run_item_stream_event(event)
        return [], None

    @staticmethod
    def _handle_raw_response_event(
        event: Any,
        last_message_chunks: list[str],
    ) -> tuple[list[dict[str, Any]], str | None]:
        event_data = getattr(event, "data", None)
        if not isinstance(event_data, ResponseTextDeltaEvent) or not event_data.delta:
            return [], None

        last_message_chunks.append(event_data.delta)
        return (
            [{"event": "message_delta", "data": {"content": event_data.delta}}],
            "".join(last_message_chunks),
        )

    @staticmethod
    def _handle_run_item_stream_event(event: Any) -> tuple[list[dict[str, Any]], str | None]:
        item = event.item
        item_type = getattr(item, "type", "")

        if item_type == "tool_call_item":
            raw_item = getattr(item, "raw_item", None)
            return (
                [{
                    "event": "tool_call",
                    "data": {
                        "tool_name": getattr(raw_item, "name", ""),
                        "arguments": getattr(raw_item, "arguments", None),
                    },
                }],
                None,
            )

        if item_type == "tool_call_output_item":
            return [{"event": "tool_result", "data": {"output": getattr(item, "output", None)}}], None

        if item_type == "message_output_item":
            message_output = ItemHelpers.text_message_output(cast("Any", item))
            return [{"event": "message", "data": {"content": message_output}}], message_output

        return [], None

    async def get_session_history(
        self,
        session_id: str,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Get conversation history for a session.

        Args:
            session_id: The session ID to get history for
            limit: Maximum number of items to retrieve (None for all)

        Returns:
            List of conversation items in chronological order
        """
        session = self._open_session(session_id)
        try:
            items = await session.get_items(limit=limit)
        finally:
            session.close()
        return [dict(item) for item in items]

    async def clear_session_history(self, session_id: str) -> None:
        session = self._open_session(session_id)
        try:
            await session.clear_session()
        finally:
            session.close()
