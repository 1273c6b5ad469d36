"""Controllers for the assistant domain."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Annotated, Any
from uuid import UUID  # noqa: TC003

import structlog
from litestar import Controller, Response, delete, get, post, put
from litestar.di import Provide
from litestar.params import Dependency, Parameter
from litestar.response import ServerSentEvent, ServerSentEventMessage
from litestar.status_codes import HTTP_200_OK, HTTP_429_TOO_MANY_REQUESTS

from expense_tracker.domain.accounts.schemas import AuthenticatedUser, Message
from expense_tracker.domain.assistant import urls
from expense_tracker.domain.assistant.deps import provide_chat_thread_service, provide_expense_agent_service
from expense_tracker.domain.assistant.schemas import (
    ChatRequest,
    ChatResponse,
    ChatThreadCreate,
    ChatThreadList,
    ChatThreadModel,
    ChatThreadUpdate,
    SessionHistoryResponse,
)
from expense_tracker.domain.assistant.services import ChatThreadService, ExpenseAgentService
from expense_tracker.domain.credits.deps import provide_credit_ledger, provide_user_credit_service
from expense_tracker.domain.credits.schemas import InsufficientCreditsResponse
from expense_tracker.domain.expenses.deps import provide_expense_service, provide_tag_service
from expense_tracker.lib.exceptions import InsufficientCreditsException

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = structlog.get_logger()

__all__ = ("AssistantController",)


def _serialize_payload(payload: Any) -> str:
    if isinstance(payload, bytes):
        return payload.decode()
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, default=str)


class AssistantController(Controller):
    """Chat with the expense assistant."""

    tags = ["Assistant"]

    dependencies = {
        "expense_service": Provide(provide_expense_service),
        "tag_service": Provide(provide_tag_service),
        "credit_service": Provide(provide_user_credit_service),
        "credit_ledger": Provide(provide_credit_ledger),
        "thread_service": Provide(provide_chat_thread_service),
        "agent_service": Provide(provide_expense_agent_service),
    }

    @post(path=urls.CHAT_BASE, operation_id="chat", status_code=HTTP_200_OK)
    async def chat(
        self,
        current_user: AuthenticatedUser,
        data: ChatRequest,
        agent_service: Annotated[ExpenseAgentService, Dependency(skip_validation=True)],
    ) -> Response[ChatResponse | InsufficientCreditsResponse]:
        """Send the last user message to the assistant and return its reply."""
        user_message = data.last_user_message()
        if not user_message:
            return Response(ChatResponse(status="error", message="No user message found in messages"))

        try:
            reply, session_id = await agent_service.chat_with_agent(
                user_id=current_user.id,
                message=user_message,
                session_id=data.session_id,
            )
        except InsufficientCreditsException as e:
            return Response(
                InsufficientCreditsResponse(
                    error=e.detail,
                    credit_type=e.credit_type.value,
                    credits_remaining=e.remaining,
                ),
                status_code=HTTP_429_TOO_MANY_REQUESTS,
            )

        history = await agent_service.get_session_history(session_id=session_id, limit=10)
        return Response(
            ChatResponse(status="success", message=reply, session_id=session_id, agent_response=history),
        )

    @post(path=urls.CHAT_STREAM, operation_id="chat_stream")
    async def chat_stream(
        self,
        current_user: AuthenticatedUser,
        data: ChatRequest,
        agent_service: Annotated[ExpenseAgentService, Dependency(skip_validation=True)],
    ) -> ServerSentEvent:
        """Stream assistant responses as Server-Sent Events."""
        user_message = data.last_user_message()

        async def event_stream() -> AsyncGenerator[ServerSentEventMessage, None]:
            if not user_message:
                yield ServerSentEventMessage(
                    event="error",
                    data=_serialize_payload({
                        "status": "error",
                        "message": "No user message found in messages",
                    }),
                )
                return

            try:
                async for payload in agent_service.stream_chat_with_agent(
                    user_id=current_user.id,
                    message=user_message,
                    session_id=data.session_id,
                ):
                    yield ServerSentEventMessage(
                        event=payload.get("event", "message"),
                        data=_serialize_payload(payload.get("data")),
                    )
            except Exception as exc:
                logger.exception("Assistant streaming failed", error=str(exc), user_id=current_user.id)
                yield ServerSentEventMessage(
                    event="error",
                    data=_serialize_payload({
                        "status": "error",
                        "message": f"Failed to stream assistant response: {exc!s}",
                    }),
                )

        return ServerSentEvent(event_stream())

    @get(path=urls.CHAT_THREADS, operation_id="list_chat_threads")
    async def list_threads(
        self,
        current_user: AuthenticatedUser,
        thread_service: ChatThreadService,
    ) -> ChatThreadList:
        """List the caller's conversations, most recently active first."""
        threads = await thread_service.list_threads(current_user.id)
        return ChatThreadList(
            threads=[thread_service.to_schema(thread, schema_type=ChatThreadModel) for thread in threads],
            count=len(threads),
        )

    @post(path=urls.CHAT_THREADS, operation_id="create_chat_thread")
    async def create_thread(
        self,
        current_user: AuthenticatedUser,
        data: ChatThreadCreate,
        thread_service: ChatThreadService,
    ) -> ChatThreadModel:
        thread = await thread_service.create_thread(current_user.id, data.title)
        return thread_service.to_schema(thread, schema_type=ChatThreadModel)

    @put(path=urls.CHAT_THREAD_DETAIL, operation_id="rename_chat_thread")
    async def rename_thread(
        self,
        current_user: AuthenticatedUser,
        thread_id: UUID,
        data: ChatThreadUpdate,
        thread_service: ChatThreadService,
    ) -> ChatThreadModel:
        thread = await thread_service.rename_thread(thread_id, current_user.id, data.title)
        return thread_service.to_schema(thread, schema_type=ChatThreadModel)

    @delete(path=urls.CHAT_THREAD_DETAIL, operation_id="delete_chat_thread", status_code=HTTP_200_OK)
    async def delete_thread(
        self,
        current_user: AuthenticatedUser,
        thread_id: UUID,
        thread_service: ChatThreadService,
        agent_service: Annotated[ExpenseAgentService, Dependency(skip_validation=True)],
    ) -> Message:
        """Delete a conversation along with its stored messages."""
        await thread_service.delete_thread_for_user(thread_id, current_user.id)
        await agent_service.clear_session_history(session_id=str(thread_id))
        return Message(message="Thread deleted successfully")

    @get(path=urls.CHAT_THREAD_MESSAGES, operation_id="get_chat_history")
    async def get_thread_messages(
        self,
        thread_id: UUID,
        current_user: AuthenticatedUser,
        thread_service: ChatThreadService,
        agent_service: Annotated[ExpenseAgentService, Dependency(skip_validation=True)],
        limit: Annotated[int | None, Parameter(query="limit", ge=1, le=500)] = 50,
    ) -> SessionHistoryResponse:
        """Get conversation history for one of the caller's threads."""
        thread = await thread_service.get_owned_thread(thread_id, current_user.id)
        history = await agent_service.get_session_history(session_id=str(thread.id), limit=limit)
        return SessionHistoryResponse(session_id=str(thread.id), history=history)

    @delete(path=urls.CHAT_THREAD_MESSAGES, operation_id="clear_chat_history", status_code=HTTP_200_OK)
    async def clear_thread_messages(
        self,
        thread_id: UUID,
        current_user: AuthenticatedUser,
        thread_service: ChatThreadService,
        agent_service: Annotated[ExpenseAgentService, Dependency(skip_validation=True)],
    ) -> Message:
        thread = await thread_service.get_owned_thread(thread_id, current_user.id)
        await agent_service.clear_session_history(session_id=str(thread.id))
        return Message(message=f"Thread {thread.id} history cleared successfully")
