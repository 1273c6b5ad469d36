from __future__ import annotations

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column


class ChatThread(UUIDAuditBase):
    """A user's assistant conversation.

    The thread id doubles as the agent session id; messages themselves live in
    the agent SDK's session store.
    """

    __tablename__ = "chat_thread"
    __table_args__ = {"comment": "Assistant conversations"}
    __pii_columns__ = {"title", "user_id"}

    title: Mapped[str] = mapped_column(
        String(length=255), nullable=False, default="New Chat")
    # Opaque identifier issued by the identity provider
    user_id: Mapped[str] = mapped_column(
        String(length=255), index=True, nullable=False)
