from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.base import BigIntAuditBase
from sqlalchemy import String, UniqueConstraint
from sqlalchemy.ext.associationproxy import AssociationProxy, association_proxy
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .expense import Expense
    from .expense_tag import ExpenseTag


class Tag(BigIntAuditBase):
    __tablename__ = "tag"
    __table_args__ = (
        UniqueConstraint("user_id", "tag_name", name="uq_tag_user_name"),
        {"comment": "Tags for expenses"},
    )

    tag_name: Mapped[str] = mapped_column(
        String(length=30), index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(length=255), index=True, nullable=False)

    tag_expenses: Mapped[list[ExpenseTag]] = relationship(
        back_populates="tag", lazy="selectin", uselist=True, cascade="all, delete-orphan"
    )
    expenses: AssociationProxy[list[Expense]] = association_proxy(
        "tag_expenses", "expense",
    )
