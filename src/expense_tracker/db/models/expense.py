from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.base import BigIntAuditBase
from sqlalchemy import Integer, String
from sqlalchemy.ext.associationproxy import AssociationProxy, association_proxy
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .expense_tag import ExpenseTag
    from .tag import Tag


class Expense(BigIntAuditBase):
    """Expense entry. ``amount`` is stored in cents."""

    __tablename__ = "expense"
    __table_args__ = {"comment": "Expenses recorded by users"}
    __pii_columns__ = {"title", "amount", "user_id"}

    title: Mapped[str] = mapped_column(
        String(length=100), index=True, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(length=255), index=True, nullable=False)

    # -----------
    # ORM Relationships
    # ------------

    expense_tags: Mapped[list[ExpenseTag]] = relationship(
        back_populates="expense", lazy="selectin", uselist=True, cascade="all, delete-orphan"
    )
    tags: AssociationProxy[list[Tag]] = association_proxy(
        "expense_tags", "tag",
    )
