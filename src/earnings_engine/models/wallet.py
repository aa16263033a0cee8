"""Wallet and append-only wallet ledger models."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnings_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from earnings_engine.models.company import User


class Wallet(Base, TimestampMixin):
    """Per-user balance, created lazily on first payout."""

    __tablename__ = "wallet"

    wallet_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    total_earned: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    total_withdrawn: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="BDT")

    # Relationships
    user: Mapped[User] = relationship(back_populates="wallet")
    transactions: Mapped[list[WalletTransaction]] = relationship(back_populates="wallet")


class WalletTransaction(Base, TimestampMixin):
    """Ledger entry. Rows are only ever inserted."""

    __tablename__ = "wallet_transaction"

    wallet_transaction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    wallet_id: Mapped[UUID] = mapped_column(
        ForeignKey("wallet.wallet_id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    reference: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    __table_args__ = (
        CheckConstraint("type IN ('credit', 'debit')", name="wallet_transaction_type_check"),
        CheckConstraint("amount >= 0", name="wallet_transaction_amount_check"),
    )

    # Relationships
    wallet: Mapped[Wallet] = relationship(back_populates="transactions")
