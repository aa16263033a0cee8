"""Company and user models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnings_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from earnings_engine.models.wallet import Wallet


class Company(Base, TimestampMixin):
    """Employer account with company-wide pay policy."""

    __tablename__ = "company"

    company_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    subscription_status: Mapped[str] = mapped_column(
        String, nullable=False, default="active"
    )

    # Pay policy
    overtime_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 3), nullable=False, default=Decimal("1.5")
    )
    working_days_per_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    default_expected_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("8.0")
    )

    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "subscription_status IN ('active', 'trial', 'suspended', 'cancelled')",
            name="company_subscription_status_check",
        ),
    )

    # Relationships
    users: Mapped[list[User]] = relationship(back_populates="company")


class User(Base, TimestampMixin):
    """Platform user with an individual pay profile."""

    __tablename__ = "app_user"

    user_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("company.company_id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False, default="employee")

    # Pay profile; NULL falls back to company policy or engine defaults
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    salary_type: Mapped[str] = mapped_column(String, nullable=False, default="hourly")
    monthly_salary: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    expected_hours_per_day: Mapped[Decimal | None] = mapped_column(
        Numeric(6, 2), nullable=True
    )
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "role IN ('owner', 'admin', 'employee', 'freelancer')",
            name="app_user_role_check",
        ),
        CheckConstraint(
            "salary_type IN ('hourly', 'monthly')",
            name="app_user_salary_type_check",
        ),
    )

    # Relationships
    company: Mapped[Company | None] = relationship(back_populates="users")
    wallet: Mapped[Wallet | None] = relationship(back_populates="user")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
