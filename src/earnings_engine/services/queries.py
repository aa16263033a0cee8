"""Directory lookups shared by the lifecycle services and the scheduler."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnings_engine.models import Company, User

PAYROLL_ROLES = ("employee", "admin", "freelancer")
ATTENDANCE_ROLES = ("employee", "admin")


async def list_active_companies(session: AsyncSession) -> list[UUID]:
    """Companies with an active subscription that have not been deleted."""
    result = await session.execute(
        select(Company.company_id)
        .where(
            Company.subscription_status == "active",
            Company.deleted_at.is_(None),
        )
        .order_by(Company.created_at, Company.company_id)
    )
    return list(result.scalars().all())


async def list_eligible_employees(
    session: AsyncSession,
    company_id: UUID,
    roles: Iterable[str] = PAYROLL_ROLES,
) -> list[User]:
    """Non-deleted users of a company holding one of the given roles."""
    result = await session.execute(
        select(User)
        .where(
            User.company_id == company_id,
            User.role.in_(list(roles)),
            User.deleted_at.is_(None),
        )
        .order_by(User.created_at, User.user_id)
    )
    return list(result.scalars().all())
