"""Typed errors raised by the earnings engine.

State-transition failures live with the state machines in
``earnings_engine.services.state_machine``.
"""

from __future__ import annotations

from uuid import UUID


class NotFoundError(LookupError):
    """Raised when a referenced entity does not exist."""

    entity_type = "entity"

    def __init__(self, entity_id: UUID | str, reason: str | None = None):
        self.entity_id = entity_id
        self.reason = reason
        msg = f"{self.entity_type.replace('_', ' ').capitalize()} {entity_id} not found"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class UserNotFoundError(NotFoundError):
    """Raised when a user is missing or has been deleted."""

    entity_type = "user"


class PayPeriodNotFoundError(NotFoundError):
    """Raised when a pay period is missing."""

    entity_type = "pay_period"


class InvoiceNotFoundError(NotFoundError):
    """Raised when an invoice is missing."""

    entity_type = "invoice"
