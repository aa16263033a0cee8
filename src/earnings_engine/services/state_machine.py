"""Pay period and invoice state machines with transition validation."""

from __future__ import annotations

from enum import Enum


class PayPeriodStatus(str, Enum):
    """Pay period status values."""

    OPEN = "open"
    LOCKED = "locked"
    PAID = "paid"


class InvoiceStatus(str, Enum):
    """Invoice status values."""

    DRAFT = "draft"
    APPROVED = "approved"
    PAID = "paid"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = _value(from_status)
        self.to_status = _value(to_status)
        self.reason = reason
        msg = f"Invalid transition from '{self.from_status}' to '{self.to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


def _value(status: str) -> str:
    return status.value if isinstance(status, Enum) else status


class _StateMachine:
    """Forward-only transition table lookups."""

    VALID_TRANSITIONS: dict[str, list[str]] = {}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(_value(from_status), [])
        return _value(to_status) in allowed

    @classmethod
    def validate_transition(
        cls, from_status: str, to_status: str, reason: str | None = None
    ) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status, reason)

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(_value(current_status), [])


class PayPeriodStateMachine(_StateMachine):
    """State machine for pay period status transitions.

    Allowed transitions:
    - open → locked
    - open → paid (pay-all shortcut)
    - locked → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayPeriodStatus.OPEN.value: [PayPeriodStatus.LOCKED.value, PayPeriodStatus.PAID.value],
        PayPeriodStatus.LOCKED.value: [PayPeriodStatus.PAID.value],
        PayPeriodStatus.PAID.value: [],  # Terminal state
    }

    @classmethod
    def can_generate_invoices(cls, status: str) -> bool:
        """Invoice generation is refused only once the period is paid.

        Callers are expected not to regenerate against a locked period.
        """
        return _value(status) != PayPeriodStatus.PAID.value


class InvoiceStateMachine(_StateMachine):
    """State machine for invoice status transitions.

    Allowed transitions:
    - draft → approved
    - draft → paid ("pay now")
    - approved → paid
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        InvoiceStatus.DRAFT.value: [InvoiceStatus.APPROVED.value, InvoiceStatus.PAID.value],
        InvoiceStatus.APPROVED.value: [InvoiceStatus.PAID.value],
        InvoiceStatus.PAID.value: [],  # Terminal state
    }

    PAYABLE = (InvoiceStatus.DRAFT.value, InvoiceStatus.APPROVED.value)

    @classmethod
    def is_payable(cls, status: str) -> bool:
        return _value(status) in cls.PAYABLE
