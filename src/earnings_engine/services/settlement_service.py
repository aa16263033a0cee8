"""Settlement service - paying invoices into user wallets.

Each payout is one atomic unit: the wallet credit, its ledger entry and the
invoice status change either all land or none do.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earnings_engine.clock import Clock, utcnow
from earnings_engine.database import dialect_insert
from earnings_engine.exceptions import (
    InvoiceNotFoundError,
    PayPeriodNotFoundError,
    UserNotFoundError,
)
from earnings_engine.models import Invoice, PayPeriod, User, Wallet, WalletTransaction
from earnings_engine.services.state_machine import (
    InvalidTransitionError,
    InvoiceStateMachine,
    InvoiceStatus,
    PayPeriodStateMachine,
    PayPeriodStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    """Outcome of paying one invoice."""

    invoice_id: UUID
    user_id: UUID
    success: bool
    credited: Decimal | None = None
    error: str | None = None


class SettlementService:
    """Credits wallets from invoices.

    pay_invoice(invoice):
        wallet.balance += net_amount
        wallet.total_earned += net_amount
        append CREDIT transaction (reference = invoice id)
        invoice → paid
    """

    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        self.session = session
        self.clock = clock

    async def pay_invoice(self, invoice_id: UUID) -> PaymentResult:
        """Pay a draft or approved invoice into the user's wallet.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
            InvalidTransitionError: If the invoice is not payable
            UserNotFoundError: If the invoice's user is missing or deleted
        """
        invoice = await self.session.get(Invoice, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)

        if not InvoiceStateMachine.is_payable(invoice.status):
            raise InvalidTransitionError(
                invoice.status,
                InvoiceStatus.PAID,
                "Invoice not payable",
            )

        user = await self.session.get(User, invoice.user_id)
        if user is None or user.is_deleted:
            raise UserNotFoundError(invoice.user_id)

        amount = invoice.net_amount

        async with self.session.begin_nested():
            wallet_id = await self._ensure_wallet(invoice.user_id, invoice.currency)

            await self.session.execute(
                update(Wallet)
                .where(Wallet.wallet_id == wallet_id)
                .values(
                    balance=Wallet.balance + amount,
                    total_earned=Wallet.total_earned + amount,
                )
            )

            await self._append_transaction(
                wallet_id,
                amount,
                description="Invoice payment for period",
                reference=str(invoice_id),
            )

            # Conditional on payable status so a concurrent payout cannot double-credit
            result = await self.session.execute(
                update(Invoice)
                .where(
                    Invoice.invoice_id == invoice_id,
                    Invoice.status.in_(InvoiceStateMachine.PAYABLE),
                )
                .values(status=InvoiceStatus.PAID.value, paid_at=self.clock())
            )
            if result.rowcount == 0:
                raise InvalidTransitionError(
                    invoice.status,
                    InvoiceStatus.PAID,
                    "Invoice was paid concurrently",
                )

        await self.session.refresh(invoice)
        wallet = await self.session.get(Wallet, wallet_id)
        if wallet is not None:
            await self.session.refresh(wallet)

        logger.info("Paid invoice %s: credited %s to user %s", invoice_id, amount, invoice.user_id)
        return PaymentResult(
            invoice_id=invoice_id,
            user_id=invoice.user_id,
            success=True,
            credited=amount,
        )

    async def pay_all_invoices(self, pay_period_id: UUID) -> list[PaymentResult]:
        """Pay every draft/approved invoice of a period, then close it.

        Individual failures are recorded in the results and do not stop the
        rest. The period is marked paid even if some payouts failed.

        Raises:
            PayPeriodNotFoundError: If the period does not exist
            InvalidTransitionError: If the period is already paid
        """
        pay_period = await self.session.get(PayPeriod, pay_period_id)
        if pay_period is None:
            raise PayPeriodNotFoundError(pay_period_id)

        PayPeriodStateMachine.validate_transition(
            pay_period.status,
            PayPeriodStatus.PAID,
            "Pay period already paid",
        )

        result = await self.session.execute(
            select(Invoice)
            .where(
                Invoice.pay_period_id == pay_period_id,
                Invoice.status.in_(InvoiceStateMachine.PAYABLE),
            )
            .order_by(Invoice.created_at, Invoice.invoice_id)
        )
        invoices = list(result.scalars().all())

        results: list[PaymentResult] = []
        for invoice in invoices:
            try:
                results.append(await self.pay_invoice(invoice.invoice_id))
            except Exception as e:
                logger.exception("Failed to pay invoice %s", invoice.invoice_id)
                results.append(
                    PaymentResult(
                        invoice_id=invoice.invoice_id,
                        user_id=invoice.user_id,
                        success=False,
                        error=str(e),
                    )
                )

        pay_period.status = PayPeriodStatus.PAID.value
        pay_period.closed_at = self.clock()
        await self.session.flush()

        paid = sum(1 for r in results if r.success)
        logger.info(
            "Pay period %s closed: %d of %d invoice(s) paid",
            pay_period_id,
            paid,
            len(results),
        )
        return results

    async def _ensure_wallet(self, user_id: UUID, currency: str) -> UUID:
        """Create the user's wallet if absent; return its id."""
        stmt = (
            dialect_insert(self.session, Wallet)
            .values(
                wallet_id=uuid4(),
                user_id=user_id,
                balance=Decimal("0"),
                total_earned=Decimal("0"),
                total_withdrawn=Decimal("0"),
                currency=currency,
            )
            .on_conflict_do_nothing(index_elements=["user_id"])
        )
        await self.session.execute(stmt)

        result = await self.session.execute(
            select(Wallet.wallet_id).where(Wallet.user_id == user_id)
        )
        return result.scalar_one()

    async def _append_transaction(
        self,
        wallet_id: UUID,
        amount: Decimal,
        description: str,
        reference: str,
    ) -> WalletTransaction:
        txn = WalletTransaction(
            wallet_id=wallet_id,
            type="credit",
            amount=amount,
            description=description,
            reference=reference,
        )
        self.session.add(txn)
        await self.session.flush()
        return txn
