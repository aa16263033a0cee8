"""Pay period and invoice API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from earnings_engine.api.dependencies import DbSession, PayPeriods, Settlement
from earnings_engine.api.schemas import (
    ErrorResponse,
    InvoiceListResponse,
    InvoiceResponse,
    PayAllResponse,
    PaymentResultResponse,
    PayPeriodCreate,
    PayPeriodResponse,
)

router = APIRouter(tags=["pay-periods"])


# ============================================================================
# Pay periods
# ============================================================================


@router.post(
    "/pay-periods",
    response_model=PayPeriodResponse,
    status_code=status.HTTP_201_CREATED,
)
async def ensure_pay_period(
    db: DbSession,
    pay_periods: PayPeriods,
    payload: PayPeriodCreate,
) -> PayPeriodResponse:
    """Get or create a company's pay period for a month."""
    pay_period = await pay_periods.ensure_pay_period(
        payload.company_id, payload.year, payload.month
    )
    await db.commit()
    return PayPeriodResponse.model_validate(pay_period)


@router.post(
    "/pay-periods/{pay_period_id}/invoices",
    response_model=InvoiceListResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def generate_invoices(
    db: DbSession,
    pay_periods: PayPeriods,
    pay_period_id: Annotated[UUID, Path()],
) -> InvoiceListResponse:
    """Calculate and upsert draft invoices for every eligible employee."""
    invoices = await pay_periods.generate_invoices(pay_period_id)
    pay_period = await pay_periods.get_pay_period(pay_period_id)
    await db.commit()
    return InvoiceListResponse(
        pay_period=PayPeriodResponse.model_validate(pay_period),
        items=[InvoiceResponse.model_validate(inv) for inv in invoices],
    )


@router.get(
    "/pay-periods/{pay_period_id}/invoices",
    response_model=InvoiceListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_invoices(
    pay_periods: PayPeriods,
    pay_period_id: Annotated[UUID, Path()],
) -> InvoiceListResponse:
    """List a period's invoices in creation order."""
    pay_period = await pay_periods.get_pay_period(pay_period_id)
    invoices = await pay_periods.list_invoices(pay_period_id)
    return InvoiceListResponse(
        pay_period=PayPeriodResponse.model_validate(pay_period),
        items=[InvoiceResponse.model_validate(inv) for inv in invoices],
    )


@router.post(
    "/pay-periods/{pay_period_id}/lock",
    response_model=PayPeriodResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def lock_pay_period(
    db: DbSession,
    pay_periods: PayPeriods,
    pay_period_id: Annotated[UUID, Path()],
) -> PayPeriodResponse:
    """Lock a pay period."""
    pay_period = await pay_periods.lock_pay_period(pay_period_id)
    await db.commit()
    return PayPeriodResponse.model_validate(pay_period)


@router.post(
    "/pay-periods/{pay_period_id}/pay",
    response_model=PayAllResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def pay_all_invoices(
    db: DbSession,
    pay_periods: PayPeriods,
    settlement: Settlement,
    pay_period_id: Annotated[UUID, Path()],
) -> PayAllResponse:
    """Pay every outstanding invoice of a period and close it."""
    results = await settlement.pay_all_invoices(pay_period_id)
    pay_period = await pay_periods.get_pay_period(pay_period_id)
    await db.commit()
    return PayAllResponse(
        pay_period=PayPeriodResponse.model_validate(pay_period),
        results=[PaymentResultResponse.model_validate(r) for r in results],
    )


# ============================================================================
# Invoices
# ============================================================================


@router.post(
    "/invoices/{invoice_id}/approve",
    response_model=InvoiceResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_invoice(
    db: DbSession,
    pay_periods: PayPeriods,
    invoice_id: Annotated[UUID, Path()],
) -> InvoiceResponse:
    """Approve a draft invoice."""
    invoice = await pay_periods.approve_invoice(invoice_id)
    await db.commit()
    return InvoiceResponse.model_validate(invoice)


@router.post(
    "/invoices/{invoice_id}/pay",
    response_model=PaymentResultResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def pay_invoice(
    db: DbSession,
    settlement: Settlement,
    invoice_id: Annotated[UUID, Path()],
) -> PaymentResultResponse:
    """Credit an invoice's net amount to the user's wallet."""
    result = await settlement.pay_invoice(invoice_id)
    await db.commit()
    return PaymentResultResponse.model_validate(result)
