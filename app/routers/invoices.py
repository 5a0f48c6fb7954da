"""
InvoiceFlow - Invoices Router

API endpoints for invoice management, PDF export and email delivery.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_user
from app.models.activity import EmailStatus
from app.models.company import AgencyEmailSettings, CompanyInfo
from app.models.invoice import Invoice, InvoiceStatus
from app.models.user import User, UserPlan
from app.schemas.common import MessageResponse
from app.schemas.invoice import (
    InvoiceCreateRequest,
    InvoiceUpdateRequest,
    InvoiceStatusUpdate,
    InvoiceSendRequest,
    InvoiceResponse,
    InvoiceListResponse,
    InvoiceSendResponse,
)
from app.services.agency_service import AgencyService, advance_date
from app.services.email_service import EmailService
from app.services.invoice_pdf_service import render_invoice_pdf
from app.services.invoice_service import InvoiceService
from app.services.payment_method_service import PaymentMethodService
from app.utils.error_handling import PlanRequiredException


router = APIRouter()


def invoice_to_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse.model_validate(invoice)


async def _get_invoice_or_404(db: AsyncSession, invoice_id: UUID, user: User) -> Invoice:
    invoice = await InvoiceService(db).get_invoice_by_id(invoice_id, user.id)
    if not invoice:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found",
        )
    return invoice


async def _schedule_recurrence(db: AsyncSession, invoice: Invoice, user: User) -> None:
    """Create the recurring template for an invoice flagged as recurring."""
    first_run = advance_date(invoice.due_date or date.today(), invoice.recurring_frequency)
    await AgencyService(db).create_recurring(
        user_id=user.id,
        source_invoice_id=invoice.id,
        frequency=invoice.recurring_frequency,
        start_date=first_run,
        end_date=invoice.recurring_end_date,
    )


@router.get(
    "",
    response_model=InvoiceListResponse,
    summary="List invoices",
)
async def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Search number, client name or email"),
    client_email: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """List the caller's invoices, newest first."""
    invoices, total = await InvoiceService(db).get_invoices_for_user(
        current_user.id,
        status=status_filter,
        search=search,
        client_email=client_email,
        page=page,
        per_page=per_page,
    )

    return InvoiceListResponse(
        invoices=[invoice_to_response(inv) for inv in invoices],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
    description="Create an invoice. Free plan accounts are limited per calendar month.",
)
async def create_invoice(
    request: InvoiceCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Create a new invoice."""
    if request.is_recurring and current_user.effective_plan != UserPlan.AGENCY:
        raise PlanRequiredException(
            required_plan=UserPlan.AGENCY.value,
            current_plan=current_user.effective_plan.value,
        )

    data = request.model_dump(exclude={"items"})
    invoice_service = InvoiceService(db)

    try:
        invoice = await invoice_service.create_invoice(
            user=current_user,
            items=[item.model_dump() for item in request.items],
            **data,
        )
        if invoice.is_recurring:
            await _schedule_recurrence(db, invoice, current_user)
            await db.refresh(invoice)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return invoice_to_response(invoice)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Get invoice",
)
async def get_invoice(
    invoice_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    invoice = await _get_invoice_or_404(db, invoice_id, current_user)
    return invoice_to_response(invoice)


@router.put(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Update invoice",
    description="Update invoice fields. Sending `items` replaces all line items.",
)
async def update_invoice(
    invoice_id: UUID,
    request: InvoiceUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Update an invoice and recompute its totals."""
    invoice = await _get_invoice_or_404(db, invoice_id, current_user)

    data = request.model_dump(exclude_unset=True, exclude={"items"})
    items = [item.model_dump() for item in request.items] if request.items is not None else None

    try:
        invoice = await InvoiceService(db).update_invoice(invoice, items=items, **data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return invoice_to_response(invoice)


@router.delete(
    "/{invoice_id}",
    response_model=MessageResponse,
    summary="Delete invoice",
)
async def delete_invoice(
    invoice_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    invoice = await _get_invoice_or_404(db, invoice_id, current_user)
    await InvoiceService(db).delete_invoice(invoice)
    return MessageResponse(message="Invoice deleted successfully")


@router.patch(
    "/{invoice_id}/status",
    response_model=InvoiceResponse,
    summary="Change invoice status",
    description="Mark an invoice as draft, sent, paid or overdue.",
)
async def update_invoice_status(
    invoice_id: UUID,
    request: InvoiceStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    invoice = await _get_invoice_or_404(db, invoice_id, current_user)
    invoice = await InvoiceService(db).update_status(invoice, request.status)
    return invoice_to_response(invoice)


@router.post(
    "/{invoice_id}/duplicate",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate invoice",
)
async def duplicate_invoice(
    invoice_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Copy an invoice as a new draft with a fresh number."""
    invoice = await _get_invoice_or_404(db, invoice_id, current_user)

    try:
        copy = await InvoiceService(db).duplicate_invoice(invoice, current_user)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return invoice_to_response(copy)


@router.get(
    "/{invoice_id}/pdf",
    summary="Download invoice PDF",
    response_class=Response,
)
async def download_invoice_pdf(
    invoice_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Render the invoice as an A4 PDF."""
    invoice = await _get_invoice_or_404(db, invoice_id, current_user)
    pdf = await render_invoice_pdf(db, invoice, current_user)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=invoice-{invoice.invoice_number}.pdf",
        },
    )


@router.post(
    "/{invoice_id}/send",
    response_model=InvoiceSendResponse,
    summary="Email invoice",
    description="Email the invoice to its client. A draft is marked as sent once delivered.",
)
async def send_invoice(
    invoice_id: UUID,
    request: Optional[InvoiceSendRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    invoice = await _get_invoice_or_404(db, invoice_id, current_user)
    request = request or InvoiceSendRequest()

    company = (await db.execute(
        select(CompanyInfo).where(CompanyInfo.user_id == current_user.id)
    )).scalar_one_or_none()
    email_settings = None
    if current_user.is_agency:
        email_settings = (await db.execute(
            select(AgencyEmailSettings).where(AgencyEmailSettings.user_id == current_user.id)
        )).scalar_one_or_none()
    methods = await PaymentMethodService(db).get_methods_for_user(current_user.id, active_only=True)

    log = await EmailService(db).send_invoice_email(
        invoice,
        current_user,
        company=company,
        payment_methods=methods,
        email_settings=email_settings,
        recipient=request.recipient_email,
        note=request.message,
    )

    sent = log.status == EmailStatus.SENT
    if sent and invoice.status == InvoiceStatus.DRAFT:
        invoice = await InvoiceService(db).update_status(invoice, InvoiceStatus.SENT)
    else:
        await db.refresh(invoice)

    return InvoiceSendResponse(
        success=sent,
        message="Invoice sent successfully" if sent else f"Failed to send invoice: {log.error_message}",
        email_log_id=log.id,
        invoice=invoice_to_response(invoice),
    )
