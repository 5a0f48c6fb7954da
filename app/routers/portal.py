"""
InvoiceFlow - Client Portal Router

Public, token-gated endpoints. No login: the access token in the path
is the credential, and it only opens invoices issued to its client email.
"""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.models.invoice import InvoiceStatus
from app.models.user import User
from app.schemas.invoice import InvoiceResponse
from app.schemas.portal import PortalBranding, PortalCompany, PortalResponse
from app.services.invoice_pdf_service import render_invoice_pdf
from app.services.portal_service import PortalService


router = APIRouter()

INVALID_LINK = "This portal link is invalid or has expired"


@router.get(
    "/{access_token}",
    response_model=PortalResponse,
    summary="Client portal",
)
async def get_portal(
    access_token: str,
    db: AsyncSession = Depends(get_async_session),
):
    """Every invoice issued to the token's client, newest first."""
    view = await PortalService(db).get_portal_view(access_token)
    if view is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=INVALID_LINK,
        )

    owner = await db.get(User, view.access.user_id)
    white_label = view.white_label if owner is not None and owner.is_agency else None

    outstanding = sum(
        (Decimal(inv.total) for inv in view.invoices
         if inv.status in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)),
        Decimal("0"),
    )

    return PortalResponse(
        client_email=view.access.client_email,
        expires_at=view.access.expires_at,
        company=PortalCompany.model_validate(view.company) if view.company else None,
        branding=PortalBranding.model_validate(white_label) if white_label else None,
        invoices=[InvoiceResponse.model_validate(inv) for inv in view.invoices],
        total_outstanding=float(outstanding),
    )


@router.get(
    "/{access_token}/invoices/{invoice_id}/pdf",
    summary="Download invoice PDF from the portal",
    response_class=Response,
)
async def download_portal_invoice_pdf(
    access_token: str,
    invoice_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    invoice = await PortalService(db).get_portal_invoice(access_token, invoice_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invoice not found",
        )

    owner = await db.get(User, invoice.user_id)
    pdf = await render_invoice_pdf(db, invoice, owner)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=invoice-{invoice.invoice_number}.pdf",
        },
    )
