"""
InvoiceFlow - Admin Router

Platform administration. Access is limited to the configured admin
emails, and every change is written to the admin activity log.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_admin, get_request_info
from app.models.invoice import InvoiceStatus
from app.models.support import FeedbackStatus, TicketStatus
from app.models.user import User
from app.schemas.admin import (
    AdminStatsResponse,
    AdminUserResponse,
    AdminUserListResponse,
    AdminInvoiceResponse,
    PlanChangeRequest,
    TicketUpdateRequest,
    FeedbackUpdateRequest,
    ActivityLogResponse,
    EmailLogResponse,
)
from app.schemas.billing import PurchaseResponse
from app.schemas.invoice import InvoiceResponse
from app.schemas.support import TicketResponse, FeedbackResponse
from app.services.admin_service import AdminService, EXPORT_COLUMNS


router = APIRouter()


@router.get(
    "/stats",
    response_model=AdminStatsResponse,
    summary="Platform overview",
)
async def get_stats(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    return AdminStatsResponse(**await AdminService(db).get_overview_stats())


# ===========================================
# USERS
# ===========================================

@router.get(
    "/users",
    response_model=AdminUserListResponse,
    summary="List users",
)
async def list_users(
    search: Optional[str] = Query(None, description="Search by email or name"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    users = await AdminService(db).list_users(search=search, limit=limit, offset=offset)
    return AdminUserListResponse(
        users=[AdminUserResponse.model_validate(u) for u in users],
        total=len(users),
    )


@router.post(
    "/users/{user_id}/ban",
    response_model=AdminUserResponse,
    summary="Ban or unban user",
)
async def toggle_ban(
    user_id: UUID,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        user = await AdminService(db).toggle_ban(admin, user_id, **get_request_info(request))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return AdminUserResponse.model_validate(user)


@router.put(
    "/users/{user_id}/plan",
    response_model=AdminUserResponse,
    summary="Change user plan",
    description="Paid plans granted here run for 30 days.",
)
async def change_plan(
    user_id: UUID,
    body: PlanChangeRequest,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    user = await AdminService(db).change_plan(admin, user_id, body.plan, **get_request_info(request))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return AdminUserResponse.model_validate(user)


# ===========================================
# INVOICES
# ===========================================

@router.get(
    "/invoices",
    response_model=List[AdminInvoiceResponse],
    summary="List all invoices",
)
async def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    rows = await AdminService(db).list_invoices(status=status_filter, limit=limit, offset=offset)
    return [
        AdminInvoiceResponse(
            invoice=InvoiceResponse.model_validate(row["invoice"]),
            owner_email=row["owner_email"],
            owner_name=row["owner_name"],
        )
        for row in rows
    ]


# ===========================================
# SUPPORT
# ===========================================

@router.get(
    "/tickets",
    response_model=List[TicketResponse],
    summary="List support tickets",
)
async def list_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    tickets = await AdminService(db).list_tickets(status=status_filter)
    return [TicketResponse.model_validate(t) for t in tickets]


@router.put(
    "/tickets/{ticket_id}",
    response_model=TicketResponse,
    summary="Update support ticket",
)
async def update_ticket(
    ticket_id: UUID,
    body: TicketUpdateRequest,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    ticket = await AdminService(db).update_ticket(
        admin,
        ticket_id,
        status=body.status,
        assigned_to=body.assigned_to,
        admin_response=body.admin_response,
        **get_request_info(request),
    )
    if not ticket:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found",
        )
    return TicketResponse.model_validate(ticket)


@router.get(
    "/feedback",
    response_model=List[FeedbackResponse],
    summary="List feedback",
)
async def list_feedback(
    status_filter: Optional[FeedbackStatus] = Query(None, alias="status"),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    feedback = await AdminService(db).list_feedback(status=status_filter)
    return [FeedbackResponse.model_validate(f) for f in feedback]


@router.put(
    "/feedback/{feedback_id}",
    response_model=FeedbackResponse,
    summary="Update feedback",
)
async def update_feedback(
    feedback_id: UUID,
    body: FeedbackUpdateRequest,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    feedback = await AdminService(db).update_feedback(
        admin,
        feedback_id,
        status=body.status,
        admin_notes=body.admin_notes,
        **get_request_info(request),
    )
    if not feedback:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Feedback not found",
        )
    return FeedbackResponse.model_validate(feedback)


# ===========================================
# BILLING, ACTIVITY AND EMAIL LOGS
# ===========================================

@router.get(
    "/purchases",
    response_model=List[PurchaseResponse],
    summary="List plan purchases",
)
async def list_purchases(
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    purchases = await AdminService(db).list_purchases()
    return [PurchaseResponse.model_validate(p) for p in purchases]


@router.get(
    "/activity",
    response_model=List[ActivityLogResponse],
    summary="Admin activity log",
)
async def list_activity(
    limit: int = Query(100, ge=1, le=1000),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    entries = await AdminService(db).list_activity(limit=limit)
    return [ActivityLogResponse.model_validate(e) for e in entries]


@router.get(
    "/email-logs",
    response_model=List[EmailLogResponse],
    summary="Outgoing email log",
)
async def list_email_logs(
    limit: int = Query(100, ge=1, le=1000),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    logs = await AdminService(db).list_email_logs(limit=limit)
    return [EmailLogResponse.model_validate(log) for log in logs]


# ===========================================
# EXPORT
# ===========================================

@router.get(
    "/export/{dataset}",
    summary="Export dataset as CSV",
    description=f"Datasets: {', '.join(EXPORT_COLUMNS)}.",
    response_class=Response,
)
async def export_dataset(
    dataset: str,
    request: Request,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    if dataset not in EXPORT_COLUMNS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown export: {dataset}",
        )

    try:
        content = await AdminService(db).export_csv(admin, dataset, **get_request_info(request))
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    filename = f"{dataset}_{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
