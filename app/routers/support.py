"""
InvoiceFlow - Support Router

Support tickets and product feedback. Both can be submitted without
signing in as long as a name and email are given.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_user, get_optional_user
from app.models.user import User
from app.schemas.support import (
    TicketCreateRequest,
    TicketResponse,
    FeedbackCreateRequest,
    FeedbackResponse,
)
from app.services.support_service import SupportService


router = APIRouter()


def _contact(name: Optional[str], email: Optional[str], user: Optional[User]):
    """Name and email from the request, falling back to the profile."""
    name = name or (user.name if user else None)
    email = email or (user.email if user else None)
    if not name or not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name and email are required",
        )
    return name, email


@router.post(
    "/tickets",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open support ticket",
)
async def create_ticket(
    request: TicketCreateRequest,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
):
    name, email = _contact(request.name, request.email, current_user)
    ticket = await SupportService(db).create_ticket(
        name=name,
        email=email,
        subject=request.subject,
        message=request.message,
        category=request.category,
        priority=request.priority,
        phone=request.phone,
        user_id=current_user.id if current_user else None,
    )
    return TicketResponse.model_validate(ticket)


@router.get(
    "/tickets",
    response_model=List[TicketResponse],
    summary="My support tickets",
)
async def list_my_tickets(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    tickets = await SupportService(db).get_tickets_for_user(current_user.id)
    return [TicketResponse.model_validate(t) for t in tickets]


@router.post(
    "/feedback",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit feedback",
)
async def submit_feedback(
    request: FeedbackCreateRequest,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
):
    name, email = _contact(request.name, request.email, current_user)
    try:
        feedback = await SupportService(db).submit_feedback(
            name=name,
            email=email,
            message=request.message,
            type=request.type,
            rating=request.rating,
            user_id=current_user.id if current_user else None,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return FeedbackResponse.model_validate(feedback)


@router.get(
    "/feedback",
    response_model=List[FeedbackResponse],
    summary="My feedback",
)
async def list_my_feedback(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    feedback = await SupportService(db).get_feedback_for_user(current_user.id)
    return [FeedbackResponse.model_validate(f) for f in feedback]
