"""
InvoiceFlow - Support Service

Support tickets and product feedback. Signed-in users see their own
submissions; anonymous visitors can submit with a name and email.
"""

import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.support import (
    FeedbackStatus,
    FeedbackSubmission,
    FeedbackType,
    SupportTicket,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)


class SupportService:
    """Service for support tickets and feedback."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_ticket(
        self,
        name: str,
        email: str,
        subject: str,
        message: str,
        category: TicketCategory = TicketCategory.GENERAL,
        priority: TicketPriority = TicketPriority.MEDIUM,
        phone: Optional[str] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> SupportTicket:
        """Create a new support ticket."""
        ticket = SupportTicket(
            user_id=user_id,
            name=name,
            email=email,
            phone=phone,
            subject=subject,
            category=category,
            priority=priority,
            message=message,
            status=TicketStatus.OPEN,
        )

        self.db.add(ticket)
        await self.db.commit()
        await self.db.refresh(ticket)

        return ticket

    async def get_tickets_for_user(self, user_id: uuid.UUID) -> List[SupportTicket]:
        result = await self.db.execute(
            select(SupportTicket)
            .where(SupportTicket.user_id == user_id)
            .order_by(SupportTicket.created_at.desc())
        )
        return list(result.scalars().all())

    async def submit_feedback(
        self,
        name: str,
        email: str,
        message: str,
        type: FeedbackType = FeedbackType.GENERAL,
        rating: Optional[int] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> FeedbackSubmission:
        """Record feedback. Rating, when given, must be 1-5."""
        if rating is not None and not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")

        feedback = FeedbackSubmission(
            user_id=user_id,
            name=name,
            email=email,
            type=type,
            rating=rating,
            message=message,
            status=FeedbackStatus.NEW,
        )

        self.db.add(feedback)
        await self.db.commit()
        await self.db.refresh(feedback)

        return feedback

    async def get_feedback_for_user(self, user_id: uuid.UUID) -> List[FeedbackSubmission]:
        result = await self.db.execute(
            select(FeedbackSubmission)
            .where(FeedbackSubmission.user_id == user_id)
            .order_by(FeedbackSubmission.created_at.desc())
        )
        return list(result.scalars().all())
