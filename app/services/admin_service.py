"""
InvoiceFlow - Admin Service

Platform-wide views and moderation for admins:
- Overview statistics
- Users, invoices, tickets, feedback and plan purchases across tenants
- Ban/unban, plan changes, ticket and feedback triage
- Admin activity log and CSV export
"""

import csv
import io
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import AdminActivityLog, EmailLog
from app.models.billing import PlanPurchase
from app.models.invoice import Invoice, InvoiceStatus
from app.models.support import (
    FeedbackStatus,
    FeedbackSubmission,
    SupportTicket,
    TicketStatus,
)
from app.models.user import User, UserPlan

logger = logging.getLogger(__name__)


# Columns included in each CSV export, in order
EXPORT_COLUMNS = {
    "users": ["id", "email", "name", "phone", "plan", "plan_expires_at", "is_banned", "created_at"],
    "invoices": [
        "id", "invoice_number", "user_id", "client_name", "client_email", "status",
        "currency", "subtotal", "tax_amount", "discount_amount", "total", "due_date", "created_at",
    ],
    "tickets": ["id", "name", "email", "subject", "category", "priority", "status", "assigned_to", "created_at"],
    "feedback": ["id", "name", "email", "type", "rating", "status", "message", "created_at"],
    "purchases": [
        "id", "user_id", "plan", "billing_cycle", "amount", "currency", "order_id",
        "track_id", "status", "paid_at", "created_at",
    ],
}

PLAN_CHANGE_DAYS = 30


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    return str(value)


def row_to_dict(obj: Any, columns: Sequence[str]) -> Dict[str, Any]:
    return {column: getattr(obj, column, None) for column in columns}


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Render rows as CSV.

    The header comes from the first row's keys; every value is quoted.

    Raises:
        ValueError: no rows
    """
    if not rows:
        raise ValueError("No data to export")

    buffer = io.StringIO()
    buffer.write(",".join(rows[0].keys()) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([_csv_value(value) for value in row.values()])

    return buffer.getvalue()


class AdminService:
    """Cross-tenant admin operations. Callers must check admin access."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # OVERVIEW
    # ===========================================

    async def get_overview_stats(self) -> Dict[str, Any]:
        """Platform totals. Active users are those created in the last 30 days."""
        thirty_days_ago = datetime.now(timezone.utc) - timedelta(days=30)

        total_users = (await self.db.execute(select(func.count(User.id)))).scalar() or 0
        active_users = (await self.db.execute(
            select(func.count(User.id)).where(User.created_at >= thirty_days_ago)
        )).scalar() or 0
        total_invoices = (await self.db.execute(select(func.count(Invoice.id)))).scalar() or 0
        total_revenue = (await self.db.execute(
            select(func.coalesce(func.sum(Invoice.total), 0)).where(Invoice.status == InvoiceStatus.PAID)
        )).scalar() or 0
        tickets = (await self.db.execute(select(func.count(SupportTicket.id)))).scalar() or 0
        open_tickets = (await self.db.execute(
            select(func.count(SupportTicket.id)).where(SupportTicket.status == TicketStatus.OPEN)
        )).scalar() or 0
        feedback = (await self.db.execute(select(func.count(FeedbackSubmission.id)))).scalar() or 0

        plan_rows = await self.db.execute(select(User.plan, func.count(User.id)).group_by(User.plan))
        users_by_plan = {plan.value: 0 for plan in UserPlan}
        for plan, count in plan_rows.all():
            users_by_plan[UserPlan(plan).value] = count

        return {
            "total_users": total_users,
            "active_users": active_users,
            "total_invoices": total_invoices,
            "total_revenue": float(total_revenue),
            "support_tickets": tickets,
            "open_tickets": open_tickets,
            "feedback_submissions": feedback,
            "users_by_plan": users_by_plan,
        }

    # ===========================================
    # LISTS
    # ===========================================

    async def list_users(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[User]:
        query = select(User)
        if search:
            term = f"%{search}%"
            query = query.where(User.email.ilike(term) | User.name.ilike(term))
        result = await self.db.execute(query.order_by(User.created_at.desc()).limit(limit).offset(offset))
        return list(result.scalars().all())

    async def list_invoices(
        self,
        status: Optional[InvoiceStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Invoices with their owner's email and name."""
        query = select(Invoice, User.email, User.name).join(User, User.id == Invoice.user_id)
        if status:
            query = query.where(Invoice.status == status)
        result = await self.db.execute(query.order_by(Invoice.created_at.desc()).limit(limit).offset(offset))
        return [
            {"invoice": invoice, "owner_email": email, "owner_name": name}
            for invoice, email, name in result.all()
        ]

    async def list_tickets(self, status: Optional[TicketStatus] = None) -> List[SupportTicket]:
        query = select(SupportTicket)
        if status:
            query = query.where(SupportTicket.status == status)
        result = await self.db.execute(query.order_by(SupportTicket.created_at.desc()))
        return list(result.scalars().all())

    async def list_feedback(self, status: Optional[FeedbackStatus] = None) -> List[FeedbackSubmission]:
        query = select(FeedbackSubmission)
        if status:
            query = query.where(FeedbackSubmission.status == status)
        result = await self.db.execute(query.order_by(FeedbackSubmission.created_at.desc()))
        return list(result.scalars().all())

    async def list_purchases(self) -> List[PlanPurchase]:
        result = await self.db.execute(select(PlanPurchase).order_by(PlanPurchase.created_at.desc()))
        return list(result.scalars().all())

    async def list_activity(self, limit: int = 100) -> List[AdminActivityLog]:
        result = await self.db.execute(
            select(AdminActivityLog).order_by(AdminActivityLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def list_email_logs(self, limit: int = 100) -> List[EmailLog]:
        result = await self.db.execute(
            select(EmailLog).order_by(EmailLog.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    # ===========================================
    # ACTIONS
    # ===========================================

    async def log_action(
        self,
        admin: User,
        action: str,
        target_type: str,
        target_id: Optional[Any] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AdminActivityLog:
        """Add an activity log entry. Committed with the action it records."""
        entry = AdminActivityLog(
            admin_user_id=admin.id,
            action=action,
            target_type=target_type,
            target_id=str(target_id) if target_id is not None else None,
            details=details or {},
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        self.db.add(entry)
        logger.info(f"Admin {admin.email}: {action} {target_type} {target_id}")
        return entry

    async def toggle_ban(self, admin: User, user_id: uuid.UUID, **request_info) -> Optional[User]:
        user = await self.db.get(User, user_id)
        if user is None:
            return None
        if user.id == admin.id:
            raise ValueError("You cannot ban yourself")

        user.is_banned = not user.is_banned
        await self.log_action(
            admin, "ban_user" if user.is_banned else "unban_user", "user", user.id,
            {"email": user.email}, **request_info,
        )
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def change_plan(
        self,
        admin: User,
        user_id: uuid.UUID,
        plan: UserPlan,
        **request_info,
    ) -> Optional[User]:
        """Set a user's plan. Paid plans run 30 days from now; free never expires."""
        user = await self.db.get(User, user_id)
        if user is None:
            return None

        old_plan = user.plan
        user.plan = plan
        user.plan_expires_at = (
            None if plan == UserPlan.FREE
            else datetime.now(timezone.utc) + timedelta(days=PLAN_CHANGE_DAYS)
        )
        await self.log_action(
            admin, "change_plan", "user", user.id,
            {"from": old_plan.value, "to": plan.value}, **request_info,
        )
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def update_ticket(
        self,
        admin: User,
        ticket_id: uuid.UUID,
        status: Optional[TicketStatus] = None,
        assigned_to: Optional[str] = None,
        admin_response: Optional[str] = None,
        **request_info,
    ) -> Optional[SupportTicket]:
        ticket = await self.db.get(SupportTicket, ticket_id)
        if ticket is None:
            return None

        changes: Dict[str, Any] = {}
        if status is not None:
            ticket.status = status
            changes["status"] = status.value
        if assigned_to is not None:
            ticket.assigned_to = assigned_to
            changes["assigned_to"] = assigned_to
        if admin_response is not None:
            ticket.admin_response = admin_response
            changes["admin_response"] = True

        await self.log_action(admin, "update_ticket", "support_ticket", ticket.id, changes, **request_info)
        await self.db.commit()
        await self.db.refresh(ticket)
        return ticket

    async def update_feedback(
        self,
        admin: User,
        feedback_id: uuid.UUID,
        status: Optional[FeedbackStatus] = None,
        admin_notes: Optional[str] = None,
        **request_info,
    ) -> Optional[FeedbackSubmission]:
        feedback = await self.db.get(FeedbackSubmission, feedback_id)
        if feedback is None:
            return None

        changes: Dict[str, Any] = {}
        if status is not None:
            feedback.status = status
            changes["status"] = status.value
        if admin_notes is not None:
            feedback.admin_notes = admin_notes
            changes["admin_notes"] = True

        await self.log_action(admin, "update_feedback", "feedback", feedback.id, changes, **request_info)
        await self.db.commit()
        await self.db.refresh(feedback)
        return feedback

    # ===========================================
    # EXPORT
    # ===========================================

    async def export_csv(self, admin: User, dataset: str, **request_info) -> str:
        """
        Export a dataset as CSV.

        Raises:
            ValueError: unknown dataset or nothing to export
        """
        columns = EXPORT_COLUMNS.get(dataset)
        if columns is None:
            raise ValueError(f"Unknown export: {dataset}")

        rows: Iterable[Any]
        if dataset == "users":
            rows = await self.list_users(limit=100000)
        elif dataset == "invoices":
            rows = [entry["invoice"] for entry in await self.list_invoices(limit=100000)]
        elif dataset == "tickets":
            rows = await self.list_tickets()
        elif dataset == "feedback":
            rows = await self.list_feedback()
        else:
            rows = await self.list_purchases()

        content = rows_to_csv([row_to_dict(row, columns) for row in rows])

        await self.log_action(admin, "export_data", dataset, details={"rows": content.count("\n") - 1}, **request_info)
        await self.db.commit()

        return content
