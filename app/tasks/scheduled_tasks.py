"""
InvoiceFlow - Background Tasks

Scheduled task definitions. Each takes a database session so they can
run either from Celery (app.tasks.celery_tasks) or directly through
TaskRunner in development and tests.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.agency import RecurringInvoice
from app.models.invoice import Invoice, InvoiceStatus
from app.models.user import User, UserPlan
from app.services.agency_service import advance_date
from app.services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)


# ===========================================
# SCHEDULED TASK: INVOICE OVERDUE CHECK
# ===========================================

async def mark_overdue_invoices(db: AsyncSession, today: Optional[date] = None) -> dict:
    """
    Mark sent invoices past their due date as overdue.
    Should run daily.
    """
    today = today or date.today()

    result = await db.execute(
        select(Invoice)
        .where(Invoice.status == InvoiceStatus.SENT)
        .where(Invoice.due_date < today)
    )

    count = 0
    for invoice in result.scalars().all():
        invoice.status = InvoiceStatus.OVERDUE
        count += 1

    await db.commit()

    logger.info(f"Marked {count} invoices as overdue")
    return {"marked_overdue": count}


# ===========================================
# SCHEDULED TASK: RECURRING INVOICES
# ===========================================

async def generate_recurring_invoices(db: AsyncSession, today: Optional[date] = None) -> dict:
    """
    Clone the source invoice of every due recurring schedule.

    A schedule is due when next_invoice_date is today or earlier; missed
    periods are caught up one invoice per period. New invoices are
    drafts whose due date keeps the source's offset from its creation.
    Schedules are deactivated once past their end date, and skipped
    while their owner is not on the agency plan.
    """
    today = today or date.today()
    invoice_service = InvoiceService(db)

    result = await db.execute(
        select(RecurringInvoice.id)
        .where(RecurringInvoice.is_active == True)  # noqa: E712
        .where(RecurringInvoice.next_invoice_date <= today)
        .order_by(RecurringInvoice.next_invoice_date)
    )
    # Ids rather than rows: a rollback expires every loaded instance
    schedule_ids = list(result.scalars().all())

    generated = 0
    deactivated = 0
    skipped = 0

    for schedule_id in schedule_ids:
        recurring = await db.get(RecurringInvoice, schedule_id)
        if recurring is None:
            continue
        owner = await db.get(User, recurring.user_id)
        source = await db.get(Invoice, recurring.source_invoice_id)

        if source is None:
            recurring.is_active = False
            deactivated += 1
            await db.commit()
            continue

        if owner is None or owner.effective_plan != UserPlan.AGENCY:
            skipped += 1
            continue

        due_offset = None
        if source.due_date is not None:
            due_offset = source.due_date - source.created_at.date()

        created = 0
        try:
            while recurring.is_active and recurring.next_invoice_date <= today:
                if recurring.end_date is not None and recurring.next_invoice_date > recurring.end_date:
                    recurring.is_active = False
                    break

                run_date = recurring.next_invoice_date
                invoice = await invoice_service.clone_invoice(
                    source,
                    due_date=run_date + due_offset if due_offset is not None else None,
                    parent_recurring_id=recurring.id,
                )
                created += 1
                logger.info(
                    f"Generated {invoice.invoice_number} from recurring schedule {schedule_id} for {run_date}"
                )

                recurring.last_generated_at = datetime.now(timezone.utc)
                recurring.next_invoice_date = advance_date(
                    run_date, recurring.frequency, anchor=recurring.start_date,
                )
                if recurring.end_date is not None and recurring.next_invoice_date > recurring.end_date:
                    recurring.is_active = False

            ended = not recurring.is_active
            await db.commit()
        except ValueError as e:
            await db.rollback()
            skipped += 1
            logger.error(f"Recurring schedule {schedule_id} failed, {created} invoice(s) rolled back: {e}")
            continue

        generated += created
        if ended:
            deactivated += 1

    logger.info(f"Recurring invoices: {generated} generated, {deactivated} schedules ended, {skipped} skipped")
    return {"generated": generated, "deactivated": deactivated, "skipped": skipped}


# ===========================================
# SCHEDULED TASK: PLAN EXPIRY
# ===========================================

async def expire_plans(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    """Move users whose paid plan has lapsed back to the free plan."""
    now = now or datetime.now(timezone.utc)

    result = await db.execute(
        select(User)
        .where(User.plan != UserPlan.FREE)
        .where(User.plan_expires_at.is_not(None))
        .where(User.plan_expires_at < now)
    )

    count = 0
    for user in result.scalars().all():
        logger.info(f"Plan {user.plan.value} expired for user {user.id}")
        user.plan = UserPlan.FREE
        user.plan_expires_at = None
        count += 1

    await db.commit()
    return {"downgraded": count}


# ===========================================
# TASK RUNNER
# ===========================================

class TaskRunner:
    """
    Simple task runner for development.
    In production, Celery beat schedules the same functions.
    """

    def __init__(self, db_session_factory):
        self.db_session_factory = db_session_factory

    async def run_task(self, task_func, *args, **kwargs):
        """Run a single task with a new database session."""
        async with self.db_session_factory() as db:
            try:
                result = await task_func(db, *args, **kwargs)
                logger.info(f"Task {task_func.__name__} completed: {result}")
                return result
            except Exception as e:
                logger.error(f"Task {task_func.__name__} failed: {e}")
                raise

    async def run_scheduled_tasks(self):
        """Run all scheduled tasks once."""
        results = {}

        tasks = [
            ("mark_overdue_invoices", mark_overdue_invoices),
            ("generate_recurring_invoices", generate_recurring_invoices),
            ("expire_plans", expire_plans),
        ]

        for name, task_func in tasks:
            try:
                result = await self.run_task(task_func)
                results[name] = {"status": "success", "result": result}
            except Exception as e:
                results[name] = {"status": "error", "error": str(e)}

        return results
