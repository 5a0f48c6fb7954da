"""
InvoiceFlow - Celery Tasks

Celery wrappers around the scheduled task functions.
"""

import asyncio
import logging
from typing import Any, Dict

from celery import shared_task

from app.database import session_scope
from app.tasks.scheduled_tasks import (
    expire_plans,
    generate_recurring_invoices,
    mark_overdue_invoices,
)

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async functions in Celery tasks."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _with_session(task_func) -> Dict[str, Any]:
    async with session_scope() as db:
        return await task_func(db)


@shared_task(name='app.tasks.celery_tasks.mark_overdue_invoices_task')
def mark_overdue_invoices_task() -> Dict[str, Any]:
    """Mark sent invoices past their due date as overdue."""
    return run_async(_with_session(mark_overdue_invoices))


@shared_task(
    name='app.tasks.celery_tasks.generate_recurring_invoices_task',
    bind=True,
    max_retries=3,
)
def generate_recurring_invoices_task(self) -> Dict[str, Any]:
    """Generate invoices for due recurring schedules."""
    try:
        return run_async(_with_session(generate_recurring_invoices))
    except Exception as e:
        logger.error(f"Recurring invoice generation failed: {e}")
        raise self.retry(exc=e)


@shared_task(name='app.tasks.celery_tasks.expire_plans_task')
def expire_plans_task() -> Dict[str, Any]:
    """Downgrade users whose paid plan has lapsed."""
    return run_async(_with_session(expire_plans))
