"""
InvoiceFlow - Background Tasks Package
"""

from app.tasks.scheduled_tasks import (
    mark_overdue_invoices,
    generate_recurring_invoices,
    expire_plans,
    TaskRunner,
)

__all__ = [
    "mark_overdue_invoices",
    "generate_recurring_invoices",
    "expire_plans",
    "TaskRunner",
]
