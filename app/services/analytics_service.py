"""
InvoiceFlow - Dashboard & Analytics Service

Dashboard counters and revenue analytics for a user's invoices.

The computations are plain functions over invoice rows so they can be
checked without a database; AnalyticsService only loads the rows.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.invoice import Invoice, InvoiceStatus
from app.services.agency_service import add_months

ZERO = Decimal("0")

STATUS_ORDER = [
    (InvoiceStatus.PAID, "Paid"),
    (InvoiceStatus.SENT, "Sent"),
    (InvoiceStatus.DRAFT, "Draft"),
    (InvoiceStatus.OVERDUE, "Overdue"),
]


def _status(invoice: Any) -> InvoiceStatus:
    return InvoiceStatus(invoice.status)


def _created_on(invoice: Any) -> date:
    created = invoice.created_at
    return created.date() if isinstance(created, datetime) else created


def growth_percent(current: Decimal, previous: Decimal) -> float:
    """Percent change from previous to current; 0 when previous is 0."""
    if not previous:
        return 0.0
    return round(float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100), 1)


def compute_dashboard_stats(invoices: Sequence[Any], recent_limit: int = 5) -> Dict[str, Any]:
    """Counters for the dashboard. Pending means sent and not yet paid."""
    paid = [inv for inv in invoices if _status(inv) == InvoiceStatus.PAID]
    recent = sorted(invoices, key=lambda inv: inv.created_at, reverse=True)[:recent_limit]

    return {
        "total_invoices": len(invoices),
        "paid_invoices": len(paid),
        "pending_invoices": sum(1 for inv in invoices if _status(inv) == InvoiceStatus.SENT),
        "overdue_invoices": sum(1 for inv in invoices if _status(inv) == InvoiceStatus.OVERDUE),
        "draft_invoices": sum(1 for inv in invoices if _status(inv) == InvoiceStatus.DRAFT),
        "total_revenue": float(sum((Decimal(inv.total) for inv in paid), ZERO)),
        "total_clients": len({inv.client_email.lower() for inv in invoices if inv.client_email}),
        "recent_invoices": recent,
    }


def compute_analytics(
    invoices: Sequence[Any],
    months: int = 6,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Revenue analytics over the last `months` calendar months.

    Invoices are bucketed by creation month. Revenue only counts paid
    invoices, while invoice counts include every status.
    """
    today = today or datetime.now(timezone.utc).date()
    first_month = add_months(today.replace(day=1), -(months - 1))

    in_range = [inv for inv in invoices if _created_on(inv) >= first_month]
    paid = [inv for inv in in_range if _status(inv) == InvoiceStatus.PAID]

    total_revenue = sum((Decimal(inv.total) for inv in paid), ZERO)
    total_invoices = len(in_range)

    monthly = []
    for offset in range(months):
        month_start = add_months(first_month, offset)
        month_end = add_months(month_start, 1)
        month_invoices = [
            inv for inv in in_range
            if month_start <= _created_on(inv) < month_end
        ]
        revenue = sum(
            (Decimal(inv.total) for inv in month_invoices if _status(inv) == InvoiceStatus.PAID),
            ZERO,
        )
        monthly.append({
            "month": month_start.strftime("%b %Y"),
            "revenue": revenue,
            "invoices": len(month_invoices),
        })

    status_counts: Dict[InvoiceStatus, int] = {}
    for inv in in_range:
        status_counts[_status(inv)] = status_counts.get(_status(inv), 0) + 1

    clients: Dict[str, Dict[str, Any]] = {}
    for inv in paid:
        key = inv.client_email.lower()
        entry = clients.setdefault(key, {"name": inv.client_name, "email": inv.client_email, "revenue": ZERO, "invoices": 0})
        entry["revenue"] += Decimal(inv.total)
        entry["invoices"] += 1
    top_clients = sorted(clients.values(), key=lambda c: c["revenue"], reverse=True)[:5]

    last = monthly[-1] if monthly else {"revenue": ZERO, "invoices": 0}
    previous = monthly[-2] if len(monthly) > 1 else {"revenue": ZERO, "invoices": 0}

    return {
        "months": months,
        "total_revenue": float(total_revenue),
        "total_invoices": total_invoices,
        "total_clients": len({inv.client_email.lower() for inv in in_range if inv.client_email}),
        "average_invoice_value": float(total_revenue / total_invoices) if total_invoices else 0.0,
        "monthly": [
            {"month": m["month"], "revenue": float(m["revenue"]), "invoices": m["invoices"]}
            for m in monthly
        ],
        "status_distribution": [
            {"name": label, "status": status.value, "value": status_counts.get(status, 0)}
            for status, label in STATUS_ORDER
        ],
        "top_clients": [
            {**c, "revenue": float(c["revenue"])} for c in top_clients
        ],
        "revenue_growth": growth_percent(last["revenue"], previous["revenue"]),
        "invoice_growth": growth_percent(Decimal(last["invoices"]), Decimal(previous["invoices"])),
    }


class AnalyticsService:
    """Loads a user's invoices for the dashboard and analytics views."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _invoices(self, user_id: uuid.UUID, since: Optional[date] = None) -> List[Invoice]:
        query = select(Invoice).where(Invoice.user_id == user_id)
        if since is not None:
            query = query.where(
                Invoice.created_at >= datetime(since.year, since.month, since.day, tzinfo=timezone.utc)
            )
        result = await self.db.execute(query.order_by(Invoice.created_at.desc()))
        return list(result.scalars().all())

    async def get_dashboard_stats(self, user_id: uuid.UUID) -> Dict[str, Any]:
        return compute_dashboard_stats(await self._invoices(user_id))

    async def get_analytics(self, user_id: uuid.UUID, months: int = 6) -> Dict[str, Any]:
        today = datetime.now(timezone.utc).date()
        since = add_months(today.replace(day=1), -(months - 1))
        return compute_analytics(await self._invoices(user_id, since), months=months, today=today)
