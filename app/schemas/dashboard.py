"""
InvoiceFlow - Dashboard & Analytics Schemas
"""

from typing import List

from pydantic import BaseModel

from app.schemas.invoice import InvoiceResponse


class DashboardStatsResponse(BaseModel):
    """Dashboard counters. pending_invoices counts sent, unpaid invoices."""
    total_invoices: int
    paid_invoices: int
    pending_invoices: int
    overdue_invoices: int
    draft_invoices: int
    total_revenue: float
    total_clients: int
    recent_invoices: List[InvoiceResponse]


class MonthlyPoint(BaseModel):
    month: str
    revenue: float
    invoices: int


class StatusSlice(BaseModel):
    name: str
    status: str
    value: int


class TopClient(BaseModel):
    name: str
    email: str
    revenue: float
    invoices: int


class AnalyticsResponse(BaseModel):
    months: int
    total_revenue: float
    total_invoices: int
    total_clients: int
    average_invoice_value: float
    monthly: List[MonthlyPoint]
    status_distribution: List[StatusSlice]
    top_clients: List[TopClient]
    revenue_growth: float
    invoice_growth: float
