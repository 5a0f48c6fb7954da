"""
InvoiceFlow - Dashboard Router

Dashboard counters and revenue analytics.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.dashboard import DashboardStatsResponse, AnalyticsResponse
from app.schemas.invoice import InvoiceResponse
from app.services.analytics_service import AnalyticsService


router = APIRouter()


@router.get(
    "/stats",
    response_model=DashboardStatsResponse,
    summary="Dashboard counters",
    description="Invoice counts by status, paid revenue and the five most recent invoices.",
)
async def get_dashboard_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    stats = await AnalyticsService(db).get_dashboard_stats(current_user.id)
    stats["recent_invoices"] = [InvoiceResponse.model_validate(inv) for inv in stats["recent_invoices"]]
    return DashboardStatsResponse(**stats)


@router.get(
    "/analytics",
    response_model=AnalyticsResponse,
    summary="Revenue analytics",
)
async def get_analytics(
    months: int = Query(6, ge=1, le=12, description="Window size; values below 12 use 6 months"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Monthly revenue, status distribution, top clients and growth."""
    months = 12 if months >= 12 else 6
    data = await AnalyticsService(db).get_analytics(current_user.id, months=months)
    return AnalyticsResponse(**data)
