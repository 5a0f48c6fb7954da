"""
InvoiceFlow - Profile & Company Router

The profile is created on first sign-in from the identity token; the
company info record carries the business details printed on invoices.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_async_session
from app.dependencies import get_current_user, get_token_identity
from app.models.user import User, UserPlan
from app.schemas.billing import SubscriptionResponse
from app.schemas.settings import (
    ProfileUpsertRequest,
    ProfileResponse,
    CompanyUpsertRequest,
    CompanyResponse,
)
from app.services.email_service import EmailService
from app.services.invoice_service import InvoiceService
from app.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter()


# ===========================================
# PROFILE
# ===========================================

@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Get profile",
)
async def get_profile(
    current_user: User = Depends(get_current_user),
):
    return ProfileResponse.model_validate(current_user)


@router.put(
    "/profile",
    response_model=ProfileResponse,
    summary="Create or update profile",
    description="Creates the profile on first call (email and name required). "
                "A welcome email is sent when the profile is created.",
)
async def upsert_profile(
    request: ProfileUpsertRequest,
    identity: dict = Depends(get_token_identity),
    db: AsyncSession = Depends(get_async_session),
):
    data = request.model_dump(exclude_unset=True)
    email = data.pop("email", None) or identity.get("email")

    try:
        user, created = await SettingsService(db).upsert_profile(
            identity["user_id"],
            email=email,
            **data,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    if user.is_banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been suspended",
        )

    if created:
        await EmailService(db).send_welcome_email(user)
        await db.refresh(user)

    return ProfileResponse.model_validate(user)


@router.get(
    "/profile/subscription",
    response_model=SubscriptionResponse,
    summary="Current plan and usage",
)
async def get_subscription(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    used = await InvoiceService(db).count_invoices_this_month(current_user.id)
    limit = (
        settings.free_plan_monthly_invoice_limit
        if current_user.effective_plan == UserPlan.FREE
        else None
    )

    return SubscriptionResponse(
        plan=current_user.plan,
        effective_plan=current_user.effective_plan,
        plan_expires_at=current_user.plan_expires_at,
        invoices_this_month=used,
        monthly_invoice_limit=limit,
    )


# ===========================================
# COMPANY INFO
# ===========================================

@router.get(
    "/company",
    response_model=CompanyResponse,
    summary="Get company info",
)
async def get_company(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    company = await SettingsService(db).get_company(current_user.id)
    if not company:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company info not set up",
        )
    return CompanyResponse.model_validate(company)


@router.put(
    "/company",
    response_model=CompanyResponse,
    summary="Create or update company info",
)
async def upsert_company(
    request: CompanyUpsertRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        company = await SettingsService(db).upsert_company(
            current_user.id,
            **request.model_dump(exclude_unset=True),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return CompanyResponse.model_validate(company)
