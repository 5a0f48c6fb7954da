"""
InvoiceFlow - Billing Router

Plan catalogue, plan purchases through OxaPay and the gateway callback.

Security:
- Plans are only activated by the signed OxaPay callback.
- The payment return endpoint is read-only.
"""

import json
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_async_session
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.billing import (
    PlanCatalogueResponse,
    PlanResponse,
    PurchaseRequest,
    PurchaseResponse,
    PurchaseStartResponse,
)
from app.services.billing_service import (
    BillingService,
    SUPPORTED_CRYPTO_CURRENCIES,
    SUPPORTED_FIAT_CURRENCIES,
    verify_oxapay_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/plans",
    response_model=PlanCatalogueResponse,
    summary="List plans",
)
async def list_plans():
    """Public plan catalogue with monthly and yearly prices."""
    return PlanCatalogueResponse(
        plans=[PlanResponse(**plan) for plan in BillingService.get_plans()],
        supported_fiat_currencies=SUPPORTED_FIAT_CURRENCIES,
        supported_crypto_currencies=SUPPORTED_CRYPTO_CURRENCIES,
    )


@router.post(
    "/purchase",
    response_model=PurchaseStartResponse,
    summary="Start plan purchase",
    description="Free plan switches immediately. Paid plans return an OxaPay payment URL.",
)
async def purchase_plan(
    request: PurchaseRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        purchase = await BillingService(db).purchase_plan(
            current_user,
            request.plan,
            cycle=request.billing_cycle,
            currency=request.currency,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    if purchase is None:
        return PurchaseStartResponse(
            success=True,
            message="Switched to the free plan",
            plan=request.plan,
        )

    return PurchaseStartResponse(
        success=True,
        message="Complete the payment to activate your plan",
        plan=request.plan,
        payment_url=purchase.payment_url,
        purchase=PurchaseResponse.model_validate(purchase),
    )


@router.get(
    "/purchases",
    response_model=List[PurchaseResponse],
    summary="Purchase history",
)
async def list_purchases(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    purchases = await BillingService(db).get_purchases_for_user(current_user.id)
    return [PurchaseResponse.model_validate(p) for p in purchases]


@router.get(
    "/return/{order_id}",
    response_model=PurchaseResponse,
    summary="Payment return status",
    description="Status of a purchase after returning from the payment page. Does not change the plan.",
)
async def payment_return(
    order_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    purchase = await BillingService(db).confirm_return(current_user, order_id)
    if not purchase:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Purchase not found",
        )
    return PurchaseResponse.model_validate(purchase)


@router.post(
    "/callback",
    summary="OxaPay callback",
    include_in_schema=False,
    response_class=PlainTextResponse,
)
async def oxapay_callback(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Handle OxaPay payment callbacks.

    The raw body is verified against the HMAC header (HMAC-SHA512 keyed
    with the merchant API key). OxaPay expects a plain "ok" on success.
    """
    body = await request.body()
    signature = request.headers.get("HMAC", "")

    if not verify_oxapay_signature(body, signature, settings.oxapay_merchant_api_key):
        logger.warning("OxaPay callback signature verification failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid callback signature",
        )

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid callback payload",
        )

    logger.info(
        f"OxaPay callback received: status={payload.get('status')}, "
        f"order_id={payload.get('order_id', 'N/A')}"
    )

    result = await BillingService(db).process_callback(payload)
    if not result.get("handled"):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=result.get("error", "Callback not handled"),
        )

    return PlainTextResponse("ok")
