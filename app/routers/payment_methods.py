"""
InvoiceFlow - Payment Methods Router

Payment instructions shown on invoices and invoice emails.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_user
from app.models.payment_method import PaymentMethod
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.payment_method import (
    PaymentMethodCreateRequest,
    PaymentMethodUpdateRequest,
    PaymentMethodReorderRequest,
    PaymentMethodResponse,
)
from app.services.payment_method_service import PaymentMethodService


router = APIRouter()


async def _get_method_or_404(db: AsyncSession, method_id: UUID, user: User) -> PaymentMethod:
    method = await PaymentMethodService(db).get_method_by_id(method_id, user.id)
    if not method:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment method not found",
        )
    return method


@router.get(
    "",
    response_model=List[PaymentMethodResponse],
    summary="List payment methods",
)
async def list_payment_methods(
    active_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    methods = await PaymentMethodService(db).get_methods_for_user(current_user.id, active_only=active_only)
    return [PaymentMethodResponse.model_validate(m) for m in methods]


@router.post(
    "",
    response_model=PaymentMethodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add payment method",
)
async def create_payment_method(
    request: PaymentMethodCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    method = await PaymentMethodService(db).create_method(
        user_id=current_user.id,
        type=request.type,
        name=request.name,
        details=request.details,
        is_active=request.is_active,
    )
    return PaymentMethodResponse.model_validate(method)


@router.put(
    "/reorder",
    response_model=List[PaymentMethodResponse],
    summary="Reorder payment methods",
)
async def reorder_payment_methods(
    request: PaymentMethodReorderRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        methods = await PaymentMethodService(db).reorder_methods(current_user.id, request.ordered_ids)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return [PaymentMethodResponse.model_validate(m) for m in methods]


@router.put(
    "/{method_id}",
    response_model=PaymentMethodResponse,
    summary="Update payment method",
)
async def update_payment_method(
    method_id: UUID,
    request: PaymentMethodUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    method = await _get_method_or_404(db, method_id, current_user)
    method = await PaymentMethodService(db).update_method(method, **request.model_dump(exclude_unset=True))
    return PaymentMethodResponse.model_validate(method)


@router.post(
    "/{method_id}/toggle",
    response_model=PaymentMethodResponse,
    summary="Enable or disable payment method",
)
async def toggle_payment_method(
    method_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    method = await _get_method_or_404(db, method_id, current_user)
    method = await PaymentMethodService(db).toggle_method(method)
    return PaymentMethodResponse.model_validate(method)


@router.delete(
    "/{method_id}",
    response_model=MessageResponse,
    summary="Delete payment method",
)
async def delete_payment_method(
    method_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    method = await _get_method_or_404(db, method_id, current_user)
    await PaymentMethodService(db).delete_method(method)
    return MessageResponse(message="Payment method deleted successfully")
