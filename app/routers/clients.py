"""
InvoiceFlow - Clients Router

API endpoints for saved client records.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_user
from app.models.client import Client
from app.models.user import User
from app.schemas.client import (
    ClientCreateRequest,
    ClientUpdateRequest,
    ClientResponse,
    ClientListResponse,
    ClientStatsResponse,
)
from app.schemas.common import MessageResponse
from app.services.client_service import ClientService


router = APIRouter()


async def _get_client_or_404(db: AsyncSession, client_id: UUID, user: User) -> Client:
    client = await ClientService(db).get_client_by_id(client_id, user.id)
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found",
        )
    return client


@router.get(
    "",
    response_model=ClientListResponse,
    summary="List clients",
)
async def list_clients(
    search: Optional[str] = Query(None, description="Search by name, email or business name"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    clients = await ClientService(db).get_clients_for_user(current_user.id, search=search)
    return ClientListResponse(
        clients=[ClientResponse.model_validate(c) for c in clients],
        total=len(clients),
    )


@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client",
)
async def create_client(
    request: ClientCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    client = await ClientService(db).create_client(
        user_id=current_user.id,
        name=request.name,
        email=request.email,
        business_name=request.business_name,
        phone=request.phone,
        address=request.address,
    )
    return ClientResponse.model_validate(client)


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Get client",
)
async def get_client(
    client_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    client = await _get_client_or_404(db, client_id, current_user)
    return ClientResponse.model_validate(client)


@router.get(
    "/{client_id}/stats",
    response_model=ClientStatsResponse,
    summary="Client billing summary",
    description="Invoice count, amounts invoiced and paid, and the outstanding balance.",
)
async def get_client_stats(
    client_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    client = await _get_client_or_404(db, client_id, current_user)
    stats = await ClientService(db).get_client_stats(client)
    return ClientStatsResponse(client=ClientResponse.model_validate(client), **stats)


@router.put(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Update client",
)
async def update_client(
    client_id: UUID,
    request: ClientUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    client = await _get_client_or_404(db, client_id, current_user)
    client = await ClientService(db).update_client(client, **request.model_dump(exclude_unset=True))
    return ClientResponse.model_validate(client)


@router.delete(
    "/{client_id}",
    response_model=MessageResponse,
    summary="Delete client",
    description="Delete a saved client. Existing invoices keep their copied client details.",
)
async def delete_client(
    client_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
):
    client = await _get_client_or_404(db, client_id, current_user)
    await ClientService(db).delete_client(client)
    return MessageResponse(message="Client deleted successfully")
