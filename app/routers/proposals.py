"""
InvoiceFlow - Proposals Router

Quotes sent ahead of an invoice. Agency plan only.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import require_agency_plan
from app.models.proposal import Proposal
from app.models.user import User
from app.schemas.common import MessageResponse
from app.schemas.invoice import InvoiceResponse
from app.schemas.proposal import (
    ProposalCreateRequest,
    ProposalUpdateRequest,
    ProposalResponse,
)
from app.services.proposal_service import ProposalService


router = APIRouter()


async def _get_proposal_or_404(db: AsyncSession, proposal_id: UUID, user: User) -> Proposal:
    proposal = await ProposalService(db).get_proposal_by_id(proposal_id, user.id)
    if not proposal:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Proposal not found",
        )
    return proposal


@router.get(
    "",
    response_model=List[ProposalResponse],
    summary="List proposals",
)
async def list_proposals(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    proposals = await ProposalService(db).get_proposals_for_user(current_user.id)
    return [ProposalResponse.model_validate(p) for p in proposals]


@router.post(
    "",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create proposal",
)
async def create_proposal(
    request: ProposalCreateRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    data = request.model_dump(exclude={"items"})
    try:
        proposal = await ProposalService(db).create_proposal(
            current_user,
            items=[item.model_dump() for item in request.items],
            **data,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return ProposalResponse.model_validate(proposal)


@router.get(
    "/{proposal_id}",
    response_model=ProposalResponse,
    summary="Get proposal",
)
async def get_proposal(
    proposal_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    proposal = await _get_proposal_or_404(db, proposal_id, current_user)
    return ProposalResponse.model_validate(proposal)


@router.put(
    "/{proposal_id}",
    response_model=ProposalResponse,
    summary="Update proposal",
)
async def update_proposal(
    proposal_id: UUID,
    request: ProposalUpdateRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    proposal = await _get_proposal_or_404(db, proposal_id, current_user)
    data = request.model_dump(exclude_unset=True, exclude={"items"})
    items = [item.model_dump() for item in request.items] if request.items is not None else None

    try:
        proposal = await ProposalService(db).update_proposal(proposal, items=items, **data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return ProposalResponse.model_validate(proposal)


@router.delete(
    "/{proposal_id}",
    response_model=MessageResponse,
    summary="Delete proposal",
)
async def delete_proposal(
    proposal_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    proposal = await _get_proposal_or_404(db, proposal_id, current_user)
    await ProposalService(db).delete_proposal(proposal)
    return MessageResponse(message="Proposal deleted successfully")


@router.post(
    "/{proposal_id}/convert",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Convert proposal to invoice",
    description="Creates a draft invoice with the proposal's client, items and modifiers.",
)
async def convert_proposal(
    proposal_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    proposal = await _get_proposal_or_404(db, proposal_id, current_user)
    try:
        invoice = await ProposalService(db).convert_to_invoice(proposal, current_user)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return InvoiceResponse.model_validate(invoice)
