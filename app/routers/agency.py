"""
InvoiceFlow - Agency Router

Agency plan features: team, client portal links, white label, branded
email, recurring invoices and API keys. Every endpoint requires the
agency plan to be in force.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_async_session
from app.dependencies import require_agency_plan
from app.models.agency import ClientPortalAccess
from app.models.user import User
from app.schemas.agency import (
    TeamInviteRequest,
    TeamMemberUpdateRequest,
    TeamMemberResponse,
    TeamListResponse,
    PortalAccessCreateRequest,
    PortalAccessResponse,
    WhiteLabelRequest,
    WhiteLabelResponse,
    EmailSettingsRequest,
    EmailSettingsResponse,
    RecurringCreateRequest,
    RecurringResponse,
    ApiKeyCreateRequest,
    ApiKeyResponse,
    ApiKeyCreatedResponse,
)
from app.schemas.common import MessageResponse
from app.services.agency_service import AgencyService, EMAIL_PRESETS
from app.services.email_service import EmailService
from app.services.portal_service import PortalService, build_portal_url
from app.services.settings_service import SettingsService


router = APIRouter()


def _not_found(what: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{what} not found",
    )


def portal_access_to_response(access: ClientPortalAccess) -> PortalAccessResponse:
    return PortalAccessResponse(
        id=access.id,
        client_email=access.client_email,
        access_token=access.access_token,
        portal_url=build_portal_url(access.access_token),
        expires_at=access.expires_at,
        is_active=access.is_active,
        last_accessed_at=access.last_accessed_at,
        created_at=access.created_at,
    )


def email_settings_to_response(email_settings) -> EmailSettingsResponse:
    return EmailSettingsResponse(
        provider=email_settings.provider,
        smtp_host=email_settings.smtp_host,
        smtp_port=email_settings.smtp_port,
        smtp_secure=email_settings.smtp_secure,
        smtp_username=email_settings.smtp_username,
        has_password=bool(email_settings.smtp_password),
        from_name=email_settings.from_name,
        from_email=email_settings.from_email,
        reply_to=email_settings.reply_to,
        is_active=email_settings.is_active,
    )


# ===========================================
# TEAM
# ===========================================

@router.get(
    "/team",
    response_model=TeamListResponse,
    summary="List team members",
)
async def list_team(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    members = await AgencyService(db).list_team(current_user.id)
    return TeamListResponse(
        members=[TeamMemberResponse.model_validate(m) for m in members],
        seats_used=len(members) + 1,
        seat_limit=settings.agency_team_size_limit,
    )


@router.post(
    "/team",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite team member",
    description="Adds a pending member and emails an invitation.",
)
async def invite_team_member(
    request: TeamInviteRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        member = await AgencyService(db).invite_member(
            current_user,
            email=request.email,
            name=request.name,
            role=request.role,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    company = await SettingsService(db).get_company(current_user.id)
    await EmailService(db).send_team_invitation(current_user, member, company)
    await db.refresh(member)

    return TeamMemberResponse.model_validate(member)


@router.put(
    "/team/{member_id}",
    response_model=TeamMemberResponse,
    summary="Update team member",
)
async def update_team_member(
    member_id: UUID,
    request: TeamMemberUpdateRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = AgencyService(db)
    member = await service.get_member(member_id, current_user.id)
    if not member:
        raise _not_found("Team member")

    member = await service.update_member(
        member,
        role=request.role,
        status=request.status,
        name=request.name,
    )
    return TeamMemberResponse.model_validate(member)


@router.delete(
    "/team/{member_id}",
    response_model=MessageResponse,
    summary="Remove team member",
)
async def remove_team_member(
    member_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = AgencyService(db)
    member = await service.get_member(member_id, current_user.id)
    if not member:
        raise _not_found("Team member")

    await service.remove_member(member)
    return MessageResponse(message="Team member removed successfully")


# ===========================================
# CLIENT PORTAL ACCESS
# ===========================================

@router.get(
    "/portal-access",
    response_model=List[PortalAccessResponse],
    summary="List client portal links",
)
async def list_portal_access(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    rows = await PortalService(db).list_access(current_user.id)
    return [portal_access_to_response(a) for a in rows]


@router.post(
    "/portal-access",
    response_model=PortalAccessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create client portal link",
)
async def create_portal_access(
    request: PortalAccessCreateRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    access = await PortalService(db).create_access(
        current_user.id,
        request.client_email,
        valid_days=request.valid_days,
    )

    if request.send_email:
        company = await SettingsService(db).get_company(current_user.id)
        await EmailService(db).send_portal_link(
            current_user,
            access,
            build_portal_url(access.access_token),
            company,
        )
        await db.refresh(access)

    return portal_access_to_response(access)


@router.post(
    "/portal-access/{access_id}/toggle",
    response_model=PortalAccessResponse,
    summary="Enable or disable portal link",
)
async def toggle_portal_access(
    access_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = PortalService(db)
    access = await service.get_access_by_id(access_id, current_user.id)
    if not access:
        raise _not_found("Portal access")

    access = await service.toggle_access(access)
    return portal_access_to_response(access)


@router.post(
    "/portal-access/{access_id}/resend",
    response_model=MessageResponse,
    summary="Email portal link again",
)
async def resend_portal_access(
    access_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    access = await PortalService(db).get_access_by_id(access_id, current_user.id)
    if not access:
        raise _not_found("Portal access")
    if not access.is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Portal link is disabled or expired",
        )

    company = await SettingsService(db).get_company(current_user.id)
    await EmailService(db).send_portal_link(
        current_user,
        access,
        build_portal_url(access.access_token),
        company,
    )
    return MessageResponse(message=f"Portal link sent to {access.client_email}")


@router.delete(
    "/portal-access/{access_id}",
    response_model=MessageResponse,
    summary="Revoke portal link",
)
async def revoke_portal_access(
    access_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = PortalService(db)
    access = await service.get_access_by_id(access_id, current_user.id)
    if not access:
        raise _not_found("Portal access")

    await service.revoke_access(access)
    return MessageResponse(message="Portal access revoked successfully")


# ===========================================
# WHITE LABEL
# ===========================================

@router.get(
    "/white-label",
    response_model=WhiteLabelResponse,
    summary="Get white-label settings",
)
async def get_white_label(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    white_label = await AgencyService(db).get_white_label(current_user.id)
    if not white_label:
        return WhiteLabelResponse(
            primary_color="#3B82F6",
            secondary_color="#1E40AF",
            hide_branding=False,
        )
    return WhiteLabelResponse.model_validate(white_label)


@router.put(
    "/white-label",
    response_model=WhiteLabelResponse,
    summary="Save white-label settings",
)
async def save_white_label(
    request: WhiteLabelRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    white_label = await AgencyService(db).upsert_white_label(
        current_user.id,
        **request.model_dump(exclude_unset=True),
    )
    return WhiteLabelResponse.model_validate(white_label)


# ===========================================
# BRANDED EMAIL SETTINGS
# ===========================================

@router.get(
    "/email-settings/presets",
    summary="SMTP provider presets",
)
async def list_email_presets(
    current_user: User = Depends(require_agency_plan),
):
    return {
        name: {"smtp_host": host, "smtp_port": port, "smtp_secure": secure}
        for name, (host, port, secure) in EMAIL_PRESETS.items()
    }


@router.get(
    "/email-settings",
    response_model=EmailSettingsResponse,
    summary="Get email settings",
)
async def get_email_settings(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    email_settings = await AgencyService(db).get_email_settings(current_user.id)
    if not email_settings:
        raise _not_found("Email settings")
    return email_settings_to_response(email_settings)


@router.put(
    "/email-settings",
    response_model=EmailSettingsResponse,
    summary="Save email settings",
)
async def save_email_settings(
    request: EmailSettingsRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    data = request.model_dump(exclude_unset=True)
    provider = data.pop("provider", "custom")
    try:
        email_settings = await AgencyService(db).upsert_email_settings(
            current_user.id,
            provider=provider,
            **data,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return email_settings_to_response(email_settings)


@router.delete(
    "/email-settings",
    response_model=MessageResponse,
    summary="Delete email settings",
)
async def delete_email_settings(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = AgencyService(db)
    email_settings = await service.get_email_settings(current_user.id)
    if not email_settings:
        raise _not_found("Email settings")

    await service.delete_email_settings(email_settings)
    return MessageResponse(message="Email settings deleted successfully")


# ===========================================
# RECURRING INVOICES
# ===========================================

@router.get(
    "/recurring",
    response_model=List[RecurringResponse],
    summary="List recurring schedules",
)
async def list_recurring(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    rows = await AgencyService(db).list_recurring(current_user.id)
    return [RecurringResponse.model_validate(r) for r in rows]


@router.post(
    "/recurring",
    response_model=RecurringResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule recurring invoice",
)
async def create_recurring(
    request: RecurringCreateRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        recurring = await AgencyService(db).create_recurring(
            user_id=current_user.id,
            source_invoice_id=request.source_invoice_id,
            frequency=request.frequency,
            start_date=request.start_date,
            end_date=request.end_date,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return RecurringResponse.model_validate(recurring)


@router.post(
    "/recurring/{recurring_id}/toggle",
    response_model=RecurringResponse,
    summary="Pause or resume recurring schedule",
)
async def toggle_recurring(
    recurring_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = AgencyService(db)
    recurring = await service.get_recurring(recurring_id, current_user.id)
    if not recurring:
        raise _not_found("Recurring schedule")

    recurring = await service.toggle_recurring(recurring)
    return RecurringResponse.model_validate(recurring)


@router.delete(
    "/recurring/{recurring_id}",
    response_model=MessageResponse,
    summary="Delete recurring schedule",
)
async def delete_recurring(
    recurring_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = AgencyService(db)
    recurring = await service.get_recurring(recurring_id, current_user.id)
    if not recurring:
        raise _not_found("Recurring schedule")

    await service.delete_recurring(recurring)
    return MessageResponse(message="Recurring schedule deleted successfully")


# ===========================================
# API KEYS
# ===========================================

@router.get(
    "/api-keys",
    response_model=List[ApiKeyResponse],
    summary="List API keys",
)
async def list_api_keys(
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    keys = await AgencyService(db).list_api_keys(current_user.id)
    return [ApiKeyResponse.model_validate(k) for k in keys]


@router.post(
    "/api-keys",
    response_model=ApiKeyCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create API key",
    description="The full key is only returned in this response.",
)
async def create_api_key(
    request: ApiKeyCreateRequest,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    api_key, raw_key = await AgencyService(db).create_api_key(current_user.id, request.name)
    return ApiKeyCreatedResponse(
        id=api_key.id,
        name=api_key.name,
        key_prefix=api_key.key_prefix,
        is_active=api_key.is_active,
        last_used_at=api_key.last_used_at,
        created_at=api_key.created_at,
        key=raw_key,
    )


@router.delete(
    "/api-keys/{key_id}",
    response_model=ApiKeyResponse,
    summary="Revoke API key",
)
async def revoke_api_key(
    key_id: UUID,
    current_user: User = Depends(require_agency_plan),
    db: AsyncSession = Depends(get_async_session),
):
    service = AgencyService(db)
    api_key = await service.get_api_key(key_id, current_user.id)
    if not api_key:
        raise _not_found("API key")

    api_key = await service.revoke_api_key(api_key)
    return ApiKeyResponse.model_validate(api_key)
