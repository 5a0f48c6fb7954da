"""
InvoiceFlow - FastAPI Dependencies

Shared dependencies for authentication and plan gating.

This module provides dependency injection for:
1. Token identity (the identity provider's user id)
2. Current user profile, via bearer token or agency API key
3. Admin access
4. Agency plan gating
"""

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_async_session
from app.models.user import User, UserPlan
from app.services.agency_service import AgencyService
from app.utils.error_handling import PlanRequiredException
from app.utils.security import verify_access_token


# HTTP Bearer token security
security = HTTPBearer(auto_error=False)

API_KEY_HEADER = "X-API-Key"


async def get_token_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Verify the bearer token and return its payload.

    `sub` is the identity provider's user id and doubles as the profile id.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload["user_id"] = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user ID in token",
        )

    return payload


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Get the current user's profile.

    Credentials can be provided via:
    1. Authorization: Bearer <token> header
    2. X-API-Key header (agency API keys)

    Raises:
        HTTPException: 401 on bad credentials or missing profile, 403 if banned
    """
    user = None

    if credentials:
        payload = await get_token_identity(credentials)
        user = await db.get(User, payload["user_id"])
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Profile not found. Create your profile first.",
            )
    else:
        api_key = request.headers.get(API_KEY_HEADER)
        if not api_key:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user = await AgencyService(db).authenticate_api_key(api_key)
        if user is None or not user.is_agency:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid API key",
            )

    if user.is_banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been suspended",
        )

    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_async_session),
) -> Optional[User]:
    """Current user when credentials are sent, otherwise None."""
    if not credentials and not request.headers.get(API_KEY_HEADER):
        return None
    return await get_current_user(request, credentials, db)


async def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require the caller's email to be on the admin list."""
    if current_user.email.lower() not in settings.admin_emails_list:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


async def require_agency_plan(
    current_user: User = Depends(get_current_user),
) -> User:
    """Require the agency plan to be in force."""
    if current_user.effective_plan != UserPlan.AGENCY:
        raise PlanRequiredException(
            required_plan=UserPlan.AGENCY.value,
            current_plan=current_user.effective_plan.value,
        )
    return current_user


def get_client_ip(request: Request) -> Optional[str]:
    """Client IP, honouring X-Forwarded-For from a proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_request_info(request: Request) -> dict:
    """IP and user agent for admin activity logging."""
    return {
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("User-Agent"),
    }
