"""
InvoiceFlow - Security Utilities

JWT verification for tokens issued by the hosted identity provider,
plus token and API key helpers.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from jose import JWTError, jwt

from app.config import settings


API_KEY_PREFIX = "ifk_"


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Production tokens come from the identity provider; this is used by
    tooling and tests that need a token signed with the shared secret.

    Args:
        data: Dictionary containing token payload
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire, "type": "access"})

    encoded_jwt = jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )

    return encoded_jwt


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and verify a JWT token.

    Args:
        token: JWT token string

    Returns:
        Token payload dict or None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False},
        )
        return payload
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[dict]:
    """
    Verify an access token and return payload.

    Tokens without a `type` claim are accepted, since the identity
    provider does not set one. Refresh or other typed tokens are not.
    """
    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        return None
    if payload.get("type", "access") != "access":
        return None
    return payload


def generate_portal_token() -> str:
    """Random URL-safe token for client portal links."""
    return secrets.token_urlsafe(32)


def hash_api_key(api_key: str) -> str:
    """Hash an API key for storage."""
    return hashlib.sha256(api_key.encode()).hexdigest()


def generate_api_key() -> Tuple[str, str, str]:
    """
    Generate a new API key.

    Returns:
        (plain key, display prefix, sha256 hash). The plain key is shown once.
    """
    api_key = f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return api_key, api_key[:12], hash_api_key(api_key)
