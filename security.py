"""
Security Module: Caller Identity Foundation

Provides foundational security components including:
- JWT token creation and validation (python-jose)
- Bearer-token caller identity dependency for FastAPI
- Security response headers

Identity is the `sub` claim of a signed access token and must be a user UUID.
A missing or invalid token surfaces as AuthenticationRequiredError so the
domain error mapping renders it.

Architectural Pattern: Security Utilities + Cross-Cutting Concerns
Security Foundation: HTTP Bearer + JWT issued by an external identity provider
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from loguru import logger
from pydantic import BaseModel, Field

from config.constants import MESSAGES
from config.settings import get_settings
from core.exceptions import AuthenticationRequiredError

# Bearer scheme; missing headers are reported by get_current_user_id, not FastAPI
bearer_scheme = HTTPBearer(auto_error=False)

ACCESS_TOKEN_EXPIRE_MINUTES = 30

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Content-Security-Policy": "default-src 'self'",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


class TokenData(BaseModel):
    """Decoded access token claims."""

    user_id: UUID
    scopes: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    issued_at: Optional[datetime] = None
    jti: Optional[str] = None


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None,
    jti: Optional[str] = None,
) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to encode; `sub` must hold the user id
        expires_delta: Optional expiration time delta
        jti: JWT ID for token revocation

    Returns:
        str: The encoded JWT token
    """
    settings = get_settings()
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "jti": jti or str(uuid4()),
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
        }
    )
    return jwt.encode(
        to_encode, settings.secret_key.get_secret_value(), algorithm=settings.jwt_algorithm
    )


def decode_access_token(token: str) -> TokenData:
    """
    Decode and validate a JWT access token.

    Args:
        token: The JWT token to decode

    Returns:
        TokenData: The decoded token data

    Raises:
        AuthenticationRequiredError: If the token is invalid, expired or has no user id
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.warning(f"JWT validation failed | error={e}")
        raise AuthenticationRequiredError(MESSAGES.AUTH_REQUIRED, cause=e) from e

    subject = payload.get("sub")
    try:
        user_id = UUID(str(subject))
    except ValueError as e:
        logger.warning(f"JWT subject is not a user id | sub={subject}")
        raise AuthenticationRequiredError(MESSAGES.AUTH_REQUIRED, cause=e) from e

    exp = payload.get("exp")
    iat = payload.get("iat")
    return TokenData(
        user_id=user_id,
        scopes=payload.get("scopes", []),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
        issued_at=datetime.fromtimestamp(iat, tz=timezone.utc) if iat else None,
        jti=payload.get("jti"),
    )


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UUID:
    """
    FastAPI dependency resolving the authenticated caller id.

    Raises:
        AuthenticationRequiredError: If no bearer token was sent or it is invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequiredError(MESSAGES.AUTH_REQUIRED)
    return decode_access_token(credentials.credentials).user_id


__all__ = [
    "SECURITY_HEADERS",
    "TokenData",
    "create_access_token",
    "decode_access_token",
    "get_current_user_id",
    "bearer_scheme",
]
