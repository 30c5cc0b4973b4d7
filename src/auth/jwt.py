"""
Access token verification.

Tokens are issued by the identity service and signed with the shared
`JWT_SECRET`. This module only needs to read them; `create_access_token`
exists for tooling and tests.

Claims:
- sub: user id
- email: user email
- role: user role (administrator, super_admin, admin, user, ...)
- company_id: company binding, optional
- exp: expiry
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import structlog
from pydantic import BaseModel

from src.config import get_settings

logger = structlog.get_logger()


class TokenClaims(BaseModel):
    """Verified JWT claims."""

    sub: str
    email: str | None = None
    role: str | None = None
    company_id: int | None = None
    exp: datetime


def create_access_token(
    *,
    sub: str | int,
    email: str | None = None,
    role: str | None = None,
    company_id: int | None = None,
    expires_in: timedelta | None = None,
) -> str:
    settings = get_settings()
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET is required to create access tokens")

    now = datetime.now(timezone.utc)
    expiry = now + (expires_in or timedelta(minutes=settings.jwt_expiry_minutes))
    payload = {
        "sub": str(sub),
        "email": email,
        "role": role,
        "company_id": company_id,
        "iat": int(now.timestamp()),
        "exp": int(expiry.timestamp()),
    }
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims | None:
    """Return the claims of a valid token, or None."""
    settings = get_settings()
    if not settings.jwt_secret:
        logger.error("JWT_SECRET not configured")
        return None

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
        return None
    except jwt.InvalidTokenError as exc:
        logger.debug("Invalid access token", error=str(exc))
        return None

    # issuer is only enforced when configured
    if settings.jwt_issuer and payload.get("iss") != settings.jwt_issuer:
        return None

    company_id = payload.get("company_id")
    return TokenClaims(
        sub=str(payload["sub"]),
        email=payload.get("email"),
        role=payload.get("role"),
        company_id=int(company_id) if company_id not in (None, "") else None,
        exp=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
    )
