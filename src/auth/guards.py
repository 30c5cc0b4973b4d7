"""FastAPI dependencies for bearer authentication and role checks."""

from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.auth.jwt import TokenClaims, decode_access_token
from src.kernel.errors import ForbiddenError, UnauthorizedError

ADMIN_ROLES = ("administrator", "super_admin", "admin")

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenClaims:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError(message="Missing bearer token", code="auth.missing_token")

    claims = decode_access_token(credentials.credentials)
    if claims is None:
        raise UnauthorizedError(message="Invalid or expired token", code="auth.invalid_token")
    return claims


def require_roles(*roles: str) -> Callable:
    """Dependency factory allowing only the given roles."""
    allowed = {role.lower() for role in roles}

    async def dependency(user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
        if (user.role or "").lower() not in allowed:
            raise ForbiddenError(
                message="Insufficient role for this operation",
                code="auth.insufficient_role",
                meta={"required_roles": sorted(allowed)},
            )
        return user

    return dependency


require_admin = require_roles(*ADMIN_ROLES)
