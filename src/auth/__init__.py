"""Authentication for the Magna Porta API."""

from src.auth.guards import ADMIN_ROLES, get_current_user, require_admin, require_roles
from src.auth.jwt import TokenClaims, create_access_token, decode_access_token

__all__ = [
    "ADMIN_ROLES",
    "TokenClaims",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "require_admin",
    "require_roles",
]
