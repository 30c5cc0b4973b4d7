"""
Airwallex gateway.

Thin async wrappers over the Airwallex REST API sharing one cached login
token, plus the per-user SCA token cache.
"""

from src.airwallex.auth import AirwallexAuthService
from src.airwallex.client import AirwallexClient, close_airwallex_client, get_airwallex_client
from src.airwallex.sca import ScaTokenCache, get_sca_token_cache

__all__ = [
    "AirwallexAuthService",
    "AirwallexClient",
    "ScaTokenCache",
    "close_airwallex_client",
    "get_airwallex_client",
    "get_sca_token_cache",
]
