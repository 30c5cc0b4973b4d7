"""
SCA token cache.

Strong Customer Authentication tokens are minted from an Airwallex
`scaSetup` authorization code and cached per (user, connected account)
for five minutes.
"""

from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

import structlog

from src.airwallex.client import get_airwallex_client
from src.airwallex.resources import AuthorizationResource

logger = structlog.get_logger()

SCA_TOKEN_TTL = timedelta(minutes=5)
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits

AuthorizationCodeFetcher = Callable[..., Awaitable[dict]]

_cache: "ScaTokenCache | None" = None


@dataclass
class ScaTokenInfo:
    token: str
    expires_at: datetime
    session_code: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "expiresAt": self.expires_at.isoformat(),
            "sessionCode": self.session_code,
        }


def cache_key(user_id: str, account_id: str | None) -> str:
    return f"{user_id}_{account_id or 'default'}"


def generate_sca_token(auth_code: str) -> str:
    suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(9))
    return f"sca_{auth_code}_{int(time.time() * 1000)}_{suffix}"


class ScaTokenCache:
    """In-process SCA token store keyed by `{user_id}_{account_id|default}`."""

    def __init__(self, fetch_authorization_code: AuthorizationCodeFetcher):
        self._fetch_authorization_code = fetch_authorization_code
        self._tokens: dict[str, ScaTokenInfo] = {}

    async def get_token(self, user_id: str, account_id: str | None = None, force_new: bool = False) -> ScaTokenInfo:
        key = cache_key(user_id, account_id)
        if not force_new:
            cached = self._tokens.get(key)
            if cached is not None and not cached.is_expired():
                logger.debug("Using cached SCA token", user_id=user_id)
                return cached

        auth = await self._fetch_authorization_code("scaSetup", account_id)
        code = auth["authorization_code"]
        info = ScaTokenInfo(
            token=generate_sca_token(code),
            expires_at=datetime.now(timezone.utc) + SCA_TOKEN_TTL,
            session_code=code,
        )
        self._tokens[key] = info
        logger.info("SCA token generated", user_id=user_id, account_id=account_id)
        return info

    def validate(self, token: str, user_id: str) -> bool:
        prefix = f"{user_id}_"
        for key, info in list(self._tokens.items()):
            if key.startswith(prefix) and info.token == token:
                if info.is_expired():
                    del self._tokens[key]
                    return False
                return True
        return False

    def clear(self, user_id: str, account_id: str | None = None) -> None:
        self._tokens.pop(cache_key(user_id, account_id), None)
        logger.info("SCA token cleared", user_id=user_id, account_id=account_id)

    def clear_all(self) -> None:
        self._tokens.clear()
        logger.info("All SCA tokens cleared")

    def check_setup_status(self, user_id: str) -> bool:
        prefix = f"{user_id}_"
        return any(key.startswith(prefix) for key in self._tokens)


def get_sca_token_cache() -> ScaTokenCache:
    """Process-wide cache backed by the shared Airwallex client."""
    global _cache
    if _cache is None:
        authorization = AuthorizationResource(get_airwallex_client())
        _cache = ScaTokenCache(authorization.get_authorization_code)
    return _cache
