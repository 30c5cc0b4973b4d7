"""Mail provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.mail.message import MailMessage, SendResult


class MailProviderError(Exception):
    """A single delivery attempt failed."""

    def __init__(self, provider: str, message: str, *, retryable: bool = True):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.retryable = retryable


class MailProvider(ABC):
    name: str = "provider"

    def __init__(self, settings):
        self.settings = settings

    @abstractmethod
    def is_configured(self) -> bool:
        """True when the credentials this provider needs are present."""

    @abstractmethod
    async def send(self, message: MailMessage) -> SendResult:
        """Deliver `message` once or raise `MailProviderError`."""

    @abstractmethod
    async def check_status(self) -> dict[str, Any]:
        """Return `{status, message, details?}` for the status endpoint."""

    def default_sender(self) -> str:
        return self.settings.mail_from
