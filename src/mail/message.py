"""Provider-neutral outbound mail message."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass
class MailMessage:
    to: list[str]
    subject: str
    text: str | None = None
    html: str | None = None
    sender: str | None = None
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    attachments: list[MailAttachment] = field(default_factory=list)

    def __post_init__(self) -> None:
        if isinstance(self.to, str):
            self.to = [self.to]
        if not self.to:
            raise ValueError("Mail message needs at least one recipient")
        if not self.text and not self.html:
            raise ValueError("Mail message needs a text or html body")

    @property
    def recipients(self) -> list[str]:
        """Every envelope recipient, including cc and bcc."""
        return [*self.to, *self.cc, *self.bcc]


@dataclass
class SendResult:
    provider: str
    message_id: str
    accepted: list[str]

    def to_dict(self) -> dict:
        return {"provider": self.provider, "messageId": self.message_id, "accepted": self.accepted}
