"""
Webhook Database Models

Inbound Airwallex webhooks, the event catalogue, and per-event
notification templates.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin


class Webhook(Base):
    """
    A received Airwallex webhook.

    `created_at` is the event time reported by Airwallex; `received_at` is
    when we stored it. `mail_sent` drives the notifier sweep; `mail_attempts`
    counts sweeps that tried to notify, so rows that keep failing move to the
    back of the queue and stop being picked after `webhook_mail_max_attempts`.
    """

    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    data_json = Column(JSON, nullable=False, default=dict)
    webhook_id = Column(String(255), nullable=False, index=True)
    webhook_name = Column(String(255), nullable=False, index=True)

    received_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    mail_sent = Column(Boolean, default=False, nullable=False, index=True)
    mail_sent_at = Column(DateTime, nullable=True)
    mail_attempts = Column(Integer, default=0, nullable=False)
    last_mail_attempt_at = Column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Webhook {self.id} {self.webhook_name} account={self.account_id}>"


class WebhookEventType(TimestampMixin, Base):
    __tablename__ = "webhook_event_types"

    event_name = Column(String(255), nullable=False, unique=True)
    description = Column(String(500), nullable=True)

    templates = relationship("WebhookTemplate", back_populates="event_type", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<WebhookEventType {self.event_name}>"


class WebhookTemplate(TimestampMixin, Base):
    """Notification template for one (event type, channel, locale)."""

    __tablename__ = "webhook_templates"
    __table_args__ = (
        UniqueConstraint("event_type_id", "channel", "locale", name="uq_webhook_templates_event_channel_locale"),
    )

    event_type_id = Column(Integer, ForeignKey("webhook_event_types.id", ondelete="CASCADE"), nullable=False, index=True)

    channel = Column(String(32), nullable=False, index=True)  # email | sms | web | slack | internal
    locale = Column(String(16), nullable=False, default="en")

    subject = Column(String(255), nullable=True)
    header = Column(String(255), nullable=True)
    subtext1 = Column(String(500), nullable=True)
    subtext2 = Column(String(500), nullable=True)
    main_color = Column(String(32), nullable=True)
    body = Column(Text, nullable=False, default="")
    table_rows_json = Column(JSON, nullable=True)  # [{"key": ..., "value": ...}]

    is_active = Column(Boolean, default=True, nullable=False)
    auto_send_mail = Column(Boolean, default=False, nullable=False)

    event_type = relationship("WebhookEventType", back_populates="templates", lazy="joined")

    def __repr__(self) -> str:
        return f"<WebhookTemplate {self.id} {self.channel}/{self.locale}>"
