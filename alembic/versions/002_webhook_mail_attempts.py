"""Track webhook mail attempts.

Revision ID: 002_webhook_mail_attempts
Revises: 001_initial_schema
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002_webhook_mail_attempts"
down_revision: Union[str, None] = "001_initial_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "webhooks",
        sa.Column("mail_attempts", sa.Integer, nullable=False, server_default="0"),
    )
    op.add_column("webhooks", sa.Column("last_mail_attempt_at", sa.DateTime, nullable=True))
    op.create_index(
        "ix_webhooks_unsent_queue",
        "webhooks",
        ["mail_sent", "mail_attempts", "received_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_webhooks_unsent_queue", table_name="webhooks")
    op.drop_column("webhooks", "last_mail_attempt_at")
    op.drop_column("webhooks", "mail_attempts")
