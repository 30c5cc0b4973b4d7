"""Create initial schema.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "plan_types",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )

    op.create_table(
        "plans",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("monthly_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("annual_price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("max_users", sa.Integer, nullable=True),
        sa.Column("max_transactions_per_month", sa.Integer, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("icon", sa.String(100), nullable=True),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column(
            "plan_type_id",
            sa.Integer,
            sa.ForeignKey("plan_types.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_plans_plan_type_id", "plans", ["plan_type_id"])

    op.create_table(
        "companies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("airwallex_account_id", sa.String(255), nullable=True),
        sa.Column("plan_id", sa.Integer, sa.ForeignKey("plans.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_companies_airwallex_account_id", "companies", ["airwallex_account_id"])
    op.create_index("ix_companies_plan_id", "companies", ["plan_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("phone_number", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("role", sa.String(64), nullable=True),
        sa.Column("company_id", sa.Integer, sa.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_company_id", "users", ["company_id"])

    op.create_table(
        "currency_groups",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "currencies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(3), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("symbol", sa.String(10), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "group_id",
            sa.Integer,
            sa.ForeignKey("currency_groups.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_currencies_group_id", "currencies", ["group_id"])

    op.create_table(
        "plan_currency_rates",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("plan_id", sa.Integer, sa.ForeignKey("plans.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer,
            sa.ForeignKey("currency_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("conversion_rate", sa.Numeric(10, 4), nullable=False),
        sa.Column("aw_rate", sa.Numeric(10, 4), nullable=False, server_default="2.0"),
        sa.Column("mp_rate", sa.Numeric(10, 4), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("plan_id", "group_id", name="uq_plan_currency_rates_plan_group"),
    )
    op.create_index("ix_plan_currency_rates_plan_id", "plan_currency_rates", ["plan_id"])
    op.create_index("ix_plan_currency_rates_group_id", "plan_currency_rates", ["group_id"])

    op.create_table(
        "transfer_markup_rates",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("plan_id", sa.Integer, sa.ForeignKey("plans.id", ondelete="CASCADE"), nullable=False),
        sa.Column("region", sa.String(100), nullable=False),
        sa.Column("country", sa.String(100), nullable=False),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("transaction_type", sa.String(50), nullable=True),
        sa.Column("transfer_method", sa.String(10), nullable=False),
        sa.Column("fee_sha_percentage", sa.Numeric(10, 3), nullable=True),
        sa.Column("fee_sha_minimum", sa.Numeric(10, 2), nullable=True),
        sa.Column("fee_our_percentage", sa.Numeric(10, 3), nullable=False),
        sa.Column("fee_our_minimum", sa.Numeric(10, 2), nullable=False),
        sa.Column("fee_currency", sa.String(3), nullable=False),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint(
            "plan_id",
            "country_code",
            "currency",
            "transfer_method",
            "transaction_type",
            name="uq_transfer_markup_rates_corridor",
        ),
    )
    op.create_index("ix_transfer_markup_rates_plan_id", "transfer_markup_rates", ["plan_id"])
    op.create_index("ix_transfer_markup_rates_country_code", "transfer_markup_rates", ["country_code"])
    op.create_index("ix_transfer_markup_rates_currency", "transfer_markup_rates", ["currency"])

    op.create_table(
        "webhooks",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("data_json", sa.JSON, nullable=False),
        sa.Column("webhook_id", sa.String(255), nullable=False),
        sa.Column("webhook_name", sa.String(255), nullable=False),
        sa.Column("received_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("mail_sent", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("mail_sent_at", sa.DateTime, nullable=True),
    )
    op.create_index("ix_webhooks_account_id", "webhooks", ["account_id"])
    op.create_index("ix_webhooks_webhook_id", "webhooks", ["webhook_id"])
    op.create_index("ix_webhooks_webhook_name", "webhooks", ["webhook_name"])
    op.create_index("ix_webhooks_mail_sent", "webhooks", ["mail_sent"])

    op.create_table(
        "webhook_event_types",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("event_name", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.String(500), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "webhook_templates",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "event_type_id",
            sa.Integer,
            sa.ForeignKey("webhook_event_types.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("channel", sa.String(32), nullable=False),
        sa.Column("locale", sa.String(16), nullable=False, server_default="en"),
        sa.Column("subject", sa.String(255), nullable=True),
        sa.Column("header", sa.String(255), nullable=True),
        sa.Column("subtext1", sa.String(500), nullable=True),
        sa.Column("subtext2", sa.String(500), nullable=True),
        sa.Column("main_color", sa.String(32), nullable=True),
        sa.Column("body", sa.Text, nullable=False, server_default=""),
        sa.Column("table_rows_json", sa.JSON, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("auto_send_mail", sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint(
            "event_type_id",
            "channel",
            "locale",
            name="uq_webhook_templates_event_channel_locale",
        ),
    )
    op.create_index("ix_webhook_templates_event_type_id", "webhook_templates", ["event_type_id"])
    op.create_index("ix_webhook_templates_channel", "webhook_templates", ["channel"])


def downgrade() -> None:
    op.drop_index("ix_webhook_templates_channel", table_name="webhook_templates")
    op.drop_index("ix_webhook_templates_event_type_id", table_name="webhook_templates")
    op.drop_table("webhook_templates")
    op.drop_table("webhook_event_types")

    op.drop_index("ix_webhooks_mail_sent", table_name="webhooks")
    op.drop_index("ix_webhooks_webhook_name", table_name="webhooks")
    op.drop_index("ix_webhooks_webhook_id", table_name="webhooks")
    op.drop_index("ix_webhooks_account_id", table_name="webhooks")
    op.drop_table("webhooks")

    op.drop_index("ix_transfer_markup_rates_currency", table_name="transfer_markup_rates")
    op.drop_index("ix_transfer_markup_rates_country_code", table_name="transfer_markup_rates")
    op.drop_index("ix_transfer_markup_rates_plan_id", table_name="transfer_markup_rates")
    op.drop_table("transfer_markup_rates")

    op.drop_index("ix_plan_currency_rates_group_id", table_name="plan_currency_rates")
    op.drop_index("ix_plan_currency_rates_plan_id", table_name="plan_currency_rates")
    op.drop_table("plan_currency_rates")

    op.drop_index("ix_currencies_group_id", table_name="currencies")
    op.drop_table("currencies")
    op.drop_table("currency_groups")

    op.drop_index("ix_users_company_id", table_name="users")
    op.drop_table("users")

    op.drop_index("ix_companies_plan_id", table_name="companies")
    op.drop_index("ix_companies_airwallex_account_id", table_name="companies")
    op.drop_table("companies")

    op.drop_index("ix_plans_plan_type_id", table_name="plans")
    op.drop_table("plans")
    op.drop_table("plan_types")
