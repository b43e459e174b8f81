"""init outreach schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_ENUMS: dict[str, tuple[str, ...]] = {
    "risk_category": (
        "expiring-card",
        "failed-payment",
        "multiple-failures",
        "high-value",
        "low-engagement",
    ),
    "risk_severity": ("low", "medium", "high", "critical"),
    "account_status": ("active", "at-risk", "churned", "suspended"),
    "intervention_outcome": ("success", "failed", "no_answer", "scheduled"),
    "chat_session_status": ("active", "completed", "abandoned"),
    "message_sender": ("ai", "customer", "system"),
    "message_kind": ("text", "greeting", "system"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*_ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in _ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "customers",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("service_provider", sa.String(length=100), nullable=False),
        sa.Column("service_type", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("account_value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("risk_category", _enum("risk_category"), nullable=False),
        sa.Column(
            "risk_severity",
            _enum("risk_severity"),
            nullable=False,
            server_default=sa.text("'medium'"),
        ),
        sa.Column(
            "account_status",
            _enum("account_status"),
            nullable=False,
            server_default=sa.text("'active'"),
        ),
        sa.Column("last_payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_billing_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_customers_email"),
    )
    op.create_index("ix_customers_account_status", "customers", ["account_status"], unique=False)

    op.create_table(
        "payment_methods",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column("card_type", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("last_four_digits", sa.String(length=4), nullable=False, server_default=""),
        sa.Column("expiry_month", sa.Integer(), nullable=True),
        sa.Column("expiry_year", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("failure_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_failure_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_success_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_payment_methods_customer_id", "payment_methods", ["customer_id"], unique=False
    )

    op.create_table(
        "risk_factors",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column("factor", sa.String(length=100), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_risk_factors_customer_id", "risk_factors", ["customer_id"], unique=False)

    op.create_table(
        "interventions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column(
            "occurred_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("outcome", _enum("intervention_outcome"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("agent_id", sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_interventions_customer_id", "interventions", ["customer_id"], unique=False)

    op.create_table(
        "chat_sessions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=False),
        sa.Column(
            "status",
            _enum("chat_session_status"),
            nullable=False,
            server_default=sa.text("'active'"),
        ),
        sa.Column("payment_issue", sa.String(length=60), nullable=True),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("outcome", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chat_sessions_customer_id", "chat_sessions", ["customer_id"], unique=False)

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("chat_session_id", sa.String(length=64), nullable=False),
        sa.Column("sender", _enum("message_sender"), nullable=False),
        sa.Column(
            "kind",
            _enum("message_kind"),
            nullable=False,
            server_default=sa.text("'text'"),
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["chat_session_id"], ["chat_sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_chat_messages_chat_session_id", "chat_messages", ["chat_session_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_chat_messages_chat_session_id", table_name="chat_messages")
    op.drop_table("chat_messages")
    op.drop_index("ix_chat_sessions_customer_id", table_name="chat_sessions")
    op.drop_table("chat_sessions")
    op.drop_index("ix_interventions_customer_id", table_name="interventions")
    op.drop_table("interventions")
    op.drop_index("ix_risk_factors_customer_id", table_name="risk_factors")
    op.drop_table("risk_factors")
    op.drop_index("ix_payment_methods_customer_id", table_name="payment_methods")
    op.drop_table("payment_methods")
    op.drop_index("ix_customers_account_status", table_name="customers")
    op.drop_table("customers")

    bind = op.get_bind()
    for name in reversed(list(_ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
