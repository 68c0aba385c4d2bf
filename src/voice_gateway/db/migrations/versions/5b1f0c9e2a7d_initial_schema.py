"""initial_schema

Revision ID: 5b1f0c9e2a7d
Revises:
Create Date: 2026-09-28 10:42:13.518206

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5b1f0c9e2a7d"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create initial database schema."""
    # Call quota per identity-provider user
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255)),
        sa.Column("calls_remaining", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )

    # Calls table
    op.create_table(
        "calls",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        # Caller
        sa.Column("caller_phone", sa.String(32), nullable=False),
        sa.Column("caller_name", sa.String(255)),
        # Outcome
        sa.Column("transcript", sa.Text),
        sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
        sa.Column("duration", sa.Integer),
        sa.Column("audio_url", sa.Text),
        # Origin
        sa.Column("source", sa.String(64)),
        sa.Column("is_demo", sa.Boolean, server_default=sa.false()),
        sa.Column("client_ip", sa.String(45)),
        # Timestamps
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_calls_user_status", "calls", ["user_id", "status"])
    op.create_index("ix_calls_created_at", "calls", ["created_at"])

    # Leads table
    op.create_table(
        "leads",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("call_id", sa.String(64)),
        # Contact
        sa.Column("name", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(32)),
        sa.Column("intent", sa.String(64)),
        sa.Column("source", sa.String(64)),
        # Qualification
        sa.Column("is_qualified", sa.Boolean, server_default=sa.false()),
        sa.Column("qualification_score", sa.Float),
        # Payment
        sa.Column("payment_link", sa.Text),
        sa.Column("payment_status", sa.String(20)),
        sa.Column("notified_at", sa.DateTime(timezone=True)),
        sa.Column("metadata", sa.JSON),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "qualification_score >= 0 AND qualification_score <= 1",
            name="ck_leads_qualification_score_range",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed')",
            name="ck_leads_payment_status",
        ),
    )
    op.create_index("ix_leads_qualified", "leads", ["is_qualified", "created_at"])
    op.create_index("ix_leads_payment_status", "leads", ["payment_status"])
    op.create_index("ix_leads_user_created", "leads", ["user_id", "created_at"])

    # Webhook events table
    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("processed", sa.Boolean, server_default=sa.false()),
        sa.Column("error_message", sa.Text),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index(
        "ix_webhook_events_processed", "webhook_events", ["processed", "created_at"]
    )
    op.create_index("ix_webhook_events_type", "webhook_events", ["event_type"])

    # Chat widget conversations
    op.create_table(
        "chat_conversations",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("conversation_id", sa.String(64), unique=True, nullable=False),
        sa.Column("session_id", sa.String(64), nullable=False),
        sa.Column("messages", sa.JSON, nullable=False),
        sa.Column("user_metadata", sa.JSON),
        # Latest turn's qualification
        sa.Column("sentiment_score", sa.Float, server_default="0.5"),
        sa.Column("intent", sa.String(20), server_default="general"),
        sa.Column("urgency", sa.String(10), server_default="medium"),
        sa.Column("keywords", sa.JSON),
        sa.Column("message_count", sa.Integer, server_default="0"),
        # Lead capture
        sa.Column("lead_captured", sa.Boolean, server_default=sa.false()),
        sa.Column("lead_captured_at", sa.DateTime(timezone=True)),
        # Timestamps
        sa.Column(
            "last_message_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index(
        "ix_chat_conversations_session_id", "chat_conversations", ["session_id"]
    )
    op.create_index(
        "ix_chat_conversations_lead_captured", "chat_conversations", ["lead_captured"]
    )
    op.create_index(
        "ix_chat_conversations_last_message_at",
        "chat_conversations",
        ["last_message_at"],
    )

    # Request audit trail
    op.create_table(
        "request_logs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.String(64)),
        sa.Column("endpoint", sa.String(512), nullable=False),
        sa.Column("method", sa.String(10), nullable=False),
        sa.Column("status_code", sa.Integer),
        sa.Column("request_body", sa.JSON),
        sa.Column("response_body", sa.JSON),
        sa.Column("error_message", sa.Text),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("duration_ms", sa.Integer),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_request_logs_user_id", "request_logs", ["user_id"])
    op.create_index("ix_request_logs_created_at", "request_logs", ["created_at"])
    op.create_index("ix_request_logs_endpoint", "request_logs", ["endpoint"])


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table("request_logs")
    op.drop_table("chat_conversations")
    op.drop_table("webhook_events")
    op.drop_table("leads")
    op.drop_table("calls")
    op.drop_table("profiles")
