"""initial schema: user, usagelog, webhookevent

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone_number", sa.String(length=32), nullable=False),
        sa.Column("nickname", sa.String(length=120), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sub_tier", sa.String(length=16), nullable=True),
        sa.Column("discount", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("discount_tier", sa.String(length=16), nullable=True),
        sa.Column("credits", sa.Float(), nullable=False, server_default="0"),
        sa.Column("credits_left", sa.Float(), nullable=False, server_default="0"),
        sa.Column("msgs_left", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notify", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("preferred_number", sa.String(length=32), nullable=True),
        sa.Column("time_to_live", sa.Integer(), nullable=True),
        sa.Column("charge_when_under", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("charge_back_to", sa.Float(), nullable=True),
        sa.Column("stripe_customer_id", sa.String(length=64), nullable=True),
        sa.Column("twilio_phone", sa.String(length=32), nullable=True),
        sa.Column("twilio_sid", sa.String(length=64), nullable=True),
        sa.Column("twilio_token", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_index("ix_user_phone_number", "user", ["phone_number"], unique=True)
    op.create_index("ix_user_stripe_customer_id", "user", ["stripe_customer_id"])

    op.create_table(
        "usagelog",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("activity_type", sa.String(length=32), nullable=False),
        sa.Column("timestamp", sa.Integer(), nullable=False),
        sa.Column("sid", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=True),
        sa.Column("credits", sa.Float(), nullable=True),
        sa.Column("time_consumed", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("recharge_threshold_timestamp", sa.Integer(), nullable=True),
        sa.Column("zero_credits_timestamp", sa.Integer(), nullable=True),
    )
    op.create_index("ix_usagelog_user_id", "usagelog", ["user_id"])
    op.create_index("ix_usagelog_activity_type", "usagelog", ["activity_type"])
    op.create_index("ix_usagelog_timestamp", "usagelog", ["timestamp"])

    op.create_table(
        "webhookevent",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("provider", sa.String(length=40), nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("signature", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("provider", "external_id", name="uq_webhookevent_provider_external_id"),
    )
    op.create_index("ix_webhookevent_provider", "webhookevent", ["provider"])


def downgrade() -> None:
    op.drop_index("ix_webhookevent_provider", table_name="webhookevent")
    op.drop_table("webhookevent")
    op.drop_index("ix_usagelog_timestamp", table_name="usagelog")
    op.drop_index("ix_usagelog_activity_type", table_name="usagelog")
    op.drop_index("ix_usagelog_user_id", table_name="usagelog")
    op.drop_table("usagelog")
    op.drop_index("ix_user_stripe_customer_id", table_name="user")
    op.drop_index("ix_user_phone_number", table_name="user")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
