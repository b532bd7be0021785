"""Create Jump, tool prompt, usage and credit tables.

Revision ID: 3f6a2c9d1e70
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "3f6a2c9d1e70"
down_revision = None
branch_labels = None
depends_on = None

_jump_status = postgresql.ENUM("generating", "active", "completed", name="jump_status", create_type=False)
_credit_transaction_type = postgresql.ENUM("purchase", "usage", "welcome_bonus", name="credit_transaction_type", create_type=False)


def upgrade() -> None:
  """Upgrade schema."""
  bind = op.get_bind()
  _jump_status.create(bind, checkfirst=True)
  _credit_transaction_type.create(bind, checkfirst=True)

  op.create_table(
    "user_jumps",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("profile_id", postgresql.UUID(as_uuid=True), nullable=True),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("summary", sa.Text(), nullable=True),
    sa.Column("full_content", sa.Text(), nullable=False),
    sa.Column("structured_plan", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("comprehensive_plan", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("jump_type", sa.String(), nullable=False),
    sa.Column("status", _jump_status, nullable=False),
    sa.Column("completion_percentage", sa.Integer(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.CheckConstraint("completion_percentage BETWEEN 0 AND 100", name="ck_user_jumps_completion_percentage"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_user_jumps_user_id"), "user_jumps", ["user_id"], unique=False)

  op.create_table(
    "user_tool_prompts",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("jump_id", postgresql.UUID(as_uuid=True), nullable=True),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("category", sa.String(), nullable=True),
    sa.Column("tool_name", sa.String(), nullable=False),
    sa.Column("tool_url", sa.String(), nullable=True),
    sa.Column("tool_type", sa.String(), nullable=True),
    sa.Column("prompt_text", sa.Text(), nullable=False),
    sa.Column("prompt_instructions", sa.Text(), nullable=True),
    sa.Column("when_to_use", sa.Text(), nullable=True),
    sa.Column("why_this_combo", sa.Text(), nullable=True),
    sa.Column("alternatives", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("use_cases", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("difficulty_level", sa.String(), nullable=True),
    sa.Column("setup_time", sa.String(), nullable=True),
    sa.Column("cost_estimate", sa.String(), nullable=True),
    sa.Column("content", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.ForeignKeyConstraint(["jump_id"], ["user_jumps.id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_user_tool_prompts_user_id"), "user_tool_prompts", ["user_id"], unique=False)
  op.create_index(op.f("ix_user_tool_prompts_jump_id"), "user_tool_prompts", ["jump_id"], unique=False)

  op.create_table(
    "api_usage_logs",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("endpoint", sa.String(), nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
    sa.Column("ip_address", sa.String(), nullable=True),
    sa.Column("user_agent", sa.Text(), nullable=True),
    sa.Column("status_code", sa.Integer(), nullable=False),
    sa.Column("request_duration_ms", sa.Integer(), nullable=False),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_api_usage_logs_endpoint"), "api_usage_logs", ["endpoint"], unique=False)
  op.create_index(op.f("ix_api_usage_logs_user_id"), "api_usage_logs", ["user_id"], unique=False)

  op.create_table(
    "user_credits",
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("credits_balance", sa.Integer(), nullable=False),
    sa.Column("total_credits_purchased", sa.Integer(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.CheckConstraint("credits_balance >= 0", name="ck_user_credits_balance_non_negative"),
    sa.PrimaryKeyConstraint("user_id"),
  )

  op.create_table(
    "credit_transactions",
    sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
    sa.Column("transaction_type", _credit_transaction_type, nullable=False),
    sa.Column("credits_amount", sa.Integer(), nullable=False),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("reference_id", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_credit_transactions_user_id"), "credit_transactions", ["user_id"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index(op.f("ix_credit_transactions_user_id"), table_name="credit_transactions")
  op.drop_table("credit_transactions")
  op.drop_table("user_credits")
  op.drop_index(op.f("ix_api_usage_logs_user_id"), table_name="api_usage_logs")
  op.drop_index(op.f("ix_api_usage_logs_endpoint"), table_name="api_usage_logs")
  op.drop_table("api_usage_logs")
  op.drop_index(op.f("ix_user_tool_prompts_jump_id"), table_name="user_tool_prompts")
  op.drop_index(op.f("ix_user_tool_prompts_user_id"), table_name="user_tool_prompts")
  op.drop_table("user_tool_prompts")
  op.drop_index(op.f("ix_user_jumps_user_id"), table_name="user_jumps")
  op.drop_table("user_jumps")

  bind = op.get_bind()
  _credit_transaction_type.drop(bind, checkfirst=True)
  _jump_status.drop(bind, checkfirst=True)
