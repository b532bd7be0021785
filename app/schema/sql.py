from __future__ import annotations

import datetime
import uuid
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class JumpStatus(str, Enum):
  GENERATING = "generating"
  ACTIVE = "active"
  COMPLETED = "completed"


class CreditTransactionType(str, Enum):
  PURCHASE = "purchase"
  USAGE = "usage"
  WELCOME_BONUS = "welcome_bonus"


class UserJump(Base):
  __tablename__ = "user_jumps"

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  # Owner id issued by Supabase Auth; guest runs are never persisted.
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
  profile_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  summary: Mapped[str | None] = mapped_column(Text, nullable=True)
  full_content: Mapped[str] = mapped_column(Text, nullable=False, default="")
  structured_plan: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  comprehensive_plan: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  jump_type: Mapped[str] = mapped_column(String, nullable=False, default="comprehensive")
  status: Mapped[JumpStatus] = mapped_column(SAEnum(JumpStatus, name="jump_status", values_callable=lambda enum: [member.value for member in enum]), nullable=False, default=JumpStatus.ACTIVE)
  completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

  tool_prompts: Mapped[list[UserToolPrompt]] = relationship(back_populates="jump", cascade="all, delete-orphan", passive_deletes=True)

  __table_args__ = (CheckConstraint("completion_percentage BETWEEN 0 AND 100", name="ck_user_jumps_completion_percentage"),)


class UserToolPrompt(Base):
  __tablename__ = "user_tool_prompts"

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
  jump_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("user_jumps.id", ondelete="CASCADE"), index=True, nullable=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  category: Mapped[str | None] = mapped_column(String, nullable=True)
  tool_name: Mapped[str] = mapped_column(String, nullable=False)
  tool_url: Mapped[str | None] = mapped_column(String, nullable=True)
  tool_type: Mapped[str | None] = mapped_column(String, nullable=True)
  prompt_text: Mapped[str] = mapped_column(Text, nullable=False)
  prompt_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
  when_to_use: Mapped[str | None] = mapped_column(Text, nullable=True)
  why_this_combo: Mapped[str | None] = mapped_column(Text, nullable=True)
  alternatives: Mapped[list | None] = mapped_column(JSONB, nullable=True)
  use_cases: Mapped[list | None] = mapped_column(JSONB, nullable=True)
  tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)
  difficulty_level: Mapped[str | None] = mapped_column(String, nullable=True)
  setup_time: Mapped[str | None] = mapped_column(String, nullable=True)
  cost_estimate: Mapped[str | None] = mapped_column(String, nullable=True)
  content: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

  jump: Mapped[UserJump | None] = relationship(back_populates="tool_prompts")


class ApiUsageLog(Base):
  __tablename__ = "api_usage_logs"

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  endpoint: Mapped[str] = mapped_column(String, index=True, nullable=False)
  user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True, nullable=True)
  ip_address: Mapped[str | None] = mapped_column(String, nullable=True)
  user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
  status_code: Mapped[int] = mapped_column(Integer, nullable=False)
  request_duration_ms: Mapped[int] = mapped_column(Integer, nullable=False)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class UserCredits(Base):
  __tablename__ = "user_credits"

  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
  credits_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  total_credits_purchased: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

  __table_args__ = (CheckConstraint("credits_balance >= 0", name="ck_user_credits_balance_non_negative"),)


class CreditTransaction(Base):
  __tablename__ = "credit_transactions"

  id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
  user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True, nullable=False)
  transaction_type: Mapped[CreditTransactionType] = mapped_column(SAEnum(CreditTransactionType, name="credit_transaction_type", values_callable=lambda enum: [member.value for member in enum]), nullable=False)
  credits_amount: Mapped[int] = mapped_column(Integer, nullable=False)
  description: Mapped[str | None] = mapped_column(Text, nullable=True)
  reference_id: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
