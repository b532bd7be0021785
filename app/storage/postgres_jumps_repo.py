"""Postgres-backed repositories for Jumps and tool prompts using SQLAlchemy."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select

from app.core.database import get_session_factory
from app.schema.sql import JumpStatus, UserJump, UserToolPrompt
from app.storage.jumps_repo import JumpRecord, JumpsRepository, ToolPromptRecord, ToolPromptsRepository

_JUMP_UPDATABLE = frozenset({"title", "summary", "full_content", "structured_plan", "comprehensive_plan", "status", "completion_percentage", "profile_id"})
_TOOL_PROMPT_UPDATABLE = frozenset(
  {"title", "description", "category", "tool_name", "tool_url", "tool_type", "prompt_text", "prompt_instructions", "when_to_use", "why_this_combo", "alternatives", "use_cases", "tags", "difficulty_level", "setup_time", "cost_estimate", "content"}
)


def _iso(value: datetime | None) -> str | None:
  return value.isoformat() if value is not None else None


def _as_uuid(value: str) -> uuid.UUID | None:
  """Parse an id, returning None for malformed input so lookups miss cleanly."""
  try:
    return uuid.UUID(str(value))
  except ValueError:
    return None


def _session_factory():  # type: ignore
  session_factory = get_session_factory()
  if session_factory is None:
    raise RuntimeError("Database not initialized")
  return session_factory


def _tool_prompt_to_model(record: ToolPromptRecord) -> UserToolPrompt:
  return UserToolPrompt(
    id=_as_uuid(record.tool_prompt_id) if record.tool_prompt_id else uuid.uuid4(),
    user_id=uuid.UUID(record.user_id),
    jump_id=_as_uuid(record.jump_id) if record.jump_id else None,
    title=record.title,
    description=record.description,
    category=record.category,
    tool_name=record.tool_name,
    tool_url=record.tool_url,
    tool_type=record.tool_type,
    prompt_text=record.prompt_text,
    prompt_instructions=record.prompt_instructions,
    when_to_use=record.when_to_use,
    why_this_combo=record.why_this_combo,
    alternatives=list(record.alternatives),
    use_cases=list(record.use_cases),
    tags=list(record.tags),
    difficulty_level=record.difficulty_level,
    setup_time=record.setup_time,
    cost_estimate=record.cost_estimate,
    content=record.content,
  )


def _tool_prompt_to_record(row: UserToolPrompt) -> ToolPromptRecord:
  return ToolPromptRecord(
    tool_prompt_id=str(row.id),
    user_id=str(row.user_id),
    jump_id=str(row.jump_id) if row.jump_id else None,
    title=row.title,
    tool_name=row.tool_name,
    prompt_text=row.prompt_text,
    description=row.description,
    category=row.category,
    tool_url=row.tool_url,
    tool_type=row.tool_type,
    prompt_instructions=row.prompt_instructions,
    when_to_use=row.when_to_use,
    why_this_combo=row.why_this_combo,
    alternatives=list(row.alternatives or []),
    use_cases=list(row.use_cases or []),
    tags=list(row.tags or []),
    difficulty_level=row.difficulty_level,
    setup_time=row.setup_time,
    cost_estimate=row.cost_estimate,
    content=row.content,
    created_at=_iso(row.created_at),
    updated_at=_iso(row.updated_at),
  )


class PostgresJumpsRepository(JumpsRepository):
  """Persist Jumps to the user_jumps table."""

  def __init__(self) -> None:
    self._session_factory = _session_factory()

  async def create_jump_with_tool_prompts(self, record: JumpRecord, tool_prompts: list[ToolPromptRecord]) -> tuple[JumpRecord, list[ToolPromptRecord]]:
    async with self._session_factory() as session:
      row = UserJump(
        id=_as_uuid(record.jump_id) or uuid.uuid4(),
        user_id=uuid.UUID(record.user_id),
        profile_id=_as_uuid(record.profile_id) if record.profile_id else None,
        title=record.title,
        summary=record.summary,
        full_content=record.full_content,
        structured_plan=record.structured_plan,
        comprehensive_plan=record.comprehensive_plan,
        jump_type=record.jump_type,
        status=JumpStatus(record.status),
        completion_percentage=record.completion_percentage,
      )
      session.add(row)
      # The Jump row must exist before its combos reference it; both land in one commit.
      await session.flush()
      prompt_rows = [_tool_prompt_to_model(replace(prompt, jump_id=str(row.id))) for prompt in tool_prompts]
      session.add_all(prompt_rows)
      await session.commit()
      await session.refresh(row)
      for prompt_row in prompt_rows:
        await session.refresh(prompt_row)
      return self._model_to_record(row), [_tool_prompt_to_record(prompt_row) for prompt_row in prompt_rows]

  async def get_jump(self, jump_id: str) -> JumpRecord | None:
    key = _as_uuid(jump_id)
    if key is None:
      return None
    async with self._session_factory() as session:
      row = await session.get(UserJump, key)
      return self._model_to_record(row) if row is not None else None

  async def list_jumps(self, user_id: str, *, limit: int = 50, offset: int = 0) -> list[JumpRecord]:
    async with self._session_factory() as session:
      stmt = select(UserJump).where(UserJump.user_id == uuid.UUID(user_id)).order_by(UserJump.created_at.desc()).limit(limit).offset(offset)
      result = await session.execute(stmt)
      return [self._model_to_record(row) for row in result.scalars().all()]

  async def count_jumps(self, user_id: str) -> int:
    async with self._session_factory() as session:
      stmt = select(func.count()).select_from(UserJump).where(UserJump.user_id == uuid.UUID(user_id))
      result = await session.execute(stmt)
      return int(result.scalar_one())

  async def update_jump(self, jump_id: str, **changes: Any) -> JumpRecord | None:
    unknown = set(changes) - _JUMP_UPDATABLE
    if unknown:
      raise ValueError(f"Unsupported jump fields: {', '.join(sorted(unknown))}")
    key = _as_uuid(jump_id)
    if key is None:
      return None
    async with self._session_factory() as session:
      row = await session.get(UserJump, key)
      if row is None:
        return None
      for name, value in changes.items():
        if value is None:
          continue
        if name == "status":
          value = JumpStatus(value)
        elif name == "profile_id":
          value = _as_uuid(value)
        setattr(row, name, value)
      await session.commit()
      await session.refresh(row)
      return self._model_to_record(row)

  async def delete_jump(self, jump_id: str) -> bool:
    key = _as_uuid(jump_id)
    if key is None:
      return False
    async with self._session_factory() as session:
      # Tool prompts go with the Jump through ON DELETE CASCADE.
      result = await session.execute(delete(UserJump).where(UserJump.id == key))
      await session.commit()
      return bool(result.rowcount)

  def _model_to_record(self, row: UserJump) -> JumpRecord:
    return JumpRecord(
      jump_id=str(row.id),
      user_id=str(row.user_id),
      title=row.title,
      full_content=row.full_content or "",
      status=JumpStatus(row.status).value,
      completion_percentage=row.completion_percentage,
      created_at=_iso(row.created_at) or "",
      updated_at=_iso(row.updated_at) or "",
      summary=row.summary,
      profile_id=str(row.profile_id) if row.profile_id else None,
      structured_plan=row.structured_plan,
      comprehensive_plan=row.comprehensive_plan,
      jump_type=row.jump_type,
    )


class PostgresToolPromptsRepository(ToolPromptsRepository):
  """Persist tool-prompt combos to the user_tool_prompts table."""

  def __init__(self) -> None:
    self._session_factory = _session_factory()

  async def list_by_user(self, user_id: str) -> list[ToolPromptRecord]:
    async with self._session_factory() as session:
      stmt = select(UserToolPrompt).where(UserToolPrompt.user_id == uuid.UUID(user_id)).order_by(UserToolPrompt.created_at.desc())
      result = await session.execute(stmt)
      return [_tool_prompt_to_record(row) for row in result.scalars().all()]

  async def list_by_jump(self, jump_id: str) -> list[ToolPromptRecord]:
    key = _as_uuid(jump_id)
    if key is None:
      return []
    async with self._session_factory() as session:
      stmt = select(UserToolPrompt).where(UserToolPrompt.jump_id == key).order_by(UserToolPrompt.created_at.asc())
      result = await session.execute(stmt)
      return [_tool_prompt_to_record(row) for row in result.scalars().all()]

  async def get(self, tool_prompt_id: str) -> ToolPromptRecord | None:
    key = _as_uuid(tool_prompt_id)
    if key is None:
      return None
    async with self._session_factory() as session:
      row = await session.get(UserToolPrompt, key)
      return _tool_prompt_to_record(row) if row is not None else None

  async def save_many(self, records: list[ToolPromptRecord]) -> list[ToolPromptRecord]:
    if not records:
      return []
    async with self._session_factory() as session:
      rows = [_tool_prompt_to_model(record) for record in records]
      # One transaction keeps a Jump's combos all-or-nothing.
      session.add_all(rows)
      await session.commit()
      for row in rows:
        await session.refresh(row)
      return [_tool_prompt_to_record(row) for row in rows]

  async def update(self, tool_prompt_id: str, **changes: Any) -> ToolPromptRecord | None:
    unknown = set(changes) - _TOOL_PROMPT_UPDATABLE
    if unknown:
      raise ValueError(f"Unsupported tool prompt fields: {', '.join(sorted(unknown))}")
    key = _as_uuid(tool_prompt_id)
    if key is None:
      return None
    async with self._session_factory() as session:
      row = await session.get(UserToolPrompt, key)
      if row is None:
        return None
      for name, value in changes.items():
        if value is not None:
          setattr(row, name, value)
      await session.commit()
      await session.refresh(row)
      return _tool_prompt_to_record(row)

  async def delete(self, tool_prompt_id: str) -> bool:
    key = _as_uuid(tool_prompt_id)
    if key is None:
      return False
    async with self._session_factory() as session:
      result = await session.execute(delete(UserToolPrompt).where(UserToolPrompt.id == key))
      await session.commit()
      return bool(result.rowcount)
