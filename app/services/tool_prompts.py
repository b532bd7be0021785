"""Service helpers for tool-prompt combos attached to Jumps."""

from __future__ import annotations

import logging
from dataclasses import asdict, replace
from typing import Any

from fastapi import HTTPException, status

from app.ai.pipeline.contracts import ToolPromptCombo
from app.config import Settings
from app.storage.jumps_repo import ToolPromptRecord, ToolPromptsRepository
from app.storage.postgres_jumps_repo import PostgresToolPromptsRepository

logger = logging.getLogger(__name__)


def _get_tool_prompts_repo(settings: Settings) -> ToolPromptsRepository:
  """Return the tool prompts repository."""
  return PostgresToolPromptsRepository()


def combo_to_record(combo: ToolPromptCombo, *, user_id: str, jump_id: str | None) -> ToolPromptRecord:
  """Map a generated combo onto a persisted row, filling the usual gaps."""
  return ToolPromptRecord(
    tool_prompt_id=None,
    user_id=user_id,
    jump_id=jump_id,
    title=combo.title or "Untitled Tool Prompt",
    tool_name=combo.tool_name or "AI Tool",
    prompt_text=combo.prompt_text,
    description=combo.description or "",
    category=combo.category or "General",
    tool_url=combo.tool_url,
    tool_type=combo.tool_type,
    prompt_instructions=combo.prompt_instructions,
    when_to_use=combo.when_to_use,
    why_this_combo=combo.why_this_combo,
    alternatives=[alternative.model_dump() for alternative in combo.alternatives],
    use_cases=list(combo.use_cases),
    tags=list(combo.tags),
    difficulty_level=combo.difficulty_level or "Beginner",
    setup_time=combo.setup_time or "5-10 minutes",
    cost_estimate=combo.cost_estimate,
    content=combo.model_dump(exclude={"is_error"}),
  )


def record_to_dict(record: ToolPromptRecord) -> dict[str, Any]:
  payload = asdict(record)
  payload["id"] = payload.pop("tool_prompt_id")
  return payload


async def list_for_user(user_id: str, settings: Settings) -> list[ToolPromptRecord]:
  return await _get_tool_prompts_repo(settings).list_by_user(user_id)


async def list_for_jump(jump_id: str, settings: Settings) -> list[ToolPromptRecord]:
  return await _get_tool_prompts_repo(settings).list_by_jump(jump_id)


async def _get_owned(repo: ToolPromptsRepository, tool_prompt_id: str, user_id: str) -> ToolPromptRecord:
  record = await repo.get(tool_prompt_id)
  # Hide other users' rows behind the same 404 as missing ones.
  if record is None or record.user_id != user_id:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tool prompt not found.")
  return record


async def save_one(combo: ToolPromptCombo, *, user_id: str, jump_id: str | None, settings: Settings) -> ToolPromptRecord:
  """Create a single combo, e.g. one the user added by hand."""
  if combo.is_error:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Placeholder tool prompts cannot be saved.")
  repo = _get_tool_prompts_repo(settings)
  saved = await repo.save_many([combo_to_record(combo, user_id=user_id, jump_id=jump_id)])
  return saved[0]


async def bulk_save(combos: list[ToolPromptCombo], *, user_id: str, jump_id: str | None, settings: Settings) -> list[ToolPromptRecord]:
  repo = _get_tool_prompts_repo(settings)
  return await repo.save_many([combo_to_record(combo, user_id=user_id, jump_id=jump_id) for combo in combos if not combo.is_error])


async def upsert(tool_prompt_id: str | None, combo: ToolPromptCombo, *, user_id: str, jump_id: str | None, settings: Settings) -> ToolPromptRecord:
  """Update an owned combo in place, or create it when it does not exist yet."""
  repo = _get_tool_prompts_repo(settings)
  existing = await repo.get(tool_prompt_id) if tool_prompt_id else None
  if existing is None:
    record = replace(combo_to_record(combo, user_id=user_id, jump_id=jump_id), tool_prompt_id=tool_prompt_id)
    saved = await repo.save_many([record])
    return saved[0]

  if existing.user_id != user_id:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tool prompt not found.")

  fields = asdict(combo_to_record(combo, user_id=user_id, jump_id=existing.jump_id))
  changes = {name: fields[name] for name in ("title", "description", "category", "tool_name", "tool_url", "tool_type", "prompt_text", "prompt_instructions", "when_to_use", "why_this_combo", "alternatives", "use_cases", "tags", "difficulty_level", "setup_time", "cost_estimate", "content")}
  updated = await repo.update(existing.tool_prompt_id or "", **changes)
  if updated is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tool prompt not found.")
  return updated


async def delete(tool_prompt_id: str, *, user_id: str, settings: Settings) -> None:
  repo = _get_tool_prompts_repo(settings)
  await _get_owned(repo, tool_prompt_id, user_id)
  await repo.delete(tool_prompt_id)
