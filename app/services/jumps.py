"""Service helpers for persisting and managing Jump artifacts."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, status

from app.ai.pipeline.contracts import JumpArtifact
from app.config import Settings
from app.services import tool_prompts as tool_prompt_service
from app.storage.jumps_repo import JumpRecord, JumpsRepository
from app.storage.postgres_jumps_repo import PostgresJumpsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedJump:
  """Outcome of saving a generated artifact."""

  jump: JumpRecord
  tool_prompt_count: int


def _get_jumps_repo(settings: Settings) -> JumpsRepository:
  """Return the Jumps repository."""
  return PostgresJumpsRepository()


def _now_iso() -> str:
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def record_to_dict(record: JumpRecord) -> dict[str, Any]:
  payload = asdict(record)
  payload["id"] = payload.pop("jump_id")
  return payload


async def persist_artifact(artifact: JumpArtifact, *, user_id: str, settings: Settings) -> PersistedJump:
  """Save a finished artifact and its valid tool prompts for the user in one write."""
  repo = _get_jumps_repo(settings)
  if artifact.jump_number is None:
    # Jumps are numbered per user starting at 1.
    artifact.jump_number = await repo.count_jumps(user_id) + 1

  # A run that lost sections stays editable instead of being marked done.
  completed = artifact.is_complete and not artifact.errors
  now = _now_iso()
  record = JumpRecord(
    jump_id=str(uuid.uuid4()),
    user_id=user_id,
    title=artifact.title,
    summary=artifact.summary,
    full_content=artifact.full_content,
    structured_plan=artifact.structured_plan,
    comprehensive_plan=artifact.comprehensive_plan,
    status="completed" if completed else "active",
    completion_percentage=100 if artifact.is_complete else 0,
    created_at=now,
    updated_at=now,
  )
  valid = artifact.valid_tool_prompts()
  skipped = len(artifact.components.tool_prompts) - len(valid)
  if skipped:
    logger.warning("Skipping %d incomplete tool prompts for jump_id=%s", skipped, record.jump_id)
  tool_prompts = [tool_prompt_service.combo_to_record(combo, user_id=user_id, jump_id=record.jump_id) for combo in valid]

  saved, combos = await repo.create_jump_with_tool_prompts(record, tool_prompts)
  artifact.jump_id = saved.jump_id
  logger.info("Persisted jump_id=%s user_id=%s title=%r tool_prompts=%d errors=%d", saved.jump_id, user_id, saved.title, len(combos), len(artifact.errors))
  return PersistedJump(jump=saved, tool_prompt_count=len(combos))


async def _get_owned(repo: JumpsRepository, jump_id: str, user_id: str) -> JumpRecord:
  record = await repo.get_jump(jump_id)
  if record is None or record.user_id != user_id:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Jump not found.")
  return record


async def list_jumps(user_id: str, settings: Settings, *, limit: int = 50, offset: int = 0) -> list[JumpRecord]:
  return await _get_jumps_repo(settings).list_jumps(user_id, limit=limit, offset=offset)


async def get_jump(jump_id: str, *, user_id: str, settings: Settings) -> JumpRecord:
  return await _get_owned(_get_jumps_repo(settings), jump_id, user_id)


async def update_jump(jump_id: str, changes: dict[str, Any], *, user_id: str, settings: Settings) -> JumpRecord:
  repo = _get_jumps_repo(settings)
  await _get_owned(repo, jump_id, user_id)
  updated = await repo.update_jump(jump_id, **changes)
  if updated is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Jump not found.")
  return updated


async def delete_jump(jump_id: str, *, user_id: str, settings: Settings) -> None:
  repo = _get_jumps_repo(settings)
  await _get_owned(repo, jump_id, user_id)
  await repo.delete_jump(jump_id)
  logger.info("Deleted jump_id=%s user_id=%s", jump_id, user_id)
