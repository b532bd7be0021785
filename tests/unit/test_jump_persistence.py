"""Unit tests for saving generated Jumps and managing their tool prompts."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.ai.pipeline.contracts import JumpArtifact, ToolPromptCombo
from app.services import jumps as jump_service
from app.services import tool_prompts as tool_prompt_service
from tests.fakes import OVERVIEW, PLAN, install_repos, make_combo

USER_ID = "8f0e8a53-54b5-4a4b-9d25-0d5f0c1f5a11"
OTHER_USER_ID = "2c1f4a62-7e0b-4a0c-8f77-3d9f7c0e9b22"


def _finished_artifact(*, errors: list[dict] | None = None) -> JumpArtifact:
  artifact = JumpArtifact(jump_name="Reporting Autopilot", full_content="## Executive Summary", structured_plan=PLAN["implementationPlan"], comprehensive_plan=OVERVIEW, is_complete=True)
  artifact.components.tool_prompts = [ToolPromptCombo.model_validate(make_combo(index)) for index in range(1, 10)]
  artifact.components.tool_prompts.append(ToolPromptCombo.error_placeholder(10, ["prompt_text"]))
  artifact.errors.extend(errors or [])
  return artifact


@pytest.mark.anyio
async def test_persist_artifact_numbers_jumps_per_user(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  jumps, _tool_prompts = install_repos(monkeypatch)

  first = await jump_service.persist_artifact(_finished_artifact(), user_id=USER_ID, settings=settings)
  second = await jump_service.persist_artifact(_finished_artifact(), user_id=USER_ID, settings=settings)
  other = await jump_service.persist_artifact(_finished_artifact(), user_id=OTHER_USER_ID, settings=settings)

  assert first.jump.title == "Jump #1: Reporting Autopilot"
  assert second.jump.title == "Jump #2: Reporting Autopilot"
  assert other.jump.title == "Jump #1: Reporting Autopilot"
  assert first.jump.status == "completed"
  assert first.jump.completion_percentage == 100
  assert first.jump.summary == OVERVIEW["executiveSummary"]
  assert len(jumps.records) == 3


@pytest.mark.anyio
async def test_failed_tool_prompt_write_leaves_no_jump_behind(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  jumps, tool_prompts = install_repos(monkeypatch)
  kept = await jump_service.persist_artifact(_finished_artifact(), user_id=USER_ID, settings=settings)

  async def _broken_save_many(_records):
    raise ConnectionError("database is down")

  monkeypatch.setattr(tool_prompts, "save_many", _broken_save_many)
  artifact = _finished_artifact()

  with pytest.raises(ConnectionError):
    await jump_service.persist_artifact(artifact, user_id=USER_ID, settings=settings)

  assert list(jumps.records) == [kept.jump.jump_id]
  assert len(tool_prompts.records) == 9
  assert artifact.jump_id is None


@pytest.mark.anyio
async def test_jump_and_tool_prompts_are_written_together(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  jumps, _tool_prompts = install_repos(monkeypatch)
  writes = []
  original = jumps.create_jump_with_tool_prompts

  async def _recording(record, tool_prompt_records):
    writes.append((record, tool_prompt_records))
    return await original(record, tool_prompt_records)

  monkeypatch.setattr(jumps, "create_jump_with_tool_prompts", _recording)

  persisted = await jump_service.persist_artifact(_finished_artifact(), user_id=USER_ID, settings=settings)

  assert len(writes) == 1
  record, tool_prompt_records = writes[0]
  assert record.jump_id == persisted.jump.jump_id
  assert len(tool_prompt_records) == 9
  assert {prompt.jump_id for prompt in tool_prompt_records} == {record.jump_id}


@pytest.mark.anyio
async def test_persist_artifact_skips_placeholder_tool_prompts(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  _jumps, tool_prompts = install_repos(monkeypatch)
  artifact = _finished_artifact()

  persisted = await jump_service.persist_artifact(artifact, user_id=USER_ID, settings=settings)

  assert persisted.tool_prompt_count == 9
  assert artifact.jump_id == persisted.jump.jump_id
  saved = await tool_prompts.list_by_jump(persisted.jump.jump_id)
  assert [record.title for record in saved] == [f"Combo {index}" for index in range(1, 10)]
  assert all(record.user_id == USER_ID for record in saved)
  assert saved[0].setup_time == "5-10 minutes"
  assert saved[0].alternatives == [{"tool": "Gemini", "url": "https://gemini.google.com", "note": "Free tier"}]
  assert "is_error" not in (saved[0].content or {})


@pytest.mark.anyio
async def test_artifact_with_errors_is_saved_as_active(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  install_repos(monkeypatch)
  artifact = _finished_artifact(errors=[{"step": 3, "message": "Step 3 failed: 500"}])

  persisted = await jump_service.persist_artifact(artifact, user_id=USER_ID, settings=settings)

  assert persisted.jump.status == "active"
  assert persisted.jump.completion_percentage == 100


@pytest.mark.anyio
async def test_jumps_are_hidden_from_other_users(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  install_repos(monkeypatch)
  persisted = await jump_service.persist_artifact(_finished_artifact(), user_id=USER_ID, settings=settings)

  with pytest.raises(HTTPException) as excinfo:
    await jump_service.get_jump(persisted.jump.jump_id, user_id=OTHER_USER_ID, settings=settings)
  assert excinfo.value.status_code == 404

  with pytest.raises(HTTPException):
    await jump_service.delete_jump(persisted.jump.jump_id, user_id=OTHER_USER_ID, settings=settings)


@pytest.mark.anyio
async def test_update_and_delete_jump(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  _jumps, tool_prompts = install_repos(monkeypatch)
  persisted = await jump_service.persist_artifact(_finished_artifact(), user_id=USER_ID, settings=settings)
  jump_id = persisted.jump.jump_id

  updated = await jump_service.update_jump(jump_id, {"title": "Renamed"}, user_id=USER_ID, settings=settings)
  assert updated.title == "Renamed"

  await jump_service.delete_jump(jump_id, user_id=USER_ID, settings=settings)
  assert await jump_service.list_jumps(USER_ID, settings) == []
  assert await tool_prompts.list_by_jump(jump_id) == []


def test_combo_to_record_fills_defaults() -> None:
  combo = ToolPromptCombo(title="", description="", tool_name="", prompt_text="Draft the report.")
  record = tool_prompt_service.combo_to_record(combo, user_id=USER_ID, jump_id=None)
  assert record.title == "Untitled Tool Prompt"
  assert record.tool_name == "AI Tool"
  assert record.category == "General"
  assert record.difficulty_level == "Beginner"
  assert record.tool_prompt_id is None


@pytest.mark.anyio
async def test_save_one_rejects_placeholders(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  install_repos(monkeypatch)
  with pytest.raises(HTTPException) as excinfo:
    await tool_prompt_service.save_one(ToolPromptCombo.error_placeholder(1, ["title"]), user_id=USER_ID, jump_id=None, settings=settings)
  assert excinfo.value.status_code == 400


@pytest.mark.anyio
async def test_upsert_creates_then_updates(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  _jumps, tool_prompts = install_repos(monkeypatch)
  combo = ToolPromptCombo.model_validate(make_combo(1))

  created = await tool_prompt_service.upsert("tp-1", combo, user_id=USER_ID, jump_id=None, settings=settings)
  assert created.tool_prompt_id == "tp-1"

  changed = combo.model_copy(update={"title": "Sharper prompt"})
  updated = await tool_prompt_service.upsert("tp-1", changed, user_id=USER_ID, jump_id=None, settings=settings)
  assert updated.title == "Sharper prompt"
  assert len(tool_prompts.records) == 1

  with pytest.raises(HTTPException) as excinfo:
    await tool_prompt_service.upsert("tp-1", changed, user_id=OTHER_USER_ID, jump_id=None, settings=settings)
  assert excinfo.value.status_code == 404


@pytest.mark.anyio
async def test_delete_tool_prompt_checks_owner(monkeypatch: pytest.MonkeyPatch, settings) -> None:
  _jumps, tool_prompts = install_repos(monkeypatch)
  saved = await tool_prompt_service.save_one(ToolPromptCombo.model_validate(make_combo(2)), user_id=USER_ID, jump_id=None, settings=settings)

  with pytest.raises(HTTPException):
    await tool_prompt_service.delete(saved.tool_prompt_id or "", user_id=OTHER_USER_ID, settings=settings)

  await tool_prompt_service.delete(saved.tool_prompt_id or "", user_id=USER_ID, settings=settings)
  assert tool_prompts.records == {}
