"""Pure reducer that folds generation events into a progressive display model."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from app.ai.pipeline.artifact import render_overview_markdown, render_plan_text
from app.ai.prompts import STEPS, TOTAL_STEPS

# Event type aliases used by older clients.
_TYPE_ALIASES = {"plan": "comprehensive", "tools": "tool_prompts"}
_STEP_TYPES = tuple(step.type.value for step in STEPS)
_CURRENT_TASKS = {
  "naming": "Naming your Jump",
  "overview": "Writing the strategic overview",
  "comprehensive": "Building the implementation plan",
  "tool_prompts": "Selecting tools and writing prompts",
}


@dataclass(frozen=True)
class ProcessingStatus:
  """UI projection of generation progress."""

  stage: str = "idle"
  progress: int = 0
  current_task: str = ""
  is_complete: bool = False
  current_step: int = 0

  def as_dict(self) -> dict[str, Any]:
    return {"stage": self.stage, "progress": self.progress, "currentTask": self.current_task, "isComplete": self.is_complete, "currentStep": self.current_step}


@dataclass(frozen=True)
class ProgressiveResult:
  """Single coherent view of an in-progress generation."""

  jump_id: str | None = None
  jump_name: str | None = None
  jump_number: int | None = None
  full_title: str | None = None
  full_content: str = ""
  structured_plan: Mapping[str, Any] = field(default_factory=dict)
  comprehensive_plan: Mapping[str, Any] = field(default_factory=dict)
  components: Mapping[str, tuple[Any, ...]] = field(default_factory=lambda: {"tool_prompts": (), "workflows": (), "blueprints": (), "strategies": ()})
  processing_status: ProcessingStatus = field(default_factory=ProcessingStatus)
  step_times: Mapping[str, float] = field(default_factory=dict)
  completed_steps: frozenset[str] = frozenset()
  last_checkpoint: float | None = None
  warnings: tuple[str, ...] = ()
  error: str | None = None


def compute_progress(completed_steps: frozenset[str], previous: int = 0) -> int:
  """Percentage of known steps completed, never below the previous value."""
  known = completed_steps.intersection(_STEP_TYPES)
  computed = round(len(known) / TOTAL_STEPS * 100)
  return max(previous, computed)


def initial_state(*, now: float | None = None) -> ProgressiveResult:
  """Return the idle state, anchoring step timing at `now`."""
  return ProgressiveResult(last_checkpoint=time.monotonic() if now is None else now)


def _record_step(state: ProgressiveResult, step_type: str, step: int, now: float, **changes: Any) -> ProgressiveResult:
  """Mark a step finished, update timing and recompute status."""
  step_times = dict(state.step_times)
  if state.last_checkpoint is not None:
    step_times[step_type] = round(now - state.last_checkpoint, 3)
  completed = state.completed_steps | {step_type}
  progress = compute_progress(completed, state.processing_status.progress)
  next_task = next((_CURRENT_TASKS[name] for name in _STEP_TYPES if name not in completed), "Finalizing")
  status = ProcessingStatus(stage="generating", progress=progress, current_task=next_task, is_complete=False, current_step=max(step, state.processing_status.current_step))
  return replace(state, step_times=step_times, completed_steps=completed, last_checkpoint=now, processing_status=status, **changes)


def reduce(state: ProgressiveResult, event: Mapping[str, Any], *, now: float | None = None) -> ProgressiveResult:
  """Return the state after applying one wire event `{step, type, data}`."""
  now = time.monotonic() if now is None else now
  event_type = _TYPE_ALIASES.get(str(event.get("type")), str(event.get("type")))
  step = int(event.get("step") or 0)
  data = event.get("data") or {}

  # Terminal states absorb late events.
  if state.processing_status.is_complete or state.error is not None:
    return state

  if event_type == "naming":
    name = data.get("jumpName")
    title = f"Jump #{state.jump_number}: {name}" if state.jump_number and name else name
    return _record_step(state, event_type, step, now, jump_name=name, full_title=title)

  if event_type == "jump_created":
    number = data.get("jumpNumber", state.jump_number)
    return replace(state, jump_id=data.get("jumpId", state.jump_id), jump_number=number, full_title=data.get("fullTitle", state.full_title))

  if event_type == "overview":
    return _record_step(state, event_type, step, now, comprehensive_plan=dict(data), full_content=render_overview_markdown(data))

  if event_type == "comprehensive":
    plan = data.get("implementationPlan", data)
    return _record_step(state, event_type, step, now, structured_plan=dict(plan), full_content=state.full_content + render_plan_text(plan))

  if event_type == "tool_prompts":
    components = dict(state.components)
    components["tool_prompts"] = tuple(data.get("tool_prompts") or data.get("tools") or ())
    warnings = state.warnings + tuple(data.get("warnings") or ())
    return _record_step(state, event_type, step, now, components=components, warnings=warnings)

  if event_type == "error":
    message = str(data.get("message") or "Generation failed")
    if data.get("fatal", True):
      status = replace(state.processing_status, stage="Error", current_task=message, is_complete=False)
      return replace(state, processing_status=status, error=message, last_checkpoint=now)
    # A skipped step still counts toward progress so the bar reaches 100.
    failed_type = _STEP_TYPES[step - 1] if 1 <= step <= len(_STEP_TYPES) else None
    if failed_type is None:
      return replace(state, warnings=state.warnings + (message,))
    return _record_step(state, failed_type, step, now, warnings=state.warnings + (message,))

  if event_type == "complete":
    status = ProcessingStatus(stage="complete", progress=100, current_task="Complete", is_complete=True, current_step=max(step, state.processing_status.current_step))
    return replace(state, jump_id=data.get("jumpId", state.jump_id), processing_status=status, last_checkpoint=now)

  return state
