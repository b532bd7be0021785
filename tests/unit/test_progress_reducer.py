from __future__ import annotations

from app.progress.reducer import compute_progress, initial_state, reduce
from tests.fakes import OVERVIEW, PLAN, make_combo


def _event(step: int, event_type: str, data: dict) -> dict:
  return {"step": step, "type": event_type, "data": data}


def test_compute_progress_counts_known_steps_only() -> None:
  assert compute_progress(frozenset()) == 0
  assert compute_progress(frozenset({"naming"})) == 25
  assert compute_progress(frozenset({"naming", "overview", "status", "jump_created"})) == 50
  assert compute_progress(frozenset({"naming", "overview", "comprehensive", "tool_prompts"})) == 100


def test_compute_progress_never_regresses() -> None:
  assert compute_progress(frozenset({"naming"}), previous=60) == 60


def test_full_run_builds_progressive_result() -> None:
  state = initial_state(now=0.0)
  state = reduce(state, _event(1, "naming", {"jumpName": "Reporting Autopilot"}), now=1.0)
  assert state.jump_name == "Reporting Autopilot"
  assert state.full_title == "Reporting Autopilot"
  assert state.processing_status.progress == 25
  assert state.processing_status.current_task == "Writing the strategic overview"

  state = reduce(state, _event(2, "overview", OVERVIEW), now=3.5)
  assert state.full_content.startswith("## Executive Summary")
  assert state.step_times == {"naming": 1.0, "overview": 2.5}

  state = reduce(state, _event(3, "comprehensive", PLAN), now=4.0)
  assert "=== IMPLEMENTATION PLAN ===" in state.full_content
  assert [phase["name"] for phase in state.structured_plan["phases"]] == ["Foundation", "Automation"]

  state = reduce(state, _event(4, "tool_prompts", {"tool_prompts": [make_combo(1)], "warnings": ["Expected 9 tool prompts, received 1 valid"]}), now=5.0)
  assert len(state.components["tool_prompts"]) == 1
  assert state.warnings == ("Expected 9 tool prompts, received 1 valid",)
  assert state.processing_status.progress == 100
  assert not state.processing_status.is_complete

  state = reduce(state, _event(9, "complete", {"message": "Generation complete", "jumpId": "jump-1"}), now=6.0)
  assert state.processing_status.is_complete
  assert state.processing_status.stage == "complete"
  assert state.jump_id == "jump-1"


def test_progress_is_monotonic_over_any_event_sequence() -> None:
  events = [
    _event(2, "overview", OVERVIEW),
    _event(1, "naming", {"jumpName": "Late Name"}),
    _event(0, "status", {}),
    _event(2, "overview", OVERVIEW),
    _event(4, "tools", {"tools": []}),
  ]
  state = initial_state(now=0.0)
  seen = [state.processing_status.progress]
  for index, event in enumerate(events, start=1):
    state = reduce(state, event, now=float(index))
    seen.append(state.processing_status.progress)
  assert seen == sorted(seen)
  assert state.processing_status.current_step == 4


def test_jump_created_sets_number_and_prefixes_later_titles() -> None:
  state = reduce(initial_state(now=0.0), _event(0, "jump_created", {"jumpId": "j-7", "jumpNumber": 7}), now=0.5)
  state = reduce(state, _event(1, "naming", {"jumpName": "Sales Copilot"}), now=1.0)
  assert state.jump_id == "j-7"
  assert state.full_title == "Jump #7: Sales Copilot"


def test_fatal_error_freezes_state() -> None:
  state = reduce(initial_state(now=0.0), _event(1, "naming", {"jumpName": "Sales Copilot"}), now=1.0)
  state = reduce(state, _event(2, "error", {"message": "Step 2 failed: timeout", "fatal": True}), now=2.0)
  assert state.error == "Step 2 failed: timeout"
  assert state.processing_status.stage == "Error"

  after = reduce(state, _event(9, "complete", {"message": "Generation complete"}), now=3.0)
  assert after is state


def test_non_fatal_error_counts_step_and_records_warning() -> None:
  state = initial_state(now=0.0)
  for step, event_type, data in ((1, "naming", {"jumpName": "Ops Boost"}), (2, "overview", OVERVIEW)):
    state = reduce(state, _event(step, event_type, data), now=float(step))
  state = reduce(state, _event(3, "error", {"message": "Step 3 failed: 500", "fatal": False}), now=3.0)

  assert state.error is None
  assert state.processing_status.progress == 75
  assert state.warnings == ("Step 3 failed: 500",)


def test_plan_alias_and_unknown_events() -> None:
  state = reduce(initial_state(now=0.0), _event(3, "plan", PLAN), now=1.0)
  assert "comprehensive" in state.completed_steps
  assert reduce(state, _event(5, "heartbeat", {}), now=2.0) is state
