"""Unit tests for step ordering and failure policies in the generation sequencer."""

from __future__ import annotations

import json

import pytest

from app.ai.pipeline.contracts import GenerationRequest, StepResult, StepType
from app.ai.sequencer import FailurePolicy, run_generation
from tests.fakes import FORM_DATA, NAMING_JSON, OVERVIEW, PLAN, ScriptedModel, happy_responses, provider_failure, tool_prompts_json


async def _collect(model: ScriptedModel, policy: FailurePolicy) -> list[StepResult]:
  request = GenerationRequest.model_validate(FORM_DATA)
  return [result async for result in run_generation(request, model, policy=policy)]


@pytest.mark.anyio
@pytest.mark.parametrize("policy", [FailurePolicy.CONTINUE, FailurePolicy.HALT])
async def test_steps_run_in_order_and_end_with_complete(policy: FailurePolicy) -> None:
  model = ScriptedModel(happy_responses())
  results = await _collect(model, policy)

  assert [result.step for result in results] == [1, 2, 3, 4, 9]
  assert [result.type for result in results] == [StepType.NAMING, StepType.OVERVIEW, StepType.COMPREHENSIVE, StepType.TOOL_PROMPTS, StepType.COMPLETE]
  assert results[-1].data == {"message": "Generation complete"}
  assert all(result.parse_error is None for result in results)
  assert [call["max_tokens"] for call in model.calls] == [500, 8000, 16000, 50000]


@pytest.mark.anyio
async def test_later_steps_receive_the_overview() -> None:
  model = ScriptedModel(happy_responses())
  await _collect(model, FailurePolicy.CONTINUE)

  assert OVERVIEW["executiveSummary"] in model.calls[2]["user_prompt"]
  assert OVERVIEW["executiveSummary"] in model.calls[3]["user_prompt"]
  assert OVERVIEW["executiveSummary"] not in model.calls[0]["user_prompt"]


@pytest.mark.anyio
async def test_nine_combos_across_six_tools_produce_no_warnings() -> None:
  results = await _collect(ScriptedModel(happy_responses()), FailurePolicy.CONTINUE)
  tool_step = results[3]

  combos = tool_step.data["tool_prompts"]
  assert len(combos) == 9
  assert len({combo["tool_name"] for combo in combos}) == 6
  assert "warnings" not in tool_step.data


@pytest.mark.anyio
async def test_continue_policy_reports_step_failure_and_keeps_going() -> None:
  model = ScriptedModel([NAMING_JSON, json.dumps(OVERVIEW), provider_failure(500), tool_prompts_json()])
  results = await _collect(model, FailurePolicy.CONTINUE)

  assert [(result.step, result.type) for result in results] == [
    (1, StepType.NAMING),
    (2, StepType.OVERVIEW),
    (3, StepType.ERROR),
    (4, StepType.TOOL_PROMPTS),
    (9, StepType.COMPLETE),
  ]
  error = results[2]
  assert error.data == {"message": "Step 3 failed: xAI API error: 500 - upstream failed", "fatal": False}
  assert not error.is_terminal


@pytest.mark.anyio
async def test_halt_policy_stops_at_first_failure() -> None:
  model = ScriptedModel([NAMING_JSON, json.dumps(OVERVIEW), provider_failure(500), tool_prompts_json()])
  results = await _collect(model, FailurePolicy.HALT)

  assert [result.step for result in results] == [1, 2, 3]
  assert results[-1].type is StepType.ERROR
  assert results[-1].data["fatal"] is True
  assert len(model.calls) == 3


@pytest.mark.anyio
@pytest.mark.parametrize("failing_index", [0, 1])
async def test_naming_or_overview_failure_is_fatal_under_continue(failing_index: int) -> None:
  responses = happy_responses()
  responses[failing_index] = provider_failure(503)
  model = ScriptedModel(responses)
  results = await _collect(model, FailurePolicy.CONTINUE)

  assert results[-1].type is StepType.ERROR
  assert results[-1].step == failing_index + 1
  assert results[-1].is_terminal
  assert all(result.type is not StepType.COMPLETE for result in results)
  assert len(model.calls) == failing_index + 1


@pytest.mark.anyio
async def test_unexpected_exceptions_are_reported_as_step_errors() -> None:
  model = ScriptedModel([NAMING_JSON, json.dumps(OVERVIEW), json.dumps(PLAN), RuntimeError("socket closed")])
  results = await _collect(model, FailurePolicy.CONTINUE)

  assert results[3].type is StepType.ERROR
  assert results[3].data["message"] == "Step 4 failed: socket closed"
  assert results[-1].type is StepType.COMPLETE


@pytest.mark.anyio
async def test_parse_failure_uses_fallback_and_continues() -> None:
  model = ScriptedModel([NAMING_JSON, "not json at all", json.dumps(PLAN), tool_prompts_json()])
  results = await _collect(model, FailurePolicy.HALT)

  overview = results[1]
  assert overview.type is StepType.OVERVIEW
  assert overview.parse_error is not None
  assert overview.data["executiveSummary"] == "not json at all"
  assert results[-1].type is StepType.COMPLETE
  # The fallback overview still anchors the later prompts.
  assert "not json at all" in model.calls[2]["user_prompt"]
