from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.ai.pipeline.contracts import (
  GenerationRequest,
  JumpArtifact,
  ParseError,
  StepResult,
  StepType,
  ToolPromptCombo,
  missing_tool_prompt_fields,
)
from tests.fakes import make_combo


def test_goals_and_challenges_require_ten_characters() -> None:
  with pytest.raises(ValidationError):
    GenerationRequest(goals="x" * 9, challenges="y" * 10)
  with pytest.raises(ValidationError):
    GenerationRequest(goals="x" * 10, challenges="y" * 9)

  request = GenerationRequest(goals="x" * 10, challenges="y" * 10)
  assert request.goals == "x" * 10


def test_goals_longer_than_limit_are_rejected() -> None:
  with pytest.raises(ValidationError):
    GenerationRequest(goals="x" * 2001, challenges="y" * 10)


def test_studio_and_realtime_aliases_are_accepted() -> None:
  studio = GenerationRequest.model_validate({"goals": "Grow revenue with AI", "challenges": "No time to learn tools", "aiKnowledge": "Beginner", "timeCommitment": "1 month"})
  realtime = GenerationRequest.model_validate({"goals": "Grow revenue with AI", "challenges": "No time to learn tools", "ai_experience": "Beginner", "urgency": "1 month"})
  assert studio == realtime
  assert studio.ai_experience == "Beginner"
  assert studio.urgency == "1 month"


def test_blank_context_fields_render_as_not_specified() -> None:
  request = GenerationRequest.model_validate({"goals": "Grow revenue with AI", "challenges": "No time to learn tools", "industry": "", "budget": "  "})
  assert request.industry is None
  assert request.context_value("industry") == "Not specified"
  assert request.context_value("budget") == "Not specified"


def test_user_id_alias_and_unknown_keys() -> None:
  request = GenerationRequest.model_validate({"goals": "Grow revenue with AI", "challenges": "No time to learn tools", "userId": "abc", "favouriteColour": "blue"})
  assert request.user_id == "abc"


def test_step_result_terminal_rules() -> None:
  assert StepResult(step=9, type=StepType.COMPLETE, data={}).is_terminal
  assert StepResult(step=2, type=StepType.ERROR, data={"message": "boom", "fatal": True}).is_terminal
  assert not StepResult(step=3, type=StepType.ERROR, data={"message": "boom", "fatal": False}).is_terminal
  assert not StepResult(step=1, type=StepType.NAMING, data={"jumpName": "X"}).is_terminal


def test_step_result_wire_payload_includes_parse_error() -> None:
  error = ParseError(step=2, message="Expecting value", raw_excerpt="oops")
  payload = StepResult(step=2, type=StepType.OVERVIEW, data={"executiveSummary": "oops"}, parse_error=error).as_dict()
  assert payload == {"step": 2, "type": "overview", "data": {"executiveSummary": "oops"}, "parseError": {"step": 2, "message": "Expecting value", "rawExcerpt": "oops"}}


def test_missing_tool_prompt_fields_treats_blank_as_missing() -> None:
  assert missing_tool_prompt_fields({"title": "T", "description": " ", "tool_name": "ChatGPT"}) == ["description", "prompt_text"]
  assert missing_tool_prompt_fields("not a combo") == ["title", "description", "tool_name", "prompt_text"]


def test_error_placeholder_lists_missing_fields() -> None:
  placeholder = ToolPromptCombo.error_placeholder(3, ["prompt_text"])
  assert placeholder.is_error
  assert placeholder.title == "Error generating tool #3"
  assert "prompt_text" in placeholder.description


def test_artifact_title_and_summary() -> None:
  artifact = JumpArtifact(jump_name="Growth Engine", jump_number=4)
  assert artifact.title == "Jump #4: Growth Engine"
  assert artifact.summary == "AI Transformation: Growth Engine"

  artifact.comprehensive_plan = {"executiveSummary": "x" * 300}
  assert artifact.summary == "x" * 200
  assert JumpArtifact().title == "My Jump in AI"


def test_artifact_empty_categories() -> None:
  artifact = JumpArtifact()
  assert artifact.empty_categories() == ["plan", "tool_prompts", "workflows", "blueprints", "strategies"]
  artifact.structured_plan = {"phases": [{"name": "Foundation"}]}
  artifact.components.tool_prompts = [ToolPromptCombo.error_placeholder(1, ["title"])]
  artifact.components.workflows = [{"title": "Weekly report flow"}]
  assert artifact.empty_categories() == ["tool_prompts", "blueprints", "strategies"]


def test_completion_notice_lists_empty_categories() -> None:
  artifact = JumpArtifact(structured_plan={"phases": [{"name": "Foundation"}]})
  artifact.components.tool_prompts = [ToolPromptCombo.model_validate(make_combo(1))]
  notice = artifact.completion_notice()
  assert notice["emptyCategories"] == ["workflows", "blueprints", "strategies"]
  assert "Retry from Studio" in notice["hint"]

  for category in ("workflows", "blueprints", "strategies"):
    setattr(artifact.components, category, [{"title": category}])
  assert artifact.completion_notice() == {}


def test_unknown_form_keys_are_dropped() -> None:
  form = GenerationRequest.model_validate({"goals": "Automate weekly reports", "challenges": "Reports take two days", "companySize": "50", "timeCommitment": "2 hours"})
  assert form.urgency == "2 hours"
  assert "companySize" not in form.model_dump()
