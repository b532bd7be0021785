"""Assemble a JumpArtifact from the sequencer's StepResults."""

from __future__ import annotations

import logging
from typing import Any

from app.ai.pipeline.contracts import JumpArtifact, StepResult, StepType, ToolPromptCombo

logger = logging.getLogger(__name__)


def _str_items(value: Any) -> list[str]:
  if not isinstance(value, list):
    return []
  return [str(item) for item in value if item not in (None, "")]


def render_overview_markdown(overview: dict[str, Any]) -> str:
  """Render the overview object as the markdown shown on the Jump page."""
  parts: list[str] = []

  if overview.get("executiveSummary"):
    parts.append(f"## Executive Summary\n\n{overview['executiveSummary']}\n")

  situation = overview.get("situationAnalysis")
  if isinstance(situation, dict):
    parts.append("## Situation Analysis\n")
    if situation.get("currentState"):
      parts.append(f"### Current State\n{situation['currentState']}\n")
    for heading, key in (("Key Challenges", "challenges"), ("Opportunities", "opportunities")):
      items = _str_items(situation.get(key))
      if items:
        parts.append(f"### {heading}\n" + "\n".join(f"- {item}" for item in items) + "\n")

  if overview.get("strategicVision"):
    parts.append(f"## Strategic Vision\n\n{overview['strategicVision']}\n")

  objectives = _str_items(overview.get("keyObjectives"))
  if objectives:
    parts.append("## Key Objectives\n\n" + "\n".join(f"{index}. {item}" for index, item in enumerate(objectives, start=1)) + "\n")

  metrics = _str_items(overview.get("successMetrics"))
  if metrics:
    parts.append("## Success Metrics\n\n" + "\n".join(f"- {item}" for item in metrics) + "\n")

  risk = overview.get("riskAssessment")
  if isinstance(risk, dict):
    parts.append("## Risk Assessment\n")
    for heading, key in (("Potential Risks", "risks"), ("Mitigation Strategies", "mitigations")):
      items = _str_items(risk.get(key))
      if items:
        parts.append(f"### {heading}\n" + "\n".join(f"- {item}" for item in items) + "\n")

  return "\n".join(parts).strip()


def render_plan_text(plan: dict[str, Any]) -> str:
  """Render the implementation plan block appended after the overview."""
  text = "\n\n=== IMPLEMENTATION PLAN ===\n"
  phases = plan.get("phases")
  if isinstance(phases, list) and phases:
    text += "\nPHASES:\n"
    for index, phase in enumerate(phases, start=1):
      if not isinstance(phase, dict):
        continue
      text += f"\n{index}. {phase.get('name', f'Phase {index}')} ({phase.get('duration', 'TBD')})\n"
      for label, key in (("Objectives", "objectives"), ("Actions", "actions")):
        items = _str_items(phase.get(key))
        if items:
          text += f"   {label}:\n" + "\n".join(f"   • {item}" for item in items) + "\n"

  metrics = _str_items(plan.get("successMetrics"))
  if metrics:
    text += "\nSUCCESS METRICS:\n" + "\n".join(f"• {item}" for item in metrics)
  return text


class ArtifactBuilder:
  """Fold StepResults into a JumpArtifact as they arrive."""

  def __init__(self, *, jump_number: int | None = None) -> None:
    self.artifact = JumpArtifact(jump_number=jump_number)
    self._overview_markdown = ""
    self._plan_text = ""

  def apply(self, result: StepResult) -> JumpArtifact:
    artifact = self.artifact
    if result.parse_error is not None:
      artifact.errors.append(result.parse_error.as_dict())

    if result.type is StepType.NAMING:
      artifact.jump_name = str(result.data.get("jumpName") or "").strip() or None
    elif result.type is StepType.OVERVIEW:
      artifact.comprehensive_plan = dict(result.data)
      self._overview_markdown = render_overview_markdown(result.data)
    elif result.type is StepType.COMPREHENSIVE:
      artifact.structured_plan = dict(result.data)
      self._plan_text = render_plan_text(result.data)
    elif result.type is StepType.TOOL_PROMPTS:
      artifact.components.tool_prompts = [ToolPromptCombo.model_validate(entry) for entry in result.data.get("tool_prompts", [])]
    elif result.type is StepType.ERROR:
      artifact.errors.append({"step": result.step, "message": result.data.get("message")})
    elif result.type is StepType.COMPLETE:
      artifact.is_complete = True

    artifact.full_content = (self._overview_markdown + self._plan_text).strip()
    return artifact
