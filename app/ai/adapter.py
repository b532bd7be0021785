"""LLM invocation adapter: one prompt, one provider call, one typed parse outcome per step."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from pydantic import ValidationError

from app.ai.errors import ProviderError
from app.ai.json_parser import parse_json_with_fallback
from app.ai.pipeline.contracts import GenerationRequest, ParseError, StepOutcome, StepType, ToolPromptCombo, missing_tool_prompt_fields
from app.ai.prompts import MIN_DISTINCT_TOOLS, TOOL_PROMPT_COUNT, StepContext, StepDefinition
from app.ai.providers.base import AIModel

logger = logging.getLogger(__name__)

_RAW_EXCERPT_CHARS = 200


class _ShapeError(ValueError):
  """Parsed JSON that does not have the shape the step expects."""


async def invoke_step(model: AIModel, step: StepDefinition, request: GenerationRequest, context: StepContext) -> StepOutcome:
  """Run one generation step against the model and parse its response.

  Provider failures raise ``ProviderError``; parse failures never raise and
  come back as ``StepOutcome.failure`` carrying the step's fallback data.
  """
  system_prompt, user_prompt = step.build_messages(request, context)
  started = time.perf_counter()
  try:
    response = await model.generate(system_prompt=system_prompt, user_prompt=user_prompt, max_tokens=step.max_tokens)
  except ProviderError as exc:
    exc.step = step.number
    raise
  elapsed_ms = (time.perf_counter() - started) * 1000
  logger.info("Step %d (%s) model call finished in %.0fms chars=%d", step.number, step.type.value, elapsed_ms, len(response.content))

  return parse_step_response(step, response.content, request, usage=response.usage)


def parse_step_response(step: StepDefinition, raw: str, request: GenerationRequest, *, usage: dict[str, int] | None = None) -> StepOutcome:
  """Parse and normalize raw model text for a step."""
  try:
    parsed = parse_json_with_fallback(raw)
    data = _normalize(step, parsed)
  except (json.JSONDecodeError, _ShapeError) as exc:
    # Keep the UI alive with placeholder content while surfacing what was lost.
    logger.warning("Step %d (%s) response could not be parsed: %s preview=%r", step.number, step.type.value, exc, raw[:_RAW_EXCERPT_CHARS])
    error = ParseError(step=step.number, message=str(exc), raw_excerpt=raw[:_RAW_EXCERPT_CHARS])
    return StepOutcome.failure(step.number, step.fallback(raw, request), error, usage=usage)

  return StepOutcome.success(step.number, data, usage=usage)


def _normalize(step: StepDefinition, parsed: Any) -> dict[str, Any]:
  if step.type is StepType.TOOL_PROMPTS:
    return _normalize_tool_prompts(parsed)

  if not isinstance(parsed, dict):
    raise _ShapeError(f"Expected a JSON object for step {step.number}, got {type(parsed).__name__}")

  if step.type is StepType.NAMING:
    name = parsed.get("jumpName")
    if not isinstance(name, str) or not name.strip():
      raise _ShapeError("Response is missing jumpName")
    return {"jumpName": name.strip()}

  if step.type is StepType.COMPREHENSIVE:
    # Some responses nest the plan under implementationPlan.
    plan = parsed.get("implementationPlan", parsed)
    if not isinstance(plan, dict):
      raise _ShapeError("implementationPlan must be an object")
    if not isinstance(plan.get("phases", []), list):
      raise _ShapeError("phases must be a list")
    return plan

  return parsed


def _normalize_tool_prompts(parsed: Any) -> dict[str, Any]:
  """Validate combos, replacing incomplete ones with error placeholders."""
  entries = parsed.get("tool_prompts", parsed.get("tools")) if isinstance(parsed, dict) else parsed
  if not isinstance(entries, list):
    raise _ShapeError("Response is missing the tool_prompts list")

  combos: list[ToolPromptCombo] = []
  for index, entry in enumerate(entries, start=1):
    missing = missing_tool_prompt_fields(entry)
    if missing:
      logger.warning("Tool prompt #%d missing fields: %s", index, ", ".join(missing))
      combos.append(ToolPromptCombo.error_placeholder(index, missing))
      continue
    try:
      combos.append(ToolPromptCombo.model_validate(entry))
    except ValidationError as exc:
      invalid = sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")})
      logger.warning("Tool prompt #%d has invalid fields: %s", index, ", ".join(invalid))
      combos.append(ToolPromptCombo.error_placeholder(index, invalid))

  data: dict[str, Any] = {"tool_prompts": [combo.model_dump() for combo in combos]}
  warnings = tool_prompt_warnings(combos)
  if warnings:
    data["warnings"] = warnings
  return data


def tool_prompt_warnings(combos: list[ToolPromptCombo]) -> list[str]:
  """Describe how a combo list misses the expected count or tool spread."""
  valid = [combo for combo in combos if not combo.is_error]
  warnings: list[str] = []
  if len(valid) != TOOL_PROMPT_COUNT:
    warnings.append(f"Expected {TOOL_PROMPT_COUNT} tool prompts, received {len(valid)} valid")
  distinct_tools = {combo.tool_name.strip().lower() for combo in valid}
  if len(distinct_tools) < MIN_DISTINCT_TOOLS:
    warnings.append(f"Expected at least {MIN_DISTINCT_TOOLS} distinct tools, received {len(distinct_tools)}")
  return warnings
