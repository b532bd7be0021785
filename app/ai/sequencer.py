"""Step sequencer shared by the SSE and WebSocket relays.

Runs naming, overview, comprehensive plan and tool prompts strictly in order
and yields one StepResult per step followed by a single terminal event.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from enum import Enum

from app.ai.adapter import invoke_step
from app.ai.pipeline.contracts import COMPLETE_STEP, GenerationRequest, StepResult, StepType
from app.ai.prompts import STEPS, StepContext, StepDefinition
from app.ai.providers.base import AIModel

logger = logging.getLogger(__name__)

# Later steps read the overview, so a missing name or overview ends the run.
FATAL_STEP_TYPES = frozenset({StepType.NAMING, StepType.OVERVIEW})


class FailurePolicy(str, Enum):
  """What a provider failure in a non-fatal step does to the run."""

  CONTINUE = "continue"
  HALT = "halt"


def _error_result(step: int, exc: Exception, *, fatal: bool, duration_ms: float | None = None) -> StepResult:
  message = f"Step {step} failed: {exc}"
  return StepResult(step=step, type=StepType.ERROR, data={"message": message, "fatal": fatal}, duration_ms=duration_ms)


async def run_generation(request: GenerationRequest, model: AIModel, *, policy: FailurePolicy = FailurePolicy.CONTINUE, steps: tuple[StepDefinition, ...] = STEPS) -> AsyncIterator[StepResult]:
  """Yield StepResults in ascending step order, ending with complete or a fatal error."""
  context = StepContext()
  run_started = time.perf_counter()

  for step in steps:
    started = time.perf_counter()
    logger.info("Step %d (%s) starting", step.number, step.type.value)
    try:
      outcome = await invoke_step(model, step, request, context)
    except Exception as exc:  # noqa: BLE001
      duration_ms = (time.perf_counter() - started) * 1000
      fatal = step.type in FATAL_STEP_TYPES or policy is FailurePolicy.HALT
      logger.error("Step %d (%s) failed fatal=%s policy=%s: %s", step.number, step.type.value, fatal, policy.value, exc, exc_info=True)
      yield _error_result(step.number, exc, fatal=fatal, duration_ms=duration_ms)
      if fatal:
        return
      continue

    duration_ms = (time.perf_counter() - started) * 1000
    if step.type is StepType.OVERVIEW:
      # Fallback data still feeds later steps so they have something to anchor on.
      context = StepContext(overview=outcome.data)
    yield StepResult(step=step.number, type=step.type, data=outcome.data, parse_error=outcome.error, duration_ms=duration_ms)

  total_ms = (time.perf_counter() - run_started) * 1000
  logger.info("Generation complete in %.0fms", total_ms)
  yield StepResult(step=COMPLETE_STEP, type=StepType.COMPLETE, data={"message": "Generation complete"}, duration_ms=total_ms)
