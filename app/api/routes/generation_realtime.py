import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import msgspec
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.ai.errors import GenerationError, ProviderNotConfiguredError
from app.ai.pipeline.artifact import ArtifactBuilder
from app.ai.pipeline.contracts import COMPONENT_CATEGORIES, GenerationRequest, StepResult, StepType
from app.ai.providers.base import AIModel
from app.ai.sequencer import FailurePolicy, run_generation
from app.api.deps import build_model, persistence_enabled
from app.api.msgspec_utils import decode_msgspec_text, encode_json_text
from app.config import Settings, get_settings
from app.core.security import AuthenticatedUser, resolve_user
from app.progress.reducer import compute_progress
from app.services import jumps as jump_service
from app.services.usage_logging import UsageEntry, record_usage

router = APIRouter()
logger = logging.getLogger("app.api.routes.generation_realtime")

ModelFactory = Callable[[], AIModel]

_PHASE_MESSAGES = {
  StepType.NAMING: "Naming your Jump...",
  StepType.OVERVIEW: "Writing the strategic overview...",
  StepType.COMPREHENSIVE: "Building the implementation plan...",
  StepType.TOOL_PROMPTS: "Selecting tools and writing prompts...",
}


class ClientMessage(msgspec.Struct):
  """Inbound WebSocket message."""

  type: str
  payload: dict[str, Any] | None = None


def get_model_factory(settings: Settings = Depends(get_settings)) -> ModelFactory:  # noqa: B008
  """Defer model construction until a generate message arrives."""
  return lambda: build_model(settings)


async def _send(websocket: WebSocket, message: dict[str, Any]) -> None:
  await websocket.send_text(encode_json_text(message))


async def _pause(milliseconds: int) -> None:
  if milliseconds > 0:
    await asyncio.sleep(milliseconds / 1000)


async def _resolve_socket_user(websocket: WebSocket, settings: Settings) -> AuthenticatedUser | None:
  """Browsers cannot set headers on WebSockets, so the token may arrive as a query param."""
  token = websocket.query_params.get("access_token")
  authorization = websocket.headers.get("authorization", "")
  if not token and authorization.lower().startswith("bearer "):
    token = authorization[7:].strip()
  if not token:
    return None
  return await resolve_user(token, settings)


async def _relay_result(websocket: WebSocket, result: StepResult, builder: ArtifactBuilder, completed: set[str], settings: Settings) -> int:
  """Map one sequencer result onto the realtime event vocabulary; returns progress."""
  completed.add(result.type.value)
  progress = compute_progress(frozenset(completed))
  await _send(websocket, {"type": "status", "phase": result.type.value, "message": _PHASE_MESSAGES.get(result.type, ""), "progress": progress})
  if result.parse_error is not None:
    await _send(websocket, {"type": "status", "phase": result.type.value, "message": f"Recovered from a malformed response: {result.parse_error.message}", "progress": progress, "parseError": result.parse_error.as_dict()})

  if result.type is StepType.COMPREHENSIVE:
    await _pause(settings.ws_pacing_ms * 2)
    artifact = builder.artifact
    await _send(websocket, {"type": "plan_ready", "data": {"full_content": artifact.full_content, "structured_plan": artifact.structured_plan, "comprehensive_plan": artifact.comprehensive_plan}})
  elif result.type is StepType.TOOL_PROMPTS:
    for category in COMPONENT_CATEGORIES:
      for entry in builder.artifact.components.entries(category):
        await _pause(settings.ws_pacing_ms)
        await _send(websocket, {"type": "component_ready", "componentType": category, "data": entry})
  return progress


async def _handle_generate(websocket: WebSocket, payload: dict[str, Any] | None, *, model_factory: ModelFactory, user: AuthenticatedUser | None, can_persist: bool, settings: Settings) -> tuple[int, str | None]:
  """Run one generation over the socket, halting on the first failure.

  Returns the status code and error message recorded in the usage log.
  """
  try:
    form = GenerationRequest.model_validate(payload or {})
  except ValidationError as exc:
    fields = ", ".join(sorted({str(error["loc"][0]) for error in exc.errors() if error.get("loc")}))
    await _send(websocket, {"type": "error", "message": f"Generation failed: Invalid input ({fields})"})
    return 400, f"Invalid input ({fields})"

  try:
    model = model_factory()
  except ProviderNotConfiguredError as exc:
    logger.error("Realtime generation requested without a provider key: %s", exc)
    await _send(websocket, {"type": "error", "message": "Generation failed: AI provider is not configured"})
    return 503, "AI provider is not configured"
  except GenerationError as exc:
    logger.error("Realtime generation could not build a model: %s", exc)
    await _send(websocket, {"type": "error", "message": "Generation failed: Internal Server Error"})
    return 500, str(exc)

  # Client-supplied user ids are ignored; only a verified token can own a Jump.
  form = form.model_copy(update={"user_id": user.user_id if user is not None else None})
  await _send(websocket, {"type": "status", "phase": "starting", "message": "Starting AI generation...", "progress": 0})
  await _send(websocket, {"type": "infrastructure_ready", "data": {**{category: [] for category in COMPONENT_CATEGORIES}, "plan": None}})

  builder = ArtifactBuilder()
  completed: set[str] = set()
  async for result in run_generation(form, model, policy=FailurePolicy.HALT):
    builder.apply(result)
    if result.type is StepType.ERROR:
      await _send(websocket, {"type": "error", "step": result.step, "message": f"Generation failed: {result.data.get('message')}"})
      return 500, str(result.data.get("message"))
    if result.type is StepType.COMPLETE:
      break
    await _relay_result(websocket, result, builder, completed, settings)

  if user is not None and can_persist:
    await _send(websocket, {"type": "status", "phase": "saving", "message": "Saving your Jump to dashboard...", "progress": 100})
    try:
      persisted = await jump_service.persist_artifact(builder.artifact, user_id=user.user_id, settings=settings)
    except Exception:  # noqa: BLE001
      logger.error("Failed to persist realtime jump for user_id=%s", user.user_id, exc_info=True)
      await _send(websocket, {"type": "error", "message": "Generation failed: could not save Jump"})
      return 500, "could not save Jump"
    await _send(websocket, {"type": "status", "phase": "saved", "message": "Jump saved to your dashboard!", "progress": 100})
    await _send(websocket, {"type": "jump_saved", "jumpId": persisted.jump.jump_id, "fullTitle": persisted.jump.title})

  await _send(websocket, {"type": "status", "phase": "complete", "message": "Your Jump in AI is ready!", "progress": 100})
  await _send(websocket, {"type": "generation_complete", "message": "Generation completed successfully", "jumpName": builder.artifact.jump_name, **builder.artifact.completion_notice()})
  return 200, None


@router.websocket("/jumps-realtime-generation")
async def realtime_generation(  # noqa: B008
  websocket: WebSocket,
  settings: Settings = Depends(get_settings),  # noqa: B008
  model_factory: ModelFactory = Depends(get_model_factory),  # noqa: B008
  can_persist: bool = Depends(persistence_enabled),  # noqa: B008
) -> None:
  """Generate Jumps over a WebSocket with paced, component-level events."""
  await websocket.accept()
  user = await _resolve_socket_user(websocket, settings)
  logger.info("WebSocket connected authenticated=%s", user is not None)
  await _send(websocket, {"type": "connected", "message": "Connected to realtime generation"})

  try:
    while True:
      text = await websocket.receive_text()
      try:
        message = decode_msgspec_text(text, ClientMessage)
      except msgspec.DecodeError as exc:
        logger.warning("Rejected malformed WebSocket message: %s", exc)
        await _send(websocket, {"type": "error", "message": "Generation failed: Failed to process request"})
        continue

      if message.type != "generate":
        logger.info("Ignoring WebSocket message type=%s", message.type)
        continue

      started = time.perf_counter()
      status_code, error_message = await _handle_generate(websocket, message.payload, model_factory=model_factory, user=user, can_persist=can_persist, settings=settings)
      if settings.usage_logging_enabled:
        entry = UsageEntry(
          endpoint=websocket.url.path,
          status_code=status_code,
          request_duration_ms=int((time.perf_counter() - started) * 1000),
          user_id=user.user_id if user is not None else None,
          ip_address=websocket.client.host if websocket.client else None,
          user_agent=websocket.headers.get("user-agent"),
          error_message=error_message,
        )
        await record_usage(entry)
  except WebSocketDisconnect:
    logger.info("WebSocket disconnected")
