import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from app.ai.pipeline.artifact import ArtifactBuilder
from app.ai.pipeline.contracts import GenerationRequest, StepType
from app.ai.providers.base import AIModel
from app.ai.sequencer import FailurePolicy, run_generation
from app.api.deps import get_model, persistence_enabled
from app.api.models import GenerationStreamRequest
from app.api.msgspec_utils import encode_sse_frame
from app.config import Settings, get_settings
from app.core.security import AuthenticatedUser, get_optional_user
from app.services import jumps as jump_service
from app.services.turnstile import TurnstileVerificationError, verify_turnstile

router = APIRouter()
logger = logging.getLogger("app.api.routes.generation_stream")

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


async def _persist(builder: ArtifactBuilder, user: AuthenticatedUser, settings: Settings) -> dict[str, Any]:
  """Save the finished artifact; failures are reported in the frame, not raised."""
  try:
    persisted = await jump_service.persist_artifact(builder.artifact, user_id=user.user_id, settings=settings)
  except Exception:  # noqa: BLE001
    logger.error("Failed to persist jump for user_id=%s", user.user_id, exc_info=True)
    return {"saveError": "Failed to save Jump"}
  return {"jumpId": persisted.jump.jump_id, "jumpNumber": builder.artifact.jump_number, "fullTitle": persisted.jump.title, "toolPromptsSaved": persisted.tool_prompt_count}


async def _event_stream(request: Request, form: GenerationRequest, model: AIModel, *, user: AuthenticatedUser | None, can_persist: bool, settings: Settings) -> AsyncIterator[bytes]:
  """Relay sequencer results as SSE frames, persisting once the run completes."""
  builder = ArtifactBuilder()
  finished = False
  try:
    async for result in run_generation(form, model, policy=FailurePolicy.CONTINUE):
      builder.apply(result)
      frame = result.as_dict()
      if result.type is StepType.ERROR:
        request.state.error_message = result.data.get("message")
      if result.type is StepType.COMPLETE:
        frame["data"] = {**frame["data"], **builder.artifact.completion_notice()}
        if user is not None and can_persist:
          frame["data"].update(await _persist(builder, user, settings))
      yield encode_sse_frame(frame)
      if result.is_terminal:
        finished = True
  finally:
    # Reached without `finished` when the client went away mid-run.
    if not finished:
      logger.warning("Stream closed before completion request_id=%s", getattr(request.state, "request_id", None))
    else:
      logger.info("Stream finished request_id=%s errors=%d", getattr(request.state, "request_id", None), len(builder.artifact.errors))


@router.post("/jumps-ai-streaming")
async def stream_jump_generation(  # noqa: B008
  payload: GenerationStreamRequest,
  request: Request,
  settings: Settings = Depends(get_settings),  # noqa: B008
  user: AuthenticatedUser | None = Depends(get_optional_user),  # noqa: B008
  model: AIModel = Depends(get_model),  # noqa: B008
  can_persist: bool = Depends(persistence_enabled),  # noqa: B008
) -> StreamingResponse:
  """Generate a Jump and stream each step as a Server-Sent Event."""
  if user is None:
    try:
      client_ip = request.client.host if request.client else None
      await verify_turnstile(payload.turnstile_token, settings=settings, remote_ip=client_ip)
    except TurnstileVerificationError as exc:
      raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

  # Ownership comes from the verified token, never from the form body.
  form = payload.form_data.model_copy(update={"user_id": user.user_id if user is not None else None})
  request.state.user_id = form.user_id
  logger.info("Starting streamed generation authenticated=%s persist=%s", user is not None, can_persist)

  return StreamingResponse(_event_stream(request, form, model, user=user, can_persist=can_persist, settings=settings), media_type="text/event-stream", headers=SSE_HEADERS)
