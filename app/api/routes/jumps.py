import logging

from fastapi import APIRouter, Depends, Query, status

from app.api.models import JumpDetailResponse, JumpListResponse, JumpResponse, JumpUpdateRequest, ToolPromptResponse
from app.config import Settings, get_settings
from app.core.security import AuthenticatedUser, get_current_user
from app.services import jumps as jump_service
from app.services import tool_prompts as tool_prompt_service

router = APIRouter()
logger = logging.getLogger("app.api.routes.jumps")


@router.get("", response_model=JumpListResponse)
async def list_jumps(  # noqa: B008
  limit: int = Query(default=50, ge=1, le=200),
  offset: int = Query(default=0, ge=0),
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> JumpListResponse:
  """List the caller's Jumps, newest first."""
  records = await jump_service.list_jumps(current_user.user_id, settings, limit=limit, offset=offset)
  jumps = [JumpResponse.model_validate(jump_service.record_to_dict(record)) for record in records]
  return JumpListResponse(jumps=jumps, count=len(jumps))


@router.get("/{jump_id}", response_model=JumpDetailResponse)
async def get_jump(  # noqa: B008
  jump_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> JumpDetailResponse:
  """Fetch one Jump together with its tool prompts."""
  record = await jump_service.get_jump(jump_id, user_id=current_user.user_id, settings=settings)
  combos = await tool_prompt_service.list_for_jump(jump_id, settings)
  payload = jump_service.record_to_dict(record)
  payload["tool_prompts"] = [ToolPromptResponse.model_validate(tool_prompt_service.record_to_dict(combo)) for combo in combos]
  return JumpDetailResponse.model_validate(payload)


@router.patch("/{jump_id}", response_model=JumpResponse)
async def update_jump(  # noqa: B008
  jump_id: str,
  payload: JumpUpdateRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> JumpResponse:
  """Apply a partial update to a Jump."""
  changes = payload.model_dump(exclude_unset=True)
  record = await jump_service.update_jump(jump_id, changes, user_id=current_user.user_id, settings=settings)
  return JumpResponse.model_validate(jump_service.record_to_dict(record))


@router.delete("/{jump_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_jump(  # noqa: B008
  jump_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> None:
  """Delete a Jump; its tool prompts are removed with it."""
  await jump_service.delete_jump(jump_id, user_id=current_user.user_id, settings=settings)
