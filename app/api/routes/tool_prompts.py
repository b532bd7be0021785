import logging

from fastapi import APIRouter, Depends, Query, status

from app.api.models import ToolPromptBulkSaveRequest, ToolPromptListResponse, ToolPromptResponse, ToolPromptSaveRequest
from app.config import Settings, get_settings
from app.core.security import AuthenticatedUser, get_current_user
from app.services import jumps as jump_service
from app.services import tool_prompts as tool_prompt_service
from app.storage.jumps_repo import ToolPromptRecord

router = APIRouter()
logger = logging.getLogger("app.api.routes.tool_prompts")


def _to_response(record: ToolPromptRecord) -> ToolPromptResponse:
  return ToolPromptResponse.model_validate(tool_prompt_service.record_to_dict(record))


async def _check_jump_owner(jump_id: str | None, user: AuthenticatedUser, settings: Settings) -> None:
  # Attaching combos to someone else's Jump is reported as a missing Jump.
  if jump_id:
    await jump_service.get_jump(jump_id, user_id=user.user_id, settings=settings)


@router.get("", response_model=ToolPromptListResponse)
async def list_tool_prompts(  # noqa: B008
  jump_id: str | None = Query(default=None),
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> ToolPromptListResponse:
  """List the caller's combos, optionally only those of one Jump."""
  if jump_id:
    await _check_jump_owner(jump_id, current_user, settings)
    records = await tool_prompt_service.list_for_jump(jump_id, settings)
  else:
    records = await tool_prompt_service.list_for_user(current_user.user_id, settings)
  items = [_to_response(record) for record in records]
  return ToolPromptListResponse(tool_prompts=items, count=len(items))


@router.post("", response_model=ToolPromptResponse, status_code=status.HTTP_201_CREATED)
async def save_tool_prompt(  # noqa: B008
  payload: ToolPromptSaveRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> ToolPromptResponse:
  """Save one combo."""
  await _check_jump_owner(payload.jump_id, current_user, settings)
  record = await tool_prompt_service.save_one(payload.tool_prompt, user_id=current_user.user_id, jump_id=payload.jump_id, settings=settings)
  return _to_response(record)


@router.post("/bulk", response_model=ToolPromptListResponse, status_code=status.HTTP_201_CREATED)
async def bulk_save_tool_prompts(  # noqa: B008
  payload: ToolPromptBulkSaveRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> ToolPromptListResponse:
  """Save several combos in one transaction."""
  await _check_jump_owner(payload.jump_id, current_user, settings)
  records = await tool_prompt_service.bulk_save(payload.tool_prompts, user_id=current_user.user_id, jump_id=payload.jump_id, settings=settings)
  items = [_to_response(record) for record in records]
  return ToolPromptListResponse(tool_prompts=items, count=len(items))


@router.put("/{tool_prompt_id}", response_model=ToolPromptResponse)
async def upsert_tool_prompt(  # noqa: B008
  tool_prompt_id: str,
  payload: ToolPromptSaveRequest,
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> ToolPromptResponse:
  """Replace a combo, creating it under this id when it does not exist."""
  await _check_jump_owner(payload.jump_id, current_user, settings)
  record = await tool_prompt_service.upsert(tool_prompt_id, payload.tool_prompt, user_id=current_user.user_id, jump_id=payload.jump_id, settings=settings)
  return _to_response(record)


@router.delete("/{tool_prompt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tool_prompt(  # noqa: B008
  tool_prompt_id: str,
  settings: Settings = Depends(get_settings),  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
) -> None:
  """Delete one combo."""
  await tool_prompt_service.delete(tool_prompt_id, user_id=current_user.user_id, settings=settings)
