"""Storage interfaces and records for Jump persistence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

JumpStatusValue = Literal["generating", "active", "completed"]


@dataclass(frozen=True)
class JumpRecord:
  """Record stored in the user_jumps table."""

  jump_id: str
  user_id: str
  title: str
  full_content: str
  status: JumpStatusValue
  completion_percentage: int
  created_at: str
  updated_at: str
  summary: str | None = None
  profile_id: str | None = None
  structured_plan: dict[str, Any] | None = None
  comprehensive_plan: dict[str, Any] | None = None
  jump_type: str = "comprehensive"


@dataclass(frozen=True)
class ToolPromptRecord:
  """Record stored in the user_tool_prompts table."""

  tool_prompt_id: str | None
  user_id: str
  jump_id: str | None
  title: str
  tool_name: str
  prompt_text: str
  description: str | None = None
  category: str | None = None
  tool_url: str | None = None
  tool_type: str | None = None
  prompt_instructions: str | None = None
  when_to_use: str | None = None
  why_this_combo: str | None = None
  alternatives: list[dict[str, Any]] = field(default_factory=list)
  use_cases: list[str] = field(default_factory=list)
  tags: list[str] = field(default_factory=list)
  difficulty_level: str | None = None
  setup_time: str | None = None
  cost_estimate: str | None = None
  content: dict[str, Any] | None = None
  created_at: str | None = None
  updated_at: str | None = None


class JumpsRepository(Protocol):
  """Repository contract for Jump persistence."""

  async def create_jump_with_tool_prompts(self, record: JumpRecord, tool_prompts: list[ToolPromptRecord]) -> tuple[JumpRecord, list[ToolPromptRecord]]:
    """Persist a Jump and its combos together; nothing is kept if either write fails."""

  async def get_jump(self, jump_id: str) -> JumpRecord | None:
    """Fetch a Jump by identifier."""

  async def list_jumps(self, user_id: str, *, limit: int = 50, offset: int = 0) -> list[JumpRecord]:
    """List a user's Jumps, newest first."""

  async def count_jumps(self, user_id: str) -> int:
    """Count a user's Jumps."""

  async def update_jump(self, jump_id: str, **changes: Any) -> JumpRecord | None:
    """Apply partial updates to a Jump."""

  async def delete_jump(self, jump_id: str) -> bool:
    """Delete a Jump and, by cascade, its tool prompts."""


class ToolPromptsRepository(Protocol):
  """Repository contract for tool-prompt combo persistence."""

  async def list_by_user(self, user_id: str) -> list[ToolPromptRecord]:
    """List every combo a user owns, newest first."""

  async def list_by_jump(self, jump_id: str) -> list[ToolPromptRecord]:
    """List the combos attached to one Jump, in creation order."""

  async def get(self, tool_prompt_id: str) -> ToolPromptRecord | None:
    """Fetch one combo."""

  async def save_many(self, records: list[ToolPromptRecord]) -> list[ToolPromptRecord]:
    """Insert combos, returning them with their new ids."""

  async def update(self, tool_prompt_id: str, **changes: Any) -> ToolPromptRecord | None:
    """Apply partial updates to a combo."""

  async def delete(self, tool_prompt_id: str) -> bool:
    """Delete one combo."""
