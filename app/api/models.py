from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from app.ai.pipeline.contracts import GenerationRequest, ToolPromptCombo


class GenerationStreamRequest(BaseModel):
  """Body of the streaming generation endpoint."""

  form_data: GenerationRequest = Field(alias="formData", description="Studio form inputs.")
  turnstile_token: StrictStr | None = Field(default=None, alias="turnstileToken", description="Cloudflare Turnstile token for anonymous callers.")
  model_config = ConfigDict(populate_by_name=True, extra="ignore")


class JumpResponse(BaseModel):
  """Persisted Jump as returned to the dashboard."""

  id: str
  user_id: str
  title: str
  summary: str | None = None
  full_content: str
  structured_plan: dict[str, Any] | None = None
  comprehensive_plan: dict[str, Any] | None = None
  jump_type: str
  status: Literal["generating", "active", "completed"]
  completion_percentage: int
  profile_id: str | None = None
  created_at: str
  updated_at: str


class ToolPromptResponse(BaseModel):
  """Persisted tool-prompt combo."""

  id: str
  user_id: str
  jump_id: str | None = None
  title: str
  description: str | None = None
  category: str | None = None
  tool_name: str
  tool_url: str | None = None
  tool_type: str | None = None
  prompt_text: str
  prompt_instructions: str | None = None
  when_to_use: str | None = None
  why_this_combo: str | None = None
  alternatives: list[dict[str, Any]] = Field(default_factory=list)
  use_cases: list[str] = Field(default_factory=list)
  tags: list[str] = Field(default_factory=list)
  difficulty_level: str | None = None
  setup_time: str | None = None
  cost_estimate: str | None = None
  content: dict[str, Any] | None = None
  created_at: str | None = None
  updated_at: str | None = None


class JumpDetailResponse(JumpResponse):
  """Jump together with its tool prompts."""

  tool_prompts: list[ToolPromptResponse] = Field(default_factory=list)


class JumpListResponse(BaseModel):
  jumps: list[JumpResponse]
  count: int


class JumpUpdateRequest(BaseModel):
  """Partial update of a Jump; omitted fields are left unchanged."""

  title: StrictStr | None = Field(default=None, min_length=1, max_length=200)
  summary: StrictStr | None = None
  full_content: StrictStr | None = None
  structured_plan: dict[str, Any] | None = None
  comprehensive_plan: dict[str, Any] | None = None
  status: Literal["generating", "active", "completed"] | None = None
  completion_percentage: int | None = Field(default=None, ge=0, le=100)
  profile_id: StrictStr | None = None
  model_config = ConfigDict(extra="forbid")


class ToolPromptSaveRequest(BaseModel):
  """Create or replace one combo, optionally attached to a Jump."""

  jump_id: StrictStr | None = None
  tool_prompt: ToolPromptCombo


class ToolPromptBulkSaveRequest(BaseModel):
  """Save several combos at once; placeholders are skipped."""

  jump_id: StrictStr | None = None
  tool_prompts: list[ToolPromptCombo] = Field(min_length=1, max_length=50)


class ToolPromptListResponse(BaseModel):
  tool_prompts: list[ToolPromptResponse]
  count: int


class CreditBalanceResponse(BaseModel):
  user_id: str
  credits_balance: int
  total_credits_purchased: int


class CreditDeductRequest(BaseModel):
  """Spend credits, normally one per generation."""

  amount: int = Field(default=1, ge=1, le=100)
  description: StrictStr | None = Field(default=None, max_length=300)
  reference_id: StrictStr | None = Field(default=None, max_length=200)
  model_config = ConfigDict(extra="forbid")


class CreditTransactionResponse(BaseModel):
  id: str
  transaction_type: str
  credits_amount: int
  description: str | None = None
  reference_id: str | None = None
  created_at: str | None = None
