"""Shared data contracts for the Jump generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MIN_TEXT_CHARS = 10
MAX_TEXT_CHARS = 2000
MAX_CONTEXT_CHARS = 200
COMPLETE_STEP = 9
COMPONENT_CATEGORIES: tuple[str, ...] = ("tool_prompts", "workflows", "blueprints", "strategies")
EMPTY_CATEGORIES_HINT = "Some categories returned empty. Retry from Studio to fill them in."
TOOL_PROMPT_REQUIRED_FIELDS: tuple[str, ...] = ("title", "description", "tool_name", "prompt_text")


class GenerationRequest(BaseModel):
  """Inputs for a Jump generation run.

  Accepts both the studio form keys (`aiKnowledge`, `timeCommitment`) and the
  realtime payload keys (`ai_experience`, `urgency`).
  """

  goals: str = Field(min_length=MIN_TEXT_CHARS, max_length=MAX_TEXT_CHARS, description="What the user is trying to achieve.")
  challenges: str = Field(min_length=MIN_TEXT_CHARS, max_length=MAX_TEXT_CHARS, description="What is preventing the user.")
  industry: str | None = Field(default=None, max_length=MAX_CONTEXT_CHARS)
  ai_experience: str | None = Field(default=None, max_length=MAX_CONTEXT_CHARS, validation_alias=AliasChoices("ai_experience", "aiKnowledge", "aiExperience"))
  urgency: str | None = Field(default=None, max_length=MAX_CONTEXT_CHARS, validation_alias=AliasChoices("urgency", "timeCommitment"))
  budget: str | None = Field(default=None, max_length=MAX_CONTEXT_CHARS)
  user_id: str | None = Field(default=None, validation_alias=AliasChoices("user_id", "userId"))
  model_config = ConfigDict(extra="ignore", frozen=True, str_strip_whitespace=True)

  @field_validator("industry", "ai_experience", "urgency", "budget", "user_id")
  @classmethod
  def _blank_to_none(cls, value: str | None) -> str | None:
    # Empty form fields render as "Not specified" in prompts.
    return value or None

  def context_value(self, name: str) -> str:
    """Return an optional context field for prompt rendering."""
    return getattr(self, name) or "Not specified"


class StepType(str, Enum):
  """Event tags carried by StepResults."""

  NAMING = "naming"
  OVERVIEW = "overview"
  COMPREHENSIVE = "comprehensive"
  TOOL_PROMPTS = "tool_prompts"
  ERROR = "error"
  COMPLETE = "complete"


@dataclass(frozen=True)
class ParseError:
  """Describes a model response that could not be parsed for a step."""

  step: int
  message: str
  raw_excerpt: str

  def as_dict(self) -> dict[str, Any]:
    return {"step": self.step, "message": self.message, "rawExcerpt": self.raw_excerpt}


@dataclass(frozen=True)
class StepOutcome:
  """Typed result of one adapter call: parsed data, or fallback data plus the parse error."""

  step: int
  data: dict[str, Any]
  error: ParseError | None = None
  usage: dict[str, int] | None = None

  @property
  def ok(self) -> bool:
    return self.error is None

  @classmethod
  def success(cls, step: int, data: dict[str, Any], *, usage: dict[str, int] | None = None) -> StepOutcome:
    return cls(step=step, data=data, usage=usage)

  @classmethod
  def failure(cls, step: int, fallback: dict[str, Any], error: ParseError, *, usage: dict[str, int] | None = None) -> StepOutcome:
    return cls(step=step, data=fallback, error=error, usage=usage)


@dataclass(frozen=True)
class StepResult:
  """One event emitted by the sequencer."""

  step: int
  type: StepType
  data: dict[str, Any]
  parse_error: ParseError | None = None
  duration_ms: float | None = None

  @property
  def is_terminal(self) -> bool:
    """Complete always ends a run; errors end it only when marked fatal."""
    if self.type is StepType.COMPLETE:
      return True
    return self.type is StepType.ERROR and bool(self.data.get("fatal"))

  def as_dict(self) -> dict[str, Any]:
    """Serialize the wire payload shared by both transports."""
    payload: dict[str, Any] = {"step": self.step, "type": self.type.value, "data": self.data}
    if self.parse_error is not None:
      payload["parseError"] = self.parse_error.as_dict()
    return payload


class ToolAlternative(BaseModel):
  """Alternative tool suggestion attached to a combo."""

  tool: str = ""
  url: str | None = None
  note: str | None = None
  model_config = ConfigDict(extra="ignore")


class ToolPromptCombo(BaseModel):
  """One recommended tool plus its tailored prompt."""

  title: str
  description: str
  category: str | None = None
  tool_name: str
  tool_url: str | None = None
  tool_type: str | None = None
  prompt_text: str
  prompt_instructions: str | None = None
  when_to_use: str | None = None
  why_this_combo: str | None = None
  alternatives: list[ToolAlternative] = Field(default_factory=list)
  use_cases: list[str] = Field(default_factory=list)
  tags: list[str] = Field(default_factory=list)
  difficulty_level: str | None = None
  setup_time: str | None = None
  cost_estimate: str | None = None
  is_error: bool = False
  model_config = ConfigDict(extra="ignore")

  @classmethod
  def error_placeholder(cls, index: int, missing: list[str]) -> ToolPromptCombo:
    """Placeholder relayed in place of an incomplete combo; never persisted."""
    return cls(
      title=f"Error generating tool #{index}",
      description=f"This tool prompt could not be generated properly. Missing fields: {', '.join(missing)}",
      category="Error",
      tool_name="Error",
      prompt_text="This tool prompt is incomplete.",
      is_error=True,
    )


def missing_tool_prompt_fields(raw: Any) -> list[str]:
  """Return the required combo fields that are absent or blank."""
  if not isinstance(raw, dict):
    return list(TOOL_PROMPT_REQUIRED_FIELDS)
  return [name for name in TOOL_PROMPT_REQUIRED_FIELDS if not isinstance(raw.get(name), str) or not raw[name].strip()]


@dataclass
class JumpComponents:
  """Component categories attached to a Jump."""

  tool_prompts: list[ToolPromptCombo] = field(default_factory=list)
  workflows: list[dict[str, Any]] = field(default_factory=list)
  blueprints: list[dict[str, Any]] = field(default_factory=list)
  strategies: list[dict[str, Any]] = field(default_factory=list)

  def entries(self, category: str) -> list[dict[str, Any]]:
    """Return one category's entries as wire payloads."""
    if category == "tool_prompts":
      return [combo.model_dump() for combo in self.tool_prompts]
    return list(getattr(self, category))

  def as_dict(self) -> dict[str, Any]:
    return {category: self.entries(category) for category in COMPONENT_CATEGORIES}


@dataclass
class JumpArtifact:
  """Accumulated generation result, complete only after the terminal event."""

  jump_id: str | None = None
  jump_name: str | None = None
  jump_number: int | None = None
  full_content: str = ""
  structured_plan: dict[str, Any] = field(default_factory=dict)
  comprehensive_plan: dict[str, Any] = field(default_factory=dict)
  components: JumpComponents = field(default_factory=JumpComponents)
  errors: list[dict[str, Any]] = field(default_factory=list)
  is_complete: bool = False

  @property
  def title(self) -> str:
    name = self.jump_name or "My Jump in AI"
    if self.jump_number is not None:
      return f"Jump #{self.jump_number}: {name}"
    return name

  @property
  def summary(self) -> str:
    executive = self.comprehensive_plan.get("executiveSummary")
    if isinstance(executive, str) and executive.strip():
      return executive.strip()[:200]
    return f"AI Transformation: {self.jump_name}" if self.jump_name else ""

  def valid_tool_prompts(self) -> list[ToolPromptCombo]:
    return [combo for combo in self.components.tool_prompts if not combo.is_error]

  def empty_categories(self) -> list[str]:
    """List the plan and component categories that ended without usable entries."""
    empty: list[str] = []
    if not self.structured_plan.get("phases"):
      empty.append("plan")
    if not self.valid_tool_prompts():
      empty.append("tool_prompts")
    # No generation step fills these yet, so they are reported on every run.
    empty.extend(category for category in COMPONENT_CATEGORIES[1:] if not getattr(self.components, category))
    return empty

  def completion_notice(self) -> dict[str, Any]:
    """Return the retry hint merged into terminal messages, or nothing when all categories are filled."""
    empty = self.empty_categories()
    if not empty:
      return {}
    return {"emptyCategories": empty, "hint": EMPTY_CATEGORIES_HINT}
