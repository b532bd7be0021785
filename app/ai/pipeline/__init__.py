"""Pipeline contracts and artifact assembly helpers."""

from app.ai.pipeline.artifact import ArtifactBuilder, render_overview_markdown, render_plan_text
from app.ai.pipeline.contracts import GenerationRequest, JumpArtifact, JumpComponents, ParseError, StepOutcome, StepResult, StepType, ToolPromptCombo

__all__ = ["ArtifactBuilder", "GenerationRequest", "JumpArtifact", "JumpComponents", "ParseError", "StepOutcome", "StepResult", "StepType", "ToolPromptCombo", "render_overview_markdown", "render_plan_text"]
