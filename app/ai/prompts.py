"""Prompt templates and token budgets for each Jump generation step."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from app.ai.pipeline.contracts import GenerationRequest, StepType
from app.services.naming import generate_jump_name

TOOL_PROMPT_COUNT = 9
MIN_DISTINCT_TOOLS = 6


@dataclass(frozen=True)
class StepContext:
  """Outputs of earlier steps that later prompts may reference."""

  overview: dict[str, Any] | None = None

  def overview_json(self) -> str:
    if not self.overview:
      return "Not available"
    return json.dumps(self.overview, ensure_ascii=False)


@dataclass(frozen=True)
class StepDefinition:
  """Static description of one generation step."""

  number: int
  type: StepType
  max_tokens: int
  system_prompt: str
  render_user_prompt: Callable[[GenerationRequest, StepContext], str]
  fallback: Callable[[str, GenerationRequest], dict[str, Any]]

  def build_messages(self, request: GenerationRequest, context: StepContext) -> tuple[str, str]:
    """Return the system + user prompt pair for this step."""
    return self.system_prompt, self.render_user_prompt(request, context)


def base_context(request: GenerationRequest) -> str:
  """Render the shared user context block used by every step."""
  lines = [
    f"What they're trying to achieve: {request.goals}",
    f"What's preventing them: {request.challenges}",
    f"Industry: {request.context_value('industry')}",
    f"AI Experience: {request.context_value('ai_experience')}",
    f"Urgency: {request.context_value('urgency')}",
    f"Budget: {request.context_value('budget')}",
  ]
  return "\n".join(lines)


def _naming_prompt(request: GenerationRequest, _context: StepContext) -> str:
  return f"""Read what this person is trying to achieve and understand their situation:

{base_context(request)}

Steps:
1. Analyze their goals to understand their current role/situation
2. Identify what transformation they're seeking
3. Create an inspiring 3-5 word name that captures their journey

Return ONLY valid JSON:
{{
  "jumpName": "3-5 word name reflecting THEIR specific transformation"
}}"""


def _overview_prompt(request: GenerationRequest, _context: StepContext) -> str:
  urgency = request.context_value("urgency")
  budget = request.context_value("budget")
  return f"""Deeply analyze this person's situation:

{base_context(request)}

CRITICAL INSTRUCTIONS:
1. First, carefully read "What they're trying to achieve" to understand their current role/situation
2. Analyze "What's preventing them" to understand obstacles
3. Create a transformation plan specific to THEIR situation

DO NOT use generic roles or examples. Extract understanding from THEIR input.

Return ONLY valid JSON:
{{
  "executiveSummary": "3 paragraphs showing you understand their situation, transformation path for time: {urgency} and budget: {budget}, and success picture",
  "situationAnalysis": {{
    "currentState": "What you understand from their goals",
    "challenges": ["From what's preventing them", "Challenge 2", "Challenge 3"],
    "opportunities": ["Relevant to them", "Opportunity 2", "Opportunity 3"]
  }},
  "strategicVision": "Success for what they're trying to achieve",
  "roadmap": {{
    "phase1": {{"name": "Phase 1 name", "timeline": "Fits {urgency}", "milestones": ["Milestone 1", "Milestone 2", "Milestone 3"]}},
    "phase2": {{"name": "Phase 2 name", "timeline": "Realistic timeline", "milestones": ["Milestone 1", "Milestone 2", "Milestone 3"]}},
    "phase3": {{"name": "Phase 3 name", "timeline": "Realistic timeline", "milestones": ["Milestone 1", "Milestone 2", "Milestone 3"]}}
  }},
  "keyObjectives": ["Objective 1 for them", "Objective 2 for them", "Objective 3 for them"],
  "successMetrics": ["Metric 1", "Metric 2", "Metric 3"],
  "riskAssessment": {{
    "risks": ["Risk 1", "Risk 2", "Risk 3"],
    "mitigations": ["Mitigation 1", "Mitigation 2", "Mitigation 3"]
  }}
}}"""


def _comprehensive_prompt(request: GenerationRequest, context: StepContext) -> str:
  urgency = request.context_value("urgency")
  budget = request.context_value("budget")
  phase_shape = """{
      "name": "Phase N: [Based on their situation]",
      "description": "[For what they're trying to achieve]",
      "duration": "[Fits their urgency]",
      "objectives": ["For THEM", "For THEM"],
      "actions": ["Action for THEM", "Action for THEM", "Action for THEM"],
      "milestones": ["For THEM", "For THEM"]
    }"""
  return f"""Analyze and create action plan:

{base_context(request)}

Overview Context:
{context.overview_json()}

INSTRUCTIONS:
1. Understand their situation from what they're trying to achieve
2. Create 3 phases specific to THEIR journey
3. Address what's preventing them
4. Fit their urgency: {urgency} and budget: {budget}

Return ONLY valid JSON:
{{
  "phases": [
    {phase_shape}
  ],
  "successMetrics": ["For their goals", "For their goals", "For their goals"]
}}"""


def _tool_prompts_prompt(request: GenerationRequest, context: StepContext) -> str:
  experience = request.context_value("ai_experience")
  urgency = request.context_value("urgency")
  budget = request.context_value("budget")
  industry = request.context_value("industry")
  return f"""Create {TOOL_PROMPT_COUNT} tool+prompt combinations:

{base_context(request)}

Overview Context:
{context.overview_json()}

CRITICAL INSTRUCTIONS:
1. Understand their situation from what they're trying to achieve
2. Each combo must solve what's preventing them
3. Fit their budget: {budget}
4. Match AI experience: {experience}
5. Work with urgency: {urgency}
6. Use at least {MIN_DISTINCT_TOOLS} different tools across the {TOOL_PROMPT_COUNT} combos

DO NOT use generic roles. Tailor to THEIR specific situation.

Return ONLY valid JSON:
{{
  "tool_prompts": [
    {{
      "title": "Use case for their situation",
      "description": "How this helps them achieve their goals and overcome obstacles",
      "category": "Relevant category",
      "tool_name": "Specific tool",
      "tool_url": "https://url.com",
      "tool_type": "Tool type",
      "prompt_text": "200-300 word ready-to-copy prompt tailored to what they're trying to achieve. Reference what's preventing them. Include industry: {industry}.",
      "prompt_instructions": "Steps for THEIR use case",
      "when_to_use": "When in their journey",
      "why_this_combo": "Why perfect for their situation",
      "alternatives": [
        {{"tool": "Alt", "url": "url", "note": "Why for them"}},
        {{"tool": "Alt", "url": "url", "note": "Why for them"}}
      ],
      "use_cases": ["For their situation", "For their goal", "For their challenge"],
      "tags": ["relevant-tags"],
      "difficulty_level": "{experience}",
      "setup_time": "Fits {urgency}",
      "cost_estimate": "Within {budget}"
    }}
  ]
}}

Generate EXACTLY {TOOL_PROMPT_COUNT} combos tailored to THEIR input."""


def _naming_fallback(_raw: str, request: GenerationRequest) -> dict[str, Any]:
  # A name derived from the goals beats a generic placeholder.
  return {"jumpName": generate_jump_name(request)}


def _overview_fallback(raw: str, _request: GenerationRequest) -> dict[str, Any]:
  return {
    "executiveSummary": raw[:500],
    "situationAnalysis": {"currentState": "Starting AI journey", "challenges": [], "opportunities": []},
    "strategicVision": "Success through AI",
    "roadmap": {},
    "keyObjectives": [],
    "successMetrics": [],
    "riskAssessment": {"risks": [], "mitigations": []},
  }


def _comprehensive_fallback(_raw: str, _request: GenerationRequest) -> dict[str, Any]:
  return {"phases": [], "successMetrics": []}


def _tool_prompts_fallback(_raw: str, _request: GenerationRequest) -> dict[str, Any]:
  return {"tool_prompts": []}


STEPS: tuple[StepDefinition, ...] = (
  StepDefinition(
    number=1,
    type=StepType.NAMING,
    max_tokens=500,
    system_prompt="You are a creative naming expert. First ANALYZE what the person is trying to achieve to understand their situation, then create an inspiring journey name.",
    render_user_prompt=_naming_prompt,
    fallback=_naming_fallback,
  ),
  StepDefinition(
    number=2,
    type=StepType.OVERVIEW,
    max_tokens=8000,
    system_prompt="You are an expert AI strategist. Deeply analyze what the person is trying to achieve to understand their situation, then create a personalized plan.",
    render_user_prompt=_overview_prompt,
    fallback=_overview_fallback,
  ),
  StepDefinition(
    number=3,
    type=StepType.COMPREHENSIVE,
    max_tokens=16000,
    system_prompt="You are an action planning expert. Analyze the person's goals to understand their situation, then create specific action phases.",
    render_user_prompt=_comprehensive_prompt,
    fallback=_comprehensive_fallback,
  ),
  StepDefinition(
    number=4,
    type=StepType.TOOL_PROMPTS,
    max_tokens=50000,
    system_prompt="You are an AI tools specialist. Analyze what the person is trying to achieve to understand their situation, then create tailored tool+prompt combos.",
    render_user_prompt=_tool_prompts_prompt,
    fallback=_tool_prompts_fallback,
  ),
)

TOTAL_STEPS = len(STEPS)


def get_step(number: int) -> StepDefinition:
  """Look up a step definition by its number."""
  for step in STEPS:
    if step.number == number:
      return step
  raise ValueError(f"Invalid step: {number}")
