"""Base interfaces for AI providers and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol


class ModelResponse(Protocol):
  """Response contract for model outputs."""

  content: str
  usage: dict[str, int] | None


@dataclass
class SimpleModelResponse:
  """Minimal model response structure."""

  content: str
  usage: dict[str, int] | None = None
  finish_reason: str | None = None


class AIModel(ABC):
  """Abstract base class for chat models."""

  name: str

  @abstractmethod
  async def generate(self, *, system_prompt: str, user_prompt: str, max_tokens: int) -> ModelResponse:
    """Generate a completion for a system + user prompt pair within a token budget."""


class Provider(ABC):
  """Abstract base class for AI providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> AIModel:
    """Return the model client for the provider."""
