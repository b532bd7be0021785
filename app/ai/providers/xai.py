"""xAI provider implementation using the openai SDK against the OpenAI-compatible API."""

from __future__ import annotations

import logging
from typing import Final

import openai
from openai import AsyncOpenAI

from app.ai.backoff import retry_with_backoff
from app.ai.errors import ProviderError, ProviderNotConfiguredError
from app.ai.providers.base import AIModel, Provider, SimpleModelResponse
from app.config import DEFAULT_XAI_BASE_URL, DEFAULT_XAI_MODEL, Settings

logger = logging.getLogger("app.ai.providers.xai")


class XAIModel(AIModel):
  """Grok chat-completion client."""

  def __init__(self, name: str, *, api_key: str | None, base_url: str | None = None, temperature: float = 0.7, timeout_seconds: float = 300.0, max_retries: int = 0) -> None:
    if not api_key:
      raise ProviderNotConfiguredError("XAI_API_KEY environment variable is required")

    self.name: str = name
    self._temperature = temperature
    self._max_retries = max_retries
    # SDK-level retries stay off; retry policy lives in retry_with_backoff.
    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or DEFAULT_XAI_BASE_URL, timeout=timeout_seconds, max_retries=0)

  async def generate(self, *, system_prompt: str, user_prompt: str, max_tokens: int) -> SimpleModelResponse:
    """Issue one chat completion, optionally retried on transient failures."""
    if self._max_retries:
      return await retry_with_backoff(self._complete, system_prompt, user_prompt, max_tokens, attempts=self._max_retries)
    return await self._complete(system_prompt, user_prompt, max_tokens)

  async def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> SimpleModelResponse:
    messages = [{"role": "system", "content": system_prompt}, {"role": "user", "content": user_prompt}]
    try:
      response = await self._client.chat.completions.create(model=self.name, messages=messages, temperature=self._temperature, max_tokens=max_tokens)
    except openai.APIStatusError as exc:
      raise ProviderError(f"xAI API error: {exc.status_code} - {exc.message}", status_code=exc.status_code) from exc
    except openai.APIConnectionError as exc:
      # Timeouts subclass APIConnectionError.
      raise ProviderError(f"xAI API connection error: {exc}") from exc

    if not response.choices:
      raise ProviderError("xAI API returned no choices")

    choice = response.choices[0]
    content = choice.message.content or ""
    usage = None
    if response.usage:
      usage = {"prompt_tokens": response.usage.prompt_tokens, "completion_tokens": response.usage.completion_tokens, "total_tokens": response.usage.total_tokens}

    logger.debug("xAI response model=%s finish_reason=%s chars=%d usage=%s", self.name, choice.finish_reason, len(content), usage)
    return SimpleModelResponse(content=content, usage=usage, finish_reason=choice.finish_reason)


class XAIProvider(Provider):
  """xAI provider."""

  _DEFAULT_MODEL: Final[str] = DEFAULT_XAI_MODEL
  _AVAILABLE_MODELS: Final[set[str]] = {"grok-4-fast-reasoning", "grok-4-fast-non-reasoning", "grok-4", "grok-3", "grok-3-mini", "grok-2-latest"}

  def __init__(self, settings: Settings) -> None:
    self.name: str = "xai"
    self._settings = settings

  def get_model(self, model: str | None = None) -> AIModel:
    """Return an xAI model client."""
    model_name = model or self._settings.xai_model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported xAI model '{model_name}'.")
    settings = self._settings
    return XAIModel(model_name, api_key=settings.xai_api_key, base_url=settings.xai_base_url, temperature=settings.llm_temperature, timeout_seconds=float(settings.llm_timeout_seconds), max_retries=settings.llm_max_retries)
