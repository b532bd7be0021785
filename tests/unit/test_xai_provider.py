from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

import pytest

from app.ai.errors import GenerationError, ProviderError, ProviderNotConfiguredError
from app.ai.providers.base import SimpleModelResponse
from app.ai.providers.xai import XAIModel, XAIProvider
from app.api.deps import build_model


def test_missing_api_key_is_reported_as_not_configured(settings) -> None:
  with pytest.raises(ProviderNotConfiguredError):
    XAIProvider(replace(settings, xai_api_key=None)).get_model()


def test_unknown_model_is_rejected(settings) -> None:
  with pytest.raises(ValueError, match="Unsupported xAI model"):
    XAIProvider(replace(settings, xai_api_key="test-key")).get_model("gpt-2")


def test_build_model_wraps_unknown_model_as_generation_error(settings) -> None:
  with pytest.raises(GenerationError):
    build_model(replace(settings, xai_api_key="test-key", xai_model="not-a-grok"))


def test_default_model_uses_settings(settings) -> None:
  model = XAIProvider(replace(settings, xai_api_key="test-key")).get_model()
  assert isinstance(model, XAIModel)
  assert model.name == "grok-4-fast-reasoning"


@pytest.mark.anyio
async def test_generate_retries_only_when_enabled(monkeypatch: pytest.MonkeyPatch) -> None:
  attempts = {"count": 0}

  async def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int) -> SimpleModelResponse:
    attempts["count"] += 1
    if attempts["count"] == 1:
      raise ProviderError("xAI API error: 503 - overloaded", status_code=503)
    return SimpleModelResponse(content='{"jumpName": "X"}')

  async def _no_sleep(_delay: float) -> None:
    return None

  monkeypatch.setattr(XAIModel, "_complete", _complete)
  monkeypatch.setattr("app.ai.backoff.asyncio", SimpleNamespace(sleep=_no_sleep))

  without_retries = XAIModel("grok-3", api_key="test-key")
  with pytest.raises(ProviderError):
    await without_retries.generate(system_prompt="s", user_prompt="u", max_tokens=10)

  attempts["count"] = 0
  with_retries = XAIModel("grok-3", api_key="test-key", max_retries=2)
  response = await with_retries.generate(system_prompt="s", user_prompt="u", max_tokens=10)
  assert response.content == '{"jumpName": "X"}'
  assert attempts["count"] == 2
