"""Shared error types and classification helpers for AI provider handling."""

from __future__ import annotations

from collections.abc import Iterable

_PROVIDER_HINTS: tuple[str, ...] = (
  "model not found",
  "no such model",
  "model is not available",
  "rate limit",
  "quota",
  "timeout",
  "timed out",
  "connection",
  "network",
  "api key",
  "unauthorized",
  "forbidden",
  "service unavailable",
  "bad gateway",
  "gateway",
  "internal server error",
)


class ProviderError(RuntimeError):
  """Raised when the model provider call fails for a generation step."""

  def __init__(self, message: str, *, step: int | None = None, status_code: int | None = None) -> None:
    super().__init__(message)
    self.step = step
    self.status_code = status_code

  @property
  def retryable(self) -> bool:
    """Server-side failures and throttling are worth another attempt."""
    if self.status_code is None:
      return is_provider_error(self)
    return self.status_code == 429 or self.status_code >= 500


class ProviderNotConfiguredError(ProviderError):
  """Raised when no provider API key is available."""


class GenerationError(RuntimeError):
  """Raised when a generation run cannot start or finish."""


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  return any(hint in message for hint in hints)


def is_provider_error(exc: Exception) -> bool:
  """Return True when an exception indicates a provider or model availability failure."""
  if isinstance(exc, ProviderError) and exc.status_code is not None:
    return True
  message = str(exc).lower()
  return _match_hint(message, _PROVIDER_HINTS)
