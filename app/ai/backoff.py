"""Retry logic with exponential backoff for transient provider failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from app.ai.errors import ProviderError

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Delays in seconds: 2s, 4s, 8s.
BACKOFF_DELAYS: tuple[float, ...] = (2.0, 4.0, 8.0)


async def retry_with_backoff(func: Callable[..., Awaitable[T]], *args: Any, attempts: int = len(BACKOFF_DELAYS), **kwargs: Any) -> T:
  """
  Execute a coroutine function, retrying 5xx and 429 provider errors.

  `attempts` counts retries after the first call and is capped by BACKOFF_DELAYS.
  """
  delays = BACKOFF_DELAYS[: max(attempts, 0)]

  for attempt, delay in enumerate(delays):
    try:
      return await func(*args, **kwargs)
    except ProviderError as exc:
      if not exc.retryable:
        # Non-retryable error, raise immediately
        raise
      logger.warning("Retry attempt %d/%d needed. Error: %s. Retrying in %.0fs...", attempt + 1, len(delays), exc, delay)
      await asyncio.sleep(delay)

  # Final attempt
  return await func(*args, **kwargs)
