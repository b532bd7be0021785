"""Best-effort API usage logging for the generation endpoints."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from app.core.database import get_session_factory
from app.schema.sql import ApiUsageLog

logger = logging.getLogger(__name__)

TRACKED_PATH_PREFIXES = ("/functions/v1/jumps-ai-streaming", "/functions/v1/jumps-realtime-generation")


@dataclass(frozen=True)
class UsageEntry:
  """One request worth of usage metadata."""

  endpoint: str
  status_code: int
  request_duration_ms: int
  user_id: str | None = None
  ip_address: str | None = None
  user_agent: str | None = None
  error_message: str | None = None


def is_tracked(path: str) -> bool:
  return path.startswith(TRACKED_PATH_PREFIXES)


def _user_uuid(user_id: str | None) -> uuid.UUID | None:
  if not user_id:
    return None
  try:
    return uuid.UUID(user_id)
  except ValueError:
    return None


async def record_usage(entry: UsageEntry) -> bool:
  """Insert an api_usage_logs row; failures are logged and never raised."""
  session_factory = get_session_factory()
  # Usage logging is optional when no database is configured.
  if session_factory is None:
    return False

  try:
    async with session_factory() as session:
      session.add(
        ApiUsageLog(
          endpoint=entry.endpoint,
          user_id=_user_uuid(entry.user_id),
          ip_address=entry.ip_address,
          user_agent=(entry.user_agent or "")[:512] or None,
          status_code=entry.status_code,
          request_duration_ms=entry.request_duration_ms,
          error_message=entry.error_message,
        )
      )
      await session.commit()
  except Exception:  # noqa: BLE001
    logger.warning("Failed to record API usage endpoint=%s status=%s", entry.endpoint, entry.status_code, exc_info=True)
    return False

  return True
