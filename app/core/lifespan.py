import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI

from app.core.database import dispose_engine
from app.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging after uvicorn starts and release the pool on shutdown."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except (OSError, RuntimeError):
    # A read-only filesystem should not keep the service from starting.
    logger.warning("Initial logging setup failed; continuing with console logging.", exc_info=True)

  # Surface configuration gaps at boot instead of on the first request.
  if not settings.xai_api_key:
    logger.warning("XAI_API_KEY is not set; generation endpoints will return 503.")
  if not settings.pg_dsn:
    logger.warning("No database configured; Jumps will not be persisted.")
  else:
    logger.info("Database configured dsn=%s", _redact_dsn(settings.pg_dsn))

  yield

  await dispose_engine()
  logger.info("Shutdown complete - database pool released.")


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  # Guard against malformed DSNs without a scheme.
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
