"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_XAI_BASE_URL = "https://api.x.ai/v1"
DEFAULT_XAI_MODEL = "grok-4-fast-reasoning"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the JumpinAI generation service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  xai_api_key: str | None
  xai_base_url: str
  xai_model: str
  llm_temperature: float
  llm_timeout_seconds: int
  llm_max_retries: int
  ws_pacing_ms: int
  supabase_url: str | None
  supabase_anon_key: str | None
  turnstile_secret: str | None
  usage_logging_enabled: bool
  pg_dsn: str | None
  pg_connect_timeout: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("JUMPINAI_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("JUMPINAI_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("JUMPINAI_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  stripped = raw.strip()
  return stripped or None


def _parse_int(name: str, default: str, *, minimum: int = 1) -> int:
  """Read an integer env var and enforce a lower bound."""
  raw = os.getenv(name, default)
  try:
    value = int(raw)
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer.") from exc
  if value < minimum:
    qualifier = "a positive integer" if minimum == 1 else f"at least {minimum}"
    raise ValueError(f"{name} must be {qualifier}.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("JUMPINAI_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("JUMPINAI_DEBUG"))

  log_max_bytes = _parse_int("JUMPINAI_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = _parse_int("JUMPINAI_LOG_BACKUP_COUNT", "10", minimum=0)
  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("JUMPINAI_LOG_HTTP_4XX"))

  temperature_raw = os.getenv("JUMPINAI_LLM_TEMPERATURE", "0.7")
  try:
    llm_temperature = float(temperature_raw)
  except ValueError as exc:
    raise ValueError("JUMPINAI_LLM_TEMPERATURE must be a number.") from exc
  if not 0.0 <= llm_temperature <= 2.0:
    raise ValueError("JUMPINAI_LLM_TEMPERATURE must be between 0 and 2.")

  llm_timeout_seconds = _parse_int("JUMPINAI_LLM_TIMEOUT_SECONDS", "300")
  # Retries are off unless explicitly enabled; a provider failure ends the step.
  llm_max_retries = _parse_int("JUMPINAI_LLM_MAX_RETRIES", "0", minimum=0)
  if llm_max_retries > 3:
    raise ValueError("JUMPINAI_LLM_MAX_RETRIES must not exceed 3.")

  ws_pacing_ms = _parse_int("JUMPINAI_WS_PACING_MS", "500", minimum=0)

  # Usage rows are written only when a database is configured.
  usage_logging_raw = os.getenv("JUMPINAI_USAGE_LOGGING_ENABLED")
  usage_logging_enabled = True if usage_logging_raw is None else _parse_bool(usage_logging_raw)

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("JUMPINAI_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    xai_api_key=_optional_str(os.getenv("XAI_API_KEY")),
    xai_base_url=(os.getenv("JUMPINAI_XAI_BASE_URL") or DEFAULT_XAI_BASE_URL).strip(),
    xai_model=(os.getenv("JUMPINAI_XAI_MODEL") or DEFAULT_XAI_MODEL).strip(),
    llm_temperature=llm_temperature,
    llm_timeout_seconds=llm_timeout_seconds,
    llm_max_retries=llm_max_retries,
    ws_pacing_ms=ws_pacing_ms,
    supabase_url=_optional_str(os.getenv("SUPABASE_URL")),
    supabase_anon_key=_optional_str(os.getenv("SUPABASE_ANON_KEY")),
    turnstile_secret=_optional_str(os.getenv("JUMPINAI_TURNSTILE_SECRET")),
    usage_logging_enabled=usage_logging_enabled,
    pg_dsn=_optional_str(os.getenv("JUMPINAI_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_parse_int("JUMPINAI_PG_CONNECT_TIMEOUT", "5"),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations don't require unrelated env vars.
  return DatabaseSettings(
    debug=_parse_bool(os.getenv("JUMPINAI_DEBUG")),
    pg_dsn=_optional_str(os.getenv("JUMPINAI_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_parse_int("JUMPINAI_PG_CONNECT_TIMEOUT", "5"),
  )
