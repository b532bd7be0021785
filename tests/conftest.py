"""Test configuration shared by unit and integration tests."""

from __future__ import annotations

import os

# Settings are read once per process, so they must be in place before the app is imported.
os.environ["JUMPINAI_ALLOWED_ORIGINS"] = "http://localhost"
os.environ["JUMPINAI_WS_PACING_MS"] = "0"
os.environ["JUMPINAI_USAGE_LOGGING_ENABLED"] = "0"
for _name in ("XAI_API_KEY", "JUMPINAI_PG_DSN", "DATABASE_URL", "JUMPINAI_TURNSTILE_SECRET", "SUPABASE_URL"):
  os.environ.pop(_name, None)

import pytest  # noqa: E402

from app.config import get_settings  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def settings():
  return get_settings()


@pytest.fixture(autouse=True)
def _reset_settings_cache():
  yield
  get_settings.cache_clear()
