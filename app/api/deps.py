"""Shared FastAPI dependencies for model access and database sessions."""

from __future__ import annotations

import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.ai.errors import GenerationError
from app.ai.providers.base import AIModel
from app.ai.providers.xai import XAIProvider
from app.config import Settings, get_settings
from app.core.database import get_db, get_session_factory

logger = logging.getLogger(__name__)


def build_model(settings: Settings) -> AIModel:
  """Build the configured chat model; raises ProviderNotConfiguredError without a key."""
  try:
    return XAIProvider(settings).get_model()
  except ValueError as exc:
    # An unknown JUMPINAI_XAI_MODEL is an operator error, not a client one.
    raise GenerationError(str(exc)) from exc


async def get_model(settings: Settings = Depends(get_settings)) -> AIModel:  # noqa: B008
  """Resolve the model before any response bytes are sent; a missing key surfaces as 503."""
  return build_model(settings)


def persistence_enabled() -> bool:
  """Whether a database is configured for saving Jumps."""
  return get_session_factory() is not None


async def get_db_session(session: AsyncSession = Depends(get_db)) -> AsyncSession:  # noqa: B008
  """Dependency to get the database session."""
  return session
