from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, get_settings

logger = logging.getLogger("app.core.security")

# auto_error=False lets anonymous callers reach the generation endpoints.
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthenticatedUser:
  """User resolved from a Supabase access token."""

  user_id: str
  email: str | None = None


def _build_client() -> httpx.AsyncClient:
  return httpx.AsyncClient(timeout=10.0)


async def resolve_user(access_token: str, settings: Settings) -> AuthenticatedUser | None:
  """Resolve a bearer token through Supabase Auth; None when it is not valid."""
  if not settings.supabase_url:
    logger.warning("Bearer token supplied but SUPABASE_URL is not configured.")
    return None

  url = f"{settings.supabase_url.rstrip('/')}/auth/v1/user"
  headers = {"authorization": f"Bearer {access_token}"}
  # Supabase expects the project key alongside the user token.
  if settings.supabase_anon_key:
    headers["apikey"] = settings.supabase_anon_key

  try:
    async with _build_client() as client:
      response = await client.get(url, headers=headers)
  except httpx.RequestError as exc:
    logger.error("Supabase auth lookup failed: %s", exc)
    return None

  if response.status_code != status.HTTP_200_OK:
    logger.info("Supabase rejected bearer token status=%s", response.status_code)
    return None

  try:
    claims = response.json()
  except ValueError:
    logger.warning("Supabase auth lookup returned a non-JSON body")
    return None
  if not isinstance(claims, dict):
    return None
  user_id = claims.get("id")
  if not user_id:
    return None
  return AuthenticatedUser(user_id=str(user_id), email=claims.get("email"))


async def get_optional_user(
  token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)],
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> AuthenticatedUser | None:
  """Return the caller when a valid bearer token is present, otherwise None."""
  if token is None or not token.credentials:
    return None
  return await resolve_user(token.credentials, settings)


async def get_current_user(user: AuthenticatedUser | None = Depends(get_optional_user)) -> AuthenticatedUser:  # noqa: B008
  """Require an authenticated caller."""
  if user is None:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})
  return user
