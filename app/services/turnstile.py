"""Cloudflare Turnstile verification for anonymous generation requests."""

from __future__ import annotations

import logging

import httpx

from app.config import Settings

logger = logging.getLogger(__name__)

SITEVERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"


class TurnstileVerificationError(RuntimeError):
  """Raised when a Turnstile token is missing or rejected."""


def _build_client() -> httpx.AsyncClient:
  """Build the httpx client used for siteverify calls."""
  return httpx.AsyncClient(timeout=10.0)


async def verify_turnstile(token: str | None, *, settings: Settings, remote_ip: str | None = None) -> None:
  """Verify a Turnstile token; a no-op when no secret is configured."""
  if not settings.turnstile_secret:
    return
  if not token:
    raise TurnstileVerificationError("Missing Turnstile token.")

  form = {"secret": settings.turnstile_secret, "response": token}
  if remote_ip:
    form["remoteip"] = remote_ip

  try:
    async with _build_client() as client:
      response = await client.post(SITEVERIFY_URL, data=form)
      response.raise_for_status()
      outcome = response.json()
  except httpx.HTTPError as exc:
    logger.error("Turnstile siteverify request failed: %s", exc)
    raise TurnstileVerificationError("Turnstile verification unavailable.") from exc

  if not outcome.get("success"):
    logger.warning("Turnstile token rejected error_codes=%s", outcome.get("error-codes"))
    raise TurnstileVerificationError("Turnstile verification failed.")
