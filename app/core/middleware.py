import logging
import time
import uuid
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Receive, Scope, Send

from app.config import get_settings
from app.services.usage_logging import UsageEntry, is_tracked, record_usage

logger = logging.getLogger("app.core.middleware")


def _normalize_headers(scope: Scope) -> dict[str, str]:
  """Normalize scope headers into a lowercase mapping."""
  return {key.decode("latin-1").lower(): value.decode("latin-1") for key, value in scope.get("headers", [])}


def _build_request_url(scope: Scope) -> str:
  """Build a readable URL path for logging without relying on Request bodies."""
  path = scope.get("path", "")
  query_string = scope.get("query_string", b"")
  if query_string:
    return f"{path}?{query_string.decode('latin-1')}"

  return path


def _client_ip(scope: Scope, headers: dict[str, str]) -> str | None:
  """Prefer the first forwarded hop, then the socket peer."""
  forwarded = headers.get("x-forwarded-for")
  if forwarded:
    return forwarded.split(",")[0].strip() or None
  client = scope.get("client")
  return client[0] if client else None


class RequestLoggingMiddleware:
  """Log request/response metadata and record usage for the generation endpoints."""

  def __init__(self, app: ASGIApp) -> None:
    """Store the downstream ASGI application for request logging."""
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    """Record request/response metadata without logging request bodies."""
    # WebSocket and lifespan scopes pass through untouched.
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    settings = get_settings()

    # Generate a request id and store it for downstream handlers and exception logging.
    request_id = str(uuid.uuid4())
    state = scope.setdefault("state", {})
    state["request_id"] = request_id

    start_time = time.time()
    method = scope.get("method", "UNKNOWN")
    url = _build_request_url(scope)
    logger.info("Incoming request request_id=%s %s %s", request_id, method, url)
    headers = _normalize_headers(scope)
    content_type = headers.get("content-type")
    content_length = headers.get("content-length")
    if content_type or content_length:
      logger.debug("Request metadata request_id=%s content-type=%s content-length=%s", request_id, content_type, content_length)

    status_code: int | None = None

    async def send_wrapper(message: dict[str, Any]) -> None:
      nonlocal status_code
      if message.get("type") == "http.response.start":
        status_code = message.get("status")
        # Attach a request id to responses to correlate clients with server logs.
        response_headers = MutableHeaders(scope=message)
        if "x-request-id" not in response_headers:
          response_headers["x-request-id"] = request_id

      await send(message)

    error_message: str | None = None
    try:
      await self.app(scope, receive, send_wrapper)
    except Exception as exc:
      error_message = f"{type(exc).__name__}: {exc}"
      raise
    finally:
      process_time = (time.time() - start_time) * 1000
      response_status = status_code or 500
      logger.info("Response request_id=%s status=%s (took %.2fms)", request_id, response_status, process_time)

      path = scope.get("path", "")
      if settings.usage_logging_enabled and method == "POST" and is_tracked(path):
        entry = UsageEntry(
          endpoint=path,
          status_code=response_status,
          request_duration_ms=int(process_time),
          user_id=state.get("user_id"),
          ip_address=_client_ip(scope, headers),
          user_agent=headers.get("user-agent"),
          error_message=error_message or state.get("error_message"),
        )
        await record_usage(entry)


class SecurityHeadersMiddleware:
  """Middleware to strip sensitive headers from responses."""

  def __init__(self, app: ASGIApp) -> None:
    """Store the downstream ASGI application."""
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    """Intercept response headers to remove sensitive information."""
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    async def send_wrapper(message: dict[str, Any]) -> None:
      if message["type"] == "http.response.start":
        headers = MutableHeaders(scope=message)
        if "x-powered-by" in headers:
          del headers["x-powered-by"]
        if "server" in headers:
          del headers["server"]

      await send(message)

    await self.app(scope, receive, send_wrapper)
