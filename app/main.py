from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.ai.errors import GenerationError, ProviderNotConfiguredError
from app.api.routes import credits, generation_realtime, generation_stream, jumps, tool_prompts
from app.config import get_settings
from app.core.exceptions import generation_exception_handler, global_exception_handler, http_exception_handler, provider_not_configured_handler, request_validation_exception_handler
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

settings = get_settings()

app = FastAPI(title="JumpinAI Generation Service", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.allowed_origins,
  allow_credentials=True,
  allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
  allow_headers=["content-type", "authorization", "x-client-info", "apikey"],
  expose_headers=["content-length", "x-request-id"],
)


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(GenerationError, generation_exception_handler)
app.add_exception_handler(ProviderNotConfiguredError, provider_not_configured_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": "0.1.0"}


app.include_router(generation_stream.router, prefix="/functions/v1", tags=["generation"])
app.include_router(generation_realtime.router, prefix="/functions/v1", tags=["generation"])
app.include_router(jumps.router, prefix="/v1/jumps", tags=["jumps"])
app.include_router(tool_prompts.router, prefix="/v1/tool-prompts", tags=["tool-prompts"])
app.include_router(credits.router, prefix="/v1/credits", tags=["credits"])
