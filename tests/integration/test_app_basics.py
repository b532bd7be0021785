from __future__ import annotations

from fastapi.testclient import TestClient

from app.core.lifespan import _redact_dsn
from app.main import app


def test_health_check() -> None:
  with TestClient(app) as client:
    response = client.get("/health")
  assert response.status_code == 200
  assert response.json() == {"status": "ok", "version": "0.1.0"}
  assert response.headers["x-request-id"]
  assert "server" not in response.headers


def test_cors_preflight_allows_configured_origin() -> None:
  client = TestClient(app)
  response = client.options(
    "/functions/v1/jumps-ai-streaming",
    headers={"origin": "http://localhost", "access-control-request-method": "POST", "access-control-request-headers": "authorization, content-type, apikey"},
  )
  assert response.status_code == 200
  assert response.headers["access-control-allow-origin"] == "http://localhost"

  rejected = client.options("/functions/v1/jumps-ai-streaming", headers={"origin": "https://evil.example", "access-control-request-method": "POST"})
  assert "access-control-allow-origin" not in rejected.headers


def test_redact_dsn_hides_password() -> None:
  assert _redact_dsn("postgresql://jumpinai:s3cret@db:5432/app") == "postgresql://jumpinai@db:5432/app"
  assert _redact_dsn(None) == "<unset>"
