from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from app.ai.pipeline.contracts import EMPTY_CATEGORIES_HINT
from app.api.deps import persistence_enabled
from app.api.routes.generation_realtime import get_model_factory
from app.core.security import AuthenticatedUser
from app.main import app
from tests.fakes import FORM_DATA, NAMING_JSON, OVERVIEW, PLAN, ScriptedModel, happy_responses, install_repos, provider_failure, tool_prompts_json

WS_URL = "/functions/v1/jumps-realtime-generation"
USER = AuthenticatedUser(user_id="8f0e8a53-54b5-4a4b-9d25-0d5f0c1f5a11")


@pytest.fixture
def client():
  yield TestClient(app)
  app.dependency_overrides.clear()


def _use_model(model: ScriptedModel) -> None:
  app.dependency_overrides[get_model_factory] = lambda: (lambda: model)


def _receive_run(websocket) -> list[dict]:
  """Collect messages until the run completes or fails."""
  messages = []
  while True:
    message = websocket.receive_json()
    messages.append(message)
    if message["type"] in {"generation_complete", "error"}:
      return messages


def test_generation_emits_realtime_vocabulary(client: TestClient) -> None:
  _use_model(ScriptedModel(happy_responses()))

  with client.websocket_connect(WS_URL) as websocket:
    assert websocket.receive_json() == {"type": "connected", "message": "Connected to realtime generation"}
    websocket.send_json({"type": "generate", "payload": FORM_DATA})
    messages = _receive_run(websocket)

  kinds = [message["type"] for message in messages]
  assert kinds[:2] == ["status", "infrastructure_ready"]
  assert kinds.count("plan_ready") == 1
  assert kinds.count("component_ready") == 9
  assert kinds[-2:] == ["status", "generation_complete"]
  assert "jump_saved" not in kinds

  statuses = [message for message in messages if message["type"] == "status"]
  assert [status["phase"] for status in statuses] == ["starting", "naming", "overview", "comprehensive", "tool_prompts", "complete"]
  progress = [status["progress"] for status in statuses]
  assert progress == [0, 25, 50, 75, 100, 100]

  plan = next(message for message in messages if message["type"] == "plan_ready")
  assert [phase["name"] for phase in plan["data"]["structured_plan"]["phases"]] == ["Foundation", "Automation"]
  assert "=== IMPLEMENTATION PLAN ===" in plan["data"]["full_content"]

  components = [message for message in messages if message["type"] == "component_ready"]
  assert {component["componentType"] for component in components} == {"tool_prompts"}
  assert components[0]["data"]["title"] == "Combo 1"
  assert messages[-1]["jumpName"] == "Automated Reporting Engine"
  assert messages[-1]["emptyCategories"] == ["workflows", "blueprints", "strategies"]
  assert messages[-1]["hint"] == EMPTY_CATEGORIES_HINT


def test_unreadable_tool_prompts_are_reported_as_empty(client: TestClient) -> None:
  _use_model(ScriptedModel([NAMING_JSON, json.dumps(OVERVIEW), json.dumps(PLAN), "I could not produce any tools"]))

  with client.websocket_connect(WS_URL) as websocket:
    websocket.receive_json()
    websocket.send_json({"type": "generate", "payload": FORM_DATA})
    messages = _receive_run(websocket)

  assert "component_ready" not in [message["type"] for message in messages]
  assert any(message.get("parseError", {}).get("step") == 4 for message in messages)
  assert messages[-1]["type"] == "generation_complete"
  assert messages[-1]["emptyCategories"] == ["tool_prompts", "workflows", "blueprints", "strategies"]


def test_generation_halts_on_first_failure(client: TestClient) -> None:
  model = ScriptedModel([NAMING_JSON, json.dumps(OVERVIEW), provider_failure(500), tool_prompts_json()])
  _use_model(model)

  with client.websocket_connect(WS_URL) as websocket:
    websocket.receive_json()
    websocket.send_json({"type": "generate", "payload": FORM_DATA})
    messages = _receive_run(websocket)

  assert messages[-1] == {"type": "error", "step": 3, "message": "Generation failed: Step 3 failed: xAI API error: 500 - upstream failed"}
  assert "plan_ready" not in [message["type"] for message in messages]
  assert len(model.calls) == 3


def test_invalid_payload_reports_fields_and_keeps_socket_open(client: TestClient) -> None:
  _use_model(ScriptedModel(happy_responses()))

  with client.websocket_connect(WS_URL) as websocket:
    websocket.receive_json()
    websocket.send_json({"type": "generate", "payload": {"goals": "short"}})
    assert websocket.receive_json() == {"type": "error", "message": "Generation failed: Invalid input (challenges, goals)"}

    websocket.send_text("this is not json")
    assert websocket.receive_json() == {"type": "error", "message": "Generation failed: Failed to process request"}

    # Unknown message types are ignored and the socket still serves a run.
    websocket.send_json({"type": "ping"})
    websocket.send_json({"type": "generate", "payload": FORM_DATA})
    messages = _receive_run(websocket)

  assert messages[0]["phase"] == "starting"
  assert messages[-1]["type"] == "generation_complete"


def test_missing_provider_key_is_reported_over_socket(client: TestClient) -> None:
  with client.websocket_connect(WS_URL) as websocket:
    websocket.receive_json()
    websocket.send_json({"type": "generate", "payload": FORM_DATA})
    assert websocket.receive_json() == {"type": "error", "message": "Generation failed: AI provider is not configured"}


def test_authenticated_generation_saves_jump(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
  jumps, tool_prompts = install_repos(monkeypatch)

  async def _resolve(token: str, _settings):
    return USER if token == "good-token" else None

  monkeypatch.setattr("app.api.routes.generation_realtime.resolve_user", _resolve)
  _use_model(ScriptedModel(happy_responses()))
  app.dependency_overrides[persistence_enabled] = lambda: True

  with client.websocket_connect(f"{WS_URL}?access_token=good-token") as websocket:
    websocket.receive_json()
    websocket.send_json({"type": "generate", "payload": {**FORM_DATA, "userId": "someone-else"}})
    messages = _receive_run(websocket)

  phases = [message.get("phase") for message in messages if message["type"] == "status"]
  assert phases[-3:] == ["saving", "saved", "complete"]
  saved = next(message for message in messages if message["type"] == "jump_saved")
  assert saved["fullTitle"] == "Jump #1: Automated Reporting Engine"
  assert jumps.records[saved["jumpId"]].user_id == USER.user_id
  assert len(tool_prompts.records) == 9


def test_anonymous_socket_is_not_persisted(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
  jumps, _tool_prompts = install_repos(monkeypatch)
  _use_model(ScriptedModel(happy_responses()))
  app.dependency_overrides[persistence_enabled] = lambda: True

  with client.websocket_connect(WS_URL) as websocket:
    websocket.receive_json()
    websocket.send_json({"type": "generate", "payload": FORM_DATA})
    messages = _receive_run(websocket)

  assert messages[-1]["type"] == "generation_complete"
  assert jumps.records == {}
