from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_db_session
from app.core.security import AuthenticatedUser, get_current_user
from app.main import app
from app.schema.sql import CreditTransactionType
from app.services import credits as credit_service
from app.services.credits import CreditSnapshot, CreditTransactionRecord, InsufficientCreditsError

USER = AuthenticatedUser(user_id="8f0e8a53-54b5-4a4b-9d25-0d5f0c1f5a11")


class RecordingSession:
  """Stands in for an AsyncSession; the credit services are patched out."""

  def __init__(self) -> None:
    self.commits = 0

  async def commit(self) -> None:
    self.commits += 1


@pytest.fixture
def session() -> RecordingSession:
  return RecordingSession()


@pytest.fixture
def client(session: RecordingSession):
  app.dependency_overrides[get_current_user] = lambda: USER
  app.dependency_overrides[get_db_session] = lambda: session
  yield TestClient(app)
  app.dependency_overrides.clear()


def test_first_balance_read_grants_welcome_bonus(client: TestClient, session: RecordingSession, monkeypatch: pytest.MonkeyPatch) -> None:
  calls = []

  async def _initialize(db_session, *, user_id: uuid.UUID) -> CreditSnapshot:
    calls.append(user_id)
    return CreditSnapshot(user_id=str(user_id), credits_balance=credit_service.WELCOME_BONUS_CREDITS, total_credits_purchased=0)

  monkeypatch.setattr("app.services.credits.initialize_user_credits", _initialize)

  response = client.get("/v1/credits")

  assert response.status_code == 200
  assert response.json() == {"user_id": USER.user_id, "credits_balance": 5, "total_credits_purchased": 0}
  assert calls == [uuid.UUID(USER.user_id)]
  assert session.commits == 1


def test_deduct_returns_new_balance(client: TestClient, session: RecordingSession, monkeypatch: pytest.MonkeyPatch) -> None:
  async def _deduct(db_session, *, user_id: uuid.UUID, amount: int, description: str | None, reference_id: str | None) -> CreditSnapshot:
    assert amount == 1
    assert reference_id == "jump-1"
    return CreditSnapshot(user_id=str(user_id), credits_balance=4, total_credits_purchased=0)

  monkeypatch.setattr("app.services.credits.deduct_credit", _deduct)

  response = client.post("/v1/credits/deduct", json={"reference_id": "jump-1"})

  assert response.status_code == 200
  assert response.json()["credits_balance"] == 4
  assert session.commits == 1


def test_deduct_with_empty_balance_is_payment_required(client: TestClient, session: RecordingSession, monkeypatch: pytest.MonkeyPatch) -> None:
  async def _deduct(*_args, **_kwargs) -> CreditSnapshot:
    raise InsufficientCreditsError("balance 0 < 1")

  monkeypatch.setattr("app.services.credits.deduct_credit", _deduct)

  response = client.post("/v1/credits/deduct", json={})

  assert response.status_code == 402
  assert response.json()["error"] == "Insufficient credits"
  assert session.commits == 0


def test_deduct_rejects_unknown_fields(client: TestClient) -> None:
  assert client.post("/v1/credits/deduct", json={"amount": 1, "bonus": 100}).status_code == 400
  assert client.post("/v1/credits/deduct", json={"amount": 0}).status_code == 400


def test_transactions_are_listed(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
  async def _list(db_session, *, user_id: uuid.UUID, limit: int) -> list[CreditTransactionRecord]:
    return [CreditTransactionRecord(transaction_id="t-1", transaction_type=CreditTransactionType.WELCOME_BONUS.value, credits_amount=5, description="Welcome bonus credits", reference_id=None, created_at="2026-01-01T00:00:00+00:00")]

  monkeypatch.setattr("app.services.credits.list_transactions", _list)

  response = client.get("/v1/credits/transactions")

  assert response.status_code == 200
  assert response.json()[0]["transaction_type"] == "welcome_bonus"
  assert response.json()[0]["credits_amount"] == 5


def test_non_uuid_user_ids_are_rejected(client: TestClient) -> None:
  app.dependency_overrides[get_current_user] = lambda: AuthenticatedUser(user_id="not-a-uuid")
  assert client.get("/v1/credits").status_code == 401


@pytest.mark.anyio
async def test_usage_entries_cannot_be_granted(session: RecordingSession) -> None:
  with pytest.raises(ValueError):
    await credit_service.add_credits(session, user_id=uuid.UUID(USER.user_id), amount=3, transaction_type=CreditTransactionType.USAGE)
  with pytest.raises(ValueError):
    await credit_service.deduct_credit(session, user_id=uuid.UUID(USER.user_id), amount=0)
