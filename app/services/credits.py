"""Credit ledger services for balance checks, deductions and grants."""

from __future__ import annotations

import datetime
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.schema.sql import CreditTransaction, CreditTransactionType, UserCredits

WELCOME_BONUS_CREDITS = 5


class InsufficientCreditsError(RuntimeError):
  """Raised when a deduction would take the balance below zero."""


@dataclass(frozen=True)
class CreditSnapshot:
  """Balance view for a single user."""

  user_id: str
  credits_balance: int
  total_credits_purchased: int


@dataclass(frozen=True)
class CreditTransactionRecord:
  """One ledger entry."""

  transaction_id: str
  transaction_type: str
  credits_amount: int
  description: str | None
  reference_id: str | None
  created_at: str | None


def _utc_now() -> datetime.datetime:
  return datetime.datetime.now(datetime.UTC)


@asynccontextmanager
async def _ledger_transaction(session: AsyncSession):
  """Open a transaction, or a SAVEPOINT when the session already has one."""
  if session.in_transaction():
    async with session.begin_nested():
      yield
    return
  async with session.begin():
    yield


def _snapshot(user_id: uuid.UUID, row: UserCredits | None) -> CreditSnapshot:
  if row is None:
    return CreditSnapshot(user_id=str(user_id), credits_balance=0, total_credits_purchased=0)
  return CreditSnapshot(user_id=str(user_id), credits_balance=int(row.credits_balance), total_credits_purchased=int(row.total_credits_purchased))


async def get_balance(session: AsyncSession, *, user_id: uuid.UUID) -> CreditSnapshot:
  """Return the current balance; users without a ledger row have zero credits."""
  result = await session.execute(select(UserCredits).where(UserCredits.user_id == user_id))
  return _snapshot(user_id, result.scalar_one_or_none())


async def has_credits(session: AsyncSession, *, user_id: uuid.UUID, amount: int = 1) -> bool:
  snapshot = await get_balance(session, user_id=user_id)
  return snapshot.credits_balance >= amount


async def deduct_credit(session: AsyncSession, *, user_id: uuid.UUID, amount: int = 1, description: str | None = None, reference_id: str | None = None) -> CreditSnapshot:
  """Deduct credits and append a usage entry to the ledger."""
  if amount <= 0:
    raise ValueError("amount must be positive.")

  async with _ledger_transaction(session):
    # Lock the balance row so concurrent generations cannot overdraw it.
    stmt = select(UserCredits).where(UserCredits.user_id == user_id).with_for_update()
    result = await session.execute(stmt)
    row = result.scalar_one_or_none()
    balance = int(row.credits_balance) if row is not None else 0
    if row is None or balance < amount:
      raise InsufficientCreditsError(f"insufficient credits ({balance} available, {amount} required)")

    row.credits_balance = balance - amount
    row.updated_at = _utc_now()
    session.add(row)
    session.add(CreditTransaction(user_id=user_id, transaction_type=CreditTransactionType.USAGE, credits_amount=-amount, description=description or "JumpinAI Studio generation", reference_id=reference_id))
    await session.flush()

  return _snapshot(user_id, row)


async def add_credits(
  session: AsyncSession,
  *,
  user_id: uuid.UUID,
  amount: int,
  transaction_type: CreditTransactionType = CreditTransactionType.PURCHASE,
  description: str | None = None,
  reference_id: str | None = None,
) -> CreditSnapshot:
  """Grant credits, creating the ledger row on first use."""
  if amount <= 0:
    raise ValueError("amount must be positive.")
  if transaction_type == CreditTransactionType.USAGE:
    raise ValueError("usage entries are written by deduct_credit.")

  now = _utc_now()
  async with _ledger_transaction(session):
    stmt = select(UserCredits).where(UserCredits.user_id == user_id).with_for_update()
    result = await session.execute(stmt)
    row = result.scalar_one_or_none()
    if row is None:
      row = UserCredits(user_id=user_id, credits_balance=0, total_credits_purchased=0, updated_at=now)
      session.add(row)
      await session.flush()

    row.credits_balance = int(row.credits_balance) + amount
    # Bonuses raise the balance but do not count as purchases.
    if transaction_type == CreditTransactionType.PURCHASE:
      row.total_credits_purchased = int(row.total_credits_purchased) + amount
    row.updated_at = now
    session.add(row)
    session.add(CreditTransaction(user_id=user_id, transaction_type=transaction_type, credits_amount=amount, description=description, reference_id=reference_id))
    await session.flush()

  return _snapshot(user_id, row)


async def list_transactions(session: AsyncSession, *, user_id: uuid.UUID, limit: int = 50) -> list[CreditTransactionRecord]:
  stmt = select(CreditTransaction).where(CreditTransaction.user_id == user_id).order_by(CreditTransaction.created_at.desc()).limit(limit)
  result = await session.execute(stmt)
  return [
    CreditTransactionRecord(
      transaction_id=str(row.id),
      transaction_type=CreditTransactionType(row.transaction_type).value,
      credits_amount=int(row.credits_amount),
      description=row.description,
      reference_id=row.reference_id,
      created_at=row.created_at.isoformat() if row.created_at else None,
    )
    for row in result.scalars().all()
  ]


async def _claim_ledger_row(session: AsyncSession, *, user_id: uuid.UUID) -> bool:
  """Insert an empty ledger row; False when another request created it first."""
  stmt = (
    insert(UserCredits)
    .values(user_id=user_id, credits_balance=0, total_credits_purchased=0, updated_at=_utc_now())
    .on_conflict_do_nothing(index_elements=["user_id"])
    .returning(UserCredits.user_id)
  )
  result = await session.execute(stmt)
  return result.scalar_one_or_none() is not None


async def initialize_user_credits(session: AsyncSession, *, user_id: uuid.UUID) -> CreditSnapshot:
  """Grant the welcome bonus the first time a user is seen; later calls are no-ops."""
  result = await session.execute(select(UserCredits).where(UserCredits.user_id == user_id))
  row = result.scalar_one_or_none()
  if row is not None:
    return _snapshot(user_id, row)

  async with _ledger_transaction(session):
    # Concurrent first reads race on the insert; only the winner grants the bonus.
    if await _claim_ledger_row(session, user_id=user_id):
      return await add_credits(session, user_id=user_id, amount=WELCOME_BONUS_CREDITS, transaction_type=CreditTransactionType.WELCOME_BONUS, description="Welcome bonus credits")
    result = await session.execute(select(UserCredits).where(UserCredits.user_id == user_id))
    return _snapshot(user_id, result.scalar_one_or_none())
