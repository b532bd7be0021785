import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session
from app.api.models import CreditBalanceResponse, CreditDeductRequest, CreditTransactionResponse
from app.core.security import AuthenticatedUser, get_current_user
from app.services import credits as credit_service
from app.services.credits import CreditSnapshot, InsufficientCreditsError

router = APIRouter()
logger = logging.getLogger("app.api.routes.credits")


def _user_uuid(user: AuthenticatedUser) -> uuid.UUID:
  try:
    return uuid.UUID(user.user_id)
  except ValueError as exc:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user id") from exc


def _balance_response(snapshot: CreditSnapshot) -> CreditBalanceResponse:
  return CreditBalanceResponse(user_id=snapshot.user_id, credits_balance=snapshot.credits_balance, total_credits_purchased=snapshot.total_credits_purchased)


@router.get("", response_model=CreditBalanceResponse)
async def get_credits(  # noqa: B008
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
  db_session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> CreditBalanceResponse:
  """Return the caller's balance, granting the welcome bonus on first visit."""
  snapshot = await credit_service.initialize_user_credits(db_session, user_id=_user_uuid(current_user))
  await db_session.commit()
  return _balance_response(snapshot)


@router.get("/transactions", response_model=list[CreditTransactionResponse])
async def list_credit_transactions(  # noqa: B008
  limit: int = Query(default=50, ge=1, le=200),
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
  db_session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> list[CreditTransactionResponse]:
  """List ledger entries, newest first."""
  records = await credit_service.list_transactions(db_session, user_id=_user_uuid(current_user), limit=limit)
  return [
    CreditTransactionResponse(id=record.transaction_id, transaction_type=record.transaction_type, credits_amount=record.credits_amount, description=record.description, reference_id=record.reference_id, created_at=record.created_at)
    for record in records
  ]


@router.post("/deduct", response_model=CreditBalanceResponse)
async def deduct_credits(  # noqa: B008
  payload: CreditDeductRequest,
  current_user: AuthenticatedUser = Depends(get_current_user),  # noqa: B008
  db_session: AsyncSession = Depends(get_db_session),  # noqa: B008
) -> CreditBalanceResponse:
  """Spend credits for a generation; 402 when the balance is too low."""
  try:
    snapshot = await credit_service.deduct_credit(db_session, user_id=_user_uuid(current_user), amount=payload.amount, description=payload.description, reference_id=payload.reference_id)
  except InsufficientCreditsError as exc:
    logger.info("Credit deduction refused user_id=%s: %s", current_user.user_id, exc)
    raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail="Insufficient credits") from exc
  await db_session.commit()
  return _balance_response(snapshot)
