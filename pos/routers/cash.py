from fastapi import APIRouter, HTTPException, Depends, status
from typing import List, Optional
from datetime import date

from pos.core.errors import PaymentValidationError, PersistenceError
from pos.dependencies.services import get_cash_ledger
from pos.models.cash import CashTransaction
from pos.schemas.sale import CashMovementCreate
from pos.services.cash import CashLedger, CashSummary

router = APIRouter()


@router.post("/", response_model=CashTransaction, response_model_by_alias=False, status_code=status.HTTP_201_CREATED)
async def record_cash_movement(data: CashMovementCreate, ledger: CashLedger = Depends(get_cash_ledger)):
    try:
        return await ledger.record(data.type, data.amount, data.reason)
    except PaymentValidationError as e:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, e.message)
    except PersistenceError as e:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, e.message)


@router.get("/", response_model=List[CashTransaction], response_model_by_alias=False)
async def cash_movements(day: Optional[str] = None, ledger: CashLedger = Depends(get_cash_ledger)):
    """Drawer movements for one day (YYYY-MM-DD, default today)."""
    return await ledger.for_day(day or date.today().isoformat())


@router.get("/summary", response_model=CashSummary)
async def cash_summary(day: Optional[str] = None, ledger: CashLedger = Depends(get_cash_ledger)):
    return await ledger.summary(day or date.today().isoformat())
