"""GET /v1/transactions - transaction history and monthly activity"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from prime_ledger.api.v1.schemas import ActivityResponse, TransactionSchema, TransactionsResponse
from prime_ledger.api.dependencies import get_ledger
from prime_ledger.domain.models import TransactionType
from prime_ledger.services.ledger import Ledger
from prime_ledger.utils.date_utils import utc_now

router = APIRouter()


@router.get("/transactions", response_model=TransactionsResponse)
def get_transactions(
    type: Optional[TransactionType] = Query(None, description="Only this transaction type"),
    year: Optional[int] = Query(None, description="Only this calendar year"),
    ledger: Ledger = Depends(get_ledger),
):
    """
    Retrieve the transaction log, newest first.

    Returns:
        Matching transactions plus every year that has activity (for filters)
    """
    return TransactionsResponse(
        transactions=[TransactionSchema.model_validate(t) for t in ledger.filter_transactions(type, year)],
        years=ledger.available_years(),
    )


@router.get("/transactions/activity", response_model=ActivityResponse)
def get_activity(
    year: Optional[int] = Query(None, description="Calendar year (default: current)"),
    ledger: Ledger = Depends(get_ledger),
):
    year = year or utc_now().year
    return ActivityResponse(year=year, months=ledger.monthly_activity(year))
