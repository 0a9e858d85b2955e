"""Investment plans and return estimates"""

from decimal import Decimal
from typing import List
from fastapi import APIRouter, Depends, Query

from prime_ledger.api.v1.schemas import EstimateResponse, PlanSchema
from prime_ledger.api.dependencies import get_ledger
from prime_ledger.domain.calculator import estimate_plan_return
from prime_ledger.domain.models import MAX_AMOUNT
from prime_ledger.services.ledger import Ledger

router = APIRouter()


@router.get("/plans", response_model=List[PlanSchema])
def list_plans(ledger: Ledger = Depends(get_ledger)):
    return [PlanSchema.model_validate(p) for p in ledger.plans]


@router.get("/plans/{plan_id}/estimate", response_model=EstimateResponse)
def estimate(
    plan_id: str,
    amount: Decimal = Query(..., le=MAX_AMOUNT, description="Amount to invest"),
    ledger: Ledger = Depends(get_ledger),
):
    """
    Preview the return of investing `amount` in a plan.

    Non-positive amounts return a zero estimate; bounds are checked only
    when actually investing.
    """
    plan = ledger.get_plan(plan_id)
    result = estimate_plan_return(plan, amount)
    return EstimateResponse(
        plan_id=plan.id,
        amount=amount,
        expected_return=result.expected_return,
        maturity_amount=result.maturity_amount,
    )
