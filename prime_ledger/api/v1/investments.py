"""Investments: create, list, settle matured"""

from typing import List
from fastapi import APIRouter, Depends

from prime_ledger.api.v1.schemas import InvestmentSchema, InvestRequest
from prime_ledger.api.dependencies import get_ledger
from prime_ledger.services.ledger import Ledger

router = APIRouter()


@router.get("/investments", response_model=List[InvestmentSchema])
def list_investments(ledger: Ledger = Depends(get_ledger)):
    return [InvestmentSchema.model_validate(i) for i in ledger.investments]


@router.post("/investments", response_model=InvestmentSchema, status_code=201)
async def invest(request_body: InvestRequest, ledger: Ledger = Depends(get_ledger)):
    """Lock funds from an account into a plan"""
    investment = await ledger.invest_in_plan(
        request_body.plan_id, request_body.amount, request_body.from_account_id
    )
    return InvestmentSchema.model_validate(investment)


@router.post("/investments/{investment_id}/complete", response_model=InvestmentSchema)
async def complete(investment_id: str, ledger: Ledger = Depends(get_ledger)):
    investment = await ledger.complete_investment(investment_id)
    return InvestmentSchema.model_validate(investment)


@router.post("/investments/settle", response_model=List[InvestmentSchema])
async def settle(ledger: Ledger = Depends(get_ledger)):
    """Complete every investment whose end date has passed"""
    completed = await ledger.settle_matured_investments()
    return [InvestmentSchema.model_validate(i) for i in completed]
