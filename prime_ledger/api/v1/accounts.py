"""Accounts, deposits, transfers and the dashboard summary"""

from fastapi import APIRouter, Depends

from prime_ledger.api.v1.schemas import (
    AccountSchema,
    AccountsResponse,
    DepositRequest,
    SummaryResponse,
    TransactionSchema,
    TransferRequest,
)
from prime_ledger.api.dependencies import get_ledger
from prime_ledger.services.ledger import Ledger

router = APIRouter()


@router.get("/accounts", response_model=AccountsResponse)
def list_accounts(ledger: Ledger = Depends(get_ledger)):
    """List the signed-in user's accounts with their combined balance"""
    return AccountsResponse(
        accounts=[AccountSchema.model_validate(a) for a in ledger.accounts],
        total_balance=ledger.total_balance,
    )


@router.post("/accounts/{account_id}/deposit", response_model=TransactionSchema, status_code=201)
async def deposit(account_id: str, request_body: DepositRequest, ledger: Ledger = Depends(get_ledger)):
    """Credit an account with external funds"""
    tx = await ledger.deposit_funds(account_id, request_body.amount, request_body.description)
    return TransactionSchema.model_validate(tx)


@router.post("/transfers", response_model=TransactionSchema, status_code=201)
async def transfer(request_body: TransferRequest, ledger: Ledger = Depends(get_ledger)):
    """
    Move funds between two of the user's accounts.

    Errors:
        404 if either account is missing, 422 for a bad amount,
        409 when the source balance is too low
    """
    tx = await ledger.transfer_between_accounts(
        request_body.from_account_id, request_body.to_account_id, request_body.amount
    )
    return TransactionSchema.model_validate(tx)


@router.get("/summary", response_model=SummaryResponse)
def summary(ledger: Ledger = Depends(get_ledger)):
    return SummaryResponse(
        total_balance=ledger.total_balance,
        account_count=len(ledger.accounts),
        active_investments=ledger.active_investment_count,
        pending_loans=ledger.pending_loan_count,
    )
