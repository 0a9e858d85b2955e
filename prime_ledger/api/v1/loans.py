"""Loans: apply, decide, repay, preview schedule"""

from decimal import Decimal
from typing import List
from fastapi import APIRouter, Depends, Query

from prime_ledger.api.v1.schemas import LoanApplicationRequest, LoanSchema, LoanScheduleResponse
from prime_ledger.api.dependencies import get_ledger
from prime_ledger.domain.calculator import loan_payment_schedule
from prime_ledger.domain.models import MAX_AMOUNT, MAX_INTEREST_RATE, MAX_TERM_MONTHS
from prime_ledger.services.ledger import Ledger

router = APIRouter()


@router.get("/loans", response_model=List[LoanSchema])
def list_loans(ledger: Ledger = Depends(get_ledger)):
    return [LoanSchema.model_validate(l) for l in ledger.loans]


@router.get("/loans/schedule", response_model=LoanScheduleResponse)
def preview_schedule(
    amount: Decimal = Query(..., le=MAX_AMOUNT, description="Loan principal"),
    term_months: int = Query(..., le=MAX_TERM_MONTHS, description="Number of monthly payments"),
    interest_rate: float = Query(..., ge=0, le=MAX_INTEREST_RATE, description="Annual rate as a fraction"),
):
    """
    Preview the amortized repayment schedule for a prospective loan.

    Returns:
        Monthly payment, totals and one row per month
    """
    schedule = loan_payment_schedule(amount, term_months, interest_rate)
    return LoanScheduleResponse.model_validate(schedule)


@router.post("/loans", response_model=LoanSchema, status_code=201)
async def apply_for_loan(request_body: LoanApplicationRequest, ledger: Ledger = Depends(get_ledger)):
    loan = await ledger.apply_for_loan(
        request_body.amount,
        request_body.term_months,
        request_body.interest_rate,
        request_body.disburse_account_id,
    )
    return LoanSchema.model_validate(loan)


@router.get("/loans/{loan_id}/schedule", response_model=LoanScheduleResponse)
def loan_schedule(loan_id: str, ledger: Ledger = Depends(get_ledger)):
    loan = ledger.get_loan(loan_id)
    start = (loan.approved_at or loan.created_at).date()
    schedule = loan_payment_schedule(loan.amount, loan.term_months, loan.interest_rate, start_date=start)
    return LoanScheduleResponse.model_validate(schedule)


@router.post("/loans/{loan_id}/approve", response_model=LoanSchema)
async def approve(loan_id: str, ledger: Ledger = Depends(get_ledger)):
    """Approve a pending loan and credit its disbursement account"""
    return LoanSchema.model_validate(await ledger.approve_loan(loan_id))


@router.post("/loans/{loan_id}/reject", response_model=LoanSchema)
async def reject(loan_id: str, ledger: Ledger = Depends(get_ledger)):
    return LoanSchema.model_validate(await ledger.reject_loan(loan_id))


@router.post("/loans/{loan_id}/repaid", response_model=LoanSchema)
async def mark_repaid(loan_id: str, ledger: Ledger = Depends(get_ledger)):
    """Repayment-flow callback: the loan has been paid off"""
    return LoanSchema.model_validate(await ledger.mark_loan_repaid(loan_id))
