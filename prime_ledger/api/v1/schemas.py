"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from prime_ledger.domain.models import (
    MAX_INTEREST_RATE,
    MAX_TERM_MONTHS,
    InvestmentStatus,
    LoanStatus,
    TransactionType,
)


class ORMSchema(BaseModel):
    """Base for responses built from domain dataclasses"""

    model_config = ConfigDict(from_attributes=True)


# Requests


class DepositRequest(BaseModel):
    """Request body for POST /v1/accounts/{account_id}/deposit"""

    amount: Decimal
    description: Optional[str] = Field(None, max_length=200)


class TransferRequest(BaseModel):
    """Request body for POST /v1/transfers"""

    from_account_id: str = Field(..., min_length=1)
    to_account_id: str = Field(..., min_length=1)
    amount: Decimal


class InvestRequest(BaseModel):
    """Request body for POST /v1/investments"""

    plan_id: str = Field(..., min_length=1)
    amount: Decimal
    from_account_id: str = Field(..., min_length=1)


class LoanApplicationRequest(BaseModel):
    """Request body for POST /v1/loans"""

    amount: Decimal
    term_months: int = Field(..., le=MAX_TERM_MONTHS, description="Repayment term in months")
    interest_rate: float = Field(..., le=MAX_INTEREST_RATE, description="Annual rate as a fraction, 0.12 for 12%")
    disburse_account_id: str = Field(..., min_length=1)


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class SignUpRequest(SignInRequest):
    display_name: str = ""


# Responses


class AccountSchema(ORMSchema):
    id: str
    name: str
    number: str
    balance: float


class AccountsResponse(BaseModel):
    """Response for GET /v1/accounts"""

    accounts: List[AccountSchema]
    total_balance: float


class TransactionSchema(ORMSchema):
    id: str
    type: TransactionType
    amount: float
    date: datetime
    status: str
    description: str
    metadata: Dict[str, Any] = {}


class TransactionsResponse(BaseModel):
    """Response for GET /v1/transactions"""

    transactions: List[TransactionSchema]
    years: List[int]


class ActivityResponse(BaseModel):
    """Response for GET /v1/transactions/activity: monthly totals, January first"""

    year: int
    months: List[float]


class PlanSchema(ORMSchema):
    id: str
    name: str
    min_amount: float
    max_amount: float
    roi: float
    compounding_rate: int
    duration_days: int
    description: str


class EstimateResponse(BaseModel):
    """Response for GET /v1/plans/{plan_id}/estimate"""

    plan_id: str
    amount: float
    expected_return: float
    maturity_amount: float


class InvestmentSchema(ORMSchema):
    id: str
    plan_id: str
    amount: float
    start_date: datetime
    end_date: datetime
    status: InvestmentStatus
    expected_return: float
    funded_from_account_id: str
    completed_at: Optional[datetime] = None


class LoanSchema(ORMSchema):
    id: str
    amount: float
    term_months: int
    interest_rate: float
    status: LoanStatus
    disbursed_to_account_id: str
    created_at: datetime
    approved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class LoanInstallmentSchema(ORMSchema):
    number: int
    due_date: date
    payment: float
    principal: float
    interest: float
    remaining_balance: float


class LoanScheduleResponse(ORMSchema):
    """Response for GET /v1/loans/schedule"""

    monthly_payment: float
    total_payable: float
    total_interest: float
    installments: List[LoanInstallmentSchema]


class SummaryResponse(BaseModel):
    """Response for GET /v1/summary"""

    total_balance: float
    account_count: int
    active_investments: int
    pending_loans: int


class UserSchema(ORMSchema):
    id: str
    email: str
    display_name: str


class SessionResponse(BaseModel):
    """Response for the auth endpoints"""

    signed_in: bool
    user: Optional[UserSchema] = None
