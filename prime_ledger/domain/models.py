"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

# Largest amount a Numeric(14, 2) column holds
MAX_AMOUNT = Decimal("999999999999.99")
MAX_TERM_MONTHS = 600
MAX_INTEREST_RATE = 1.0


class TransactionType(str, Enum):
    TRANSFER = "transfer"
    INVESTMENT = "investment"
    LOAN = "loan"
    DEPOSIT = "deposit"


class InvestmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class LoanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REPAID = "repaid"


@dataclass(frozen=True)
class Account:
    """Funding account owned by the ledger"""

    id: str
    name: str
    number: str  # masked, e.g. "**** 1234"
    balance: Decimal


@dataclass(frozen=True)
class InvestmentPlan:
    """Reference data describing an investment product"""

    id: str
    name: str
    min_amount: Decimal
    max_amount: Decimal
    roi: float  # total return fraction over the whole duration
    compounding_rate: int  # compounding periods within the duration
    duration_days: int
    description: str = ""


@dataclass(frozen=True)
class Investment:
    """Principal locked in a plan until its end date"""

    id: str
    plan_id: str
    amount: Decimal
    start_date: datetime
    end_date: datetime
    status: InvestmentStatus
    expected_return: float
    funded_from_account_id: str
    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Loan:
    """Loan application and its lifecycle stamps"""

    id: str
    amount: Decimal
    term_months: int
    interest_rate: float  # annual fraction, 0.12 == 12%
    status: LoanStatus
    disbursed_to_account_id: str
    created_at: datetime
    approved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Transaction:
    """Entry in the append-only transaction log"""

    id: str
    type: TransactionType
    amount: Decimal  # signed: positive credits, negative fund locks
    date: datetime
    status: str
    description: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReturnEstimate:
    """Projected outcome of investing an amount in a plan"""

    expected_return: float
    maturity_amount: float


@dataclass(frozen=True)
class LoanInstallment:
    """Single monthly payment in an amortized loan schedule"""

    number: int
    due_date: date
    payment: float
    principal: float
    interest: float
    remaining_balance: float


@dataclass(frozen=True)
class LoanSchedule:
    """Amortized repayment schedule for a loan"""

    monthly_payment: float
    total_payable: float
    total_interest: float
    installments: List[LoanInstallment]


@dataclass(frozen=True)
class AuthUser:
    """Signed-in user as reported by the auth service"""

    id: str
    email: str
    display_name: str = ""
