"""Loan lifecycle state machine"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, FrozenSet
from prime_ledger.domain.models import Loan, LoanStatus
from prime_ledger.domain.exceptions import InvalidStateError

# Administrative decisions: only a pending loan can be decided
ALLOWED_TRANSITIONS: Dict[LoanStatus, FrozenSet[LoanStatus]] = {
    LoanStatus.PENDING: frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED}),
    LoanStatus.APPROVED: frozenset(),
    LoanStatus.REJECTED: frozenset(),
    LoanStatus.REPAID: frozenset(),
}


def can_transition(current: LoanStatus, target: LoanStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition_loan(loan: Loan, target: LoanStatus, at: datetime) -> Loan:
    """
    Move a loan to `target`, returning the updated copy.

    Rules:
    - pending -> approved stamps approved_at
    - pending -> rejected stamps closed_at
    - repaid is driven by the external repayment flow and is accepted from
      any state except repaid itself

    Raises:
        InvalidStateError: If the transition is not allowed from the loan's status
    """
    if target == LoanStatus.REPAID:
        if loan.status == LoanStatus.REPAID:
            raise InvalidStateError(f"Loan {loan.id} is already repaid")
        return replace(loan, status=LoanStatus.REPAID, closed_at=at)

    if not can_transition(loan.status, target):
        raise InvalidStateError(
            f"Loan {loan.id} cannot move from {loan.status.value} to {target.value}"
        )

    if target == LoanStatus.APPROVED:
        return replace(loan, status=LoanStatus.APPROVED, approved_at=at)

    return replace(loan, status=target, closed_at=at)


def describe_approval(loan: Loan) -> str:
    """Transaction description for a loan disbursement, e.g. 'Loan approved (12 mo @ 8.5%)'"""
    return f"Loan approved ({loan.term_months} mo @ {loan.interest_rate * 100:.1f}%)"
