"""Investment return and loan repayment calculations"""

import math
from datetime import date
from decimal import Decimal
from typing import List
from prime_ledger.domain.models import (
    MAX_AMOUNT,
    MAX_INTEREST_RATE,
    MAX_TERM_MONTHS,
    InvestmentPlan,
    LoanInstallment,
    LoanSchedule,
    ReturnEstimate,
)
from prime_ledger.domain.exceptions import InvalidAmountError
from prime_ledger.utils.date_utils import add_months


def estimate_plan_return(plan: InvestmentPlan, amount: float | Decimal) -> ReturnEstimate:
    """
    Project the return of investing `amount` in `plan`.

    The plan's roi is the total return over its duration, compounded
    `compounding_rate` times within that duration:

        maturity = amount * (1 + roi / compounding_rate) ** compounding_rate

    Non-positive amounts yield a zero estimate rather than an error.
    Non-finite amounts, or a result too large for a float, raise
    InvalidAmountError.

    Example:
        roi=0.25, compounding_rate=3, amount=500
        500 * (1 + 0.25/3)^3 = 635.706..., return 135.706...
    """
    principal = _finite(amount)
    if principal <= 0:
        return ReturnEstimate(expected_return=0.0, maturity_amount=0.0)

    periods = plan.compounding_rate
    try:
        maturity = principal * (1 + plan.roi / periods) ** periods
    except OverflowError as e:
        raise InvalidAmountError("Estimated return is out of range") from e
    if not math.isfinite(maturity):
        raise InvalidAmountError("Estimated return is out of range")

    return ReturnEstimate(expected_return=maturity - principal, maturity_amount=maturity)


def monthly_payment(amount: float | Decimal, term_months: int, interest_rate: float) -> float:
    """
    Standard amortized payment: P * r(1+r)^n / ((1+r)^n - 1), r = annual rate / 12.

    Zero-interest loans split the principal evenly.
    """
    principal = float(amount)
    if principal <= 0 or term_months <= 0:
        return 0.0

    rate = interest_rate / 12
    if rate == 0:
        return principal / term_months

    factor = (1 + rate) ** term_months
    return principal * (rate * factor) / (factor - 1)


def loan_payment_schedule(
    amount: float | Decimal,
    term_months: int,
    interest_rate: float,
    start_date: date | None = None,
) -> LoanSchedule:
    """
    Generate a monthly amortization schedule.

    Requirements:
    - Computed in whole cents
    - Final installment absorbs rounding so principal sums to the loan amount
    - Due dates one calendar month apart, first one month after start_date

    Args:
        amount: Loan principal
        term_months: Number of monthly payments
        interest_rate: Annual rate as a fraction (0.12 == 12%)
        start_date: Disbursement date (default: today)

    Returns:
        LoanSchedule with per-month rows; empty when amount or term is not positive

    Raises:
        InvalidAmountError: Amount, term or rate beyond MAX_AMOUNT,
            MAX_TERM_MONTHS or MAX_INTEREST_RATE, or not finite
    """
    principal = _finite(amount)
    if principal > MAX_AMOUNT:
        raise InvalidAmountError(f"Amount exceeds the maximum of {MAX_AMOUNT}.")
    if term_months > MAX_TERM_MONTHS:
        raise InvalidAmountError(f"Term exceeds the maximum of {MAX_TERM_MONTHS} months.")
    if not math.isfinite(interest_rate) or not 0 <= interest_rate <= MAX_INTEREST_RATE:
        raise InvalidAmountError(f"Interest rate must be a number from 0 to {MAX_INTEREST_RATE}.")

    principal_cents = int(round(principal * 100))
    if principal_cents <= 0 or term_months <= 0:
        return LoanSchedule(monthly_payment=0.0, total_payable=0.0, total_interest=0.0, installments=[])

    if start_date is None:
        start_date = date.today()

    rate = interest_rate / 12
    payment_cents = int(round(monthly_payment(principal_cents, term_months, interest_rate)))

    installments: List[LoanInstallment] = []
    balance = principal_cents
    total_paid = 0

    for number in range(1, term_months + 1):
        interest = int(round(balance * rate))
        if number == term_months:
            principal_part = balance
        else:
            principal_part = min(payment_cents - interest, balance)
        payment = principal_part + interest
        balance -= principal_part
        total_paid += payment

        installments.append(
            LoanInstallment(
                number=number,
                due_date=add_months(start_date, number),
                payment=payment / 100,
                principal=principal_part / 100,
                interest=interest / 100,
                remaining_balance=balance / 100,
            )
        )

    return LoanSchedule(
        monthly_payment=payment_cents / 100,
        total_payable=total_paid / 100,
        total_interest=(total_paid - principal_cents) / 100,
        installments=installments,
    )


def _finite(amount: float | Decimal) -> float:
    value = float(amount)
    if not math.isfinite(value):
        raise InvalidAmountError("Amount must be a finite number")
    return value
