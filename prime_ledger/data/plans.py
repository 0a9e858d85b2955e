"""Seed reference data: investment plans and demo accounts"""

from decimal import Decimal
from typing import List
from prime_ledger.domain.models import Account, InvestmentPlan

SEED_PLANS: List[InvestmentPlan] = [
    InvestmentPlan(
        id="plan1",
        name="Prime Growth 30",
        min_amount=Decimal("100"),
        max_amount=Decimal("10000"),
        roi=0.12,  # 12% for the period
        compounding_rate=1,
        duration_days=30,
        description="Short-term growth focused plan with moderate risk.",
    ),
    InvestmentPlan(
        id="plan2",
        name="Prime Compound 90",
        min_amount=Decimal("500"),
        max_amount=Decimal("20000"),
        roi=0.25,  # 25% for the period
        compounding_rate=3,
        duration_days=90,
        description="Quarterly compounding for higher returns over 3 months.",
    ),
    InvestmentPlan(
        id="plan3",
        name="Prime Secure 180",
        min_amount=Decimal("1000"),
        max_amount=Decimal("50000"),
        roi=0.35,
        compounding_rate=6,
        duration_days=180,
        description="Lower volatility plan with steady compounding over 6 months.",
    ),
]


def demo_accounts() -> List[Account]:
    """Starting accounts for a fresh demo session"""
    return [
        Account(id="acc1", name="Wall Street Bank", number="**** 1234", balance=Decimal("3500.00")),
        Account(id="acc2", name="Prime Savings", number="**** 9876", balance=Decimal("1200.00")),
    ]
