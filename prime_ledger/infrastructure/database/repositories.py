"""Data access layer for ledger entities"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session
from prime_ledger.infrastructure.database.models import (
    AccountRecord,
    InvestmentPlanRecord,
    InvestmentRecord,
    LoanRecord,
    TransactionRecord,
)
from prime_ledger.domain.models import (
    Account,
    Investment,
    InvestmentPlan,
    InvestmentStatus,
    Loan,
    LoanStatus,
    Transaction,
    TransactionType,
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops tzinfo; stored values are always UTC"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AccountRepository:
    """Repository for accounts"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[Account]:
        rows = (
            self.db.query(AccountRecord)
            .filter(AccountRecord.user_id == user_id)
            .order_by(AccountRecord.id)
            .all()
        )
        return [
            Account(id=r.id, name=r.name, number=r.number, balance=Decimal(r.balance))
            for r in rows
        ]

    def create(self, user_id: str, account: Account) -> AccountRecord:
        record = AccountRecord(
            id=account.id,
            user_id=user_id,
            name=account.name,
            number=account.number,
            balance=account.balance,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def update_balance(self, user_id: str, account_id: str, balance: Decimal) -> bool:
        """Returns False when the account does not belong to the user"""
        record = self.db.get(AccountRecord, account_id)
        if record is None or record.user_id != user_id:
            return False
        record.balance = balance
        return True


class PlanRepository:
    """Repository for investment plans"""

    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> List[InvestmentPlan]:
        rows = self.db.query(InvestmentPlanRecord).order_by(InvestmentPlanRecord.id).all()
        return [
            InvestmentPlan(
                id=r.id,
                name=r.name,
                min_amount=Decimal(r.min_amount),
                max_amount=Decimal(r.max_amount),
                roi=r.roi,
                compounding_rate=r.compounding_rate,
                duration_days=r.duration_days,
                description=r.description or "",
            )
            for r in rows
        ]

    def upsert(self, plan: InvestmentPlan) -> None:
        self.db.merge(
            InvestmentPlanRecord(
                id=plan.id,
                name=plan.name,
                min_amount=plan.min_amount,
                max_amount=plan.max_amount,
                roi=plan.roi,
                compounding_rate=plan.compounding_rate,
                duration_days=plan.duration_days,
                description=plan.description,
            )
        )


class InvestmentRepository:
    """Repository for investments"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[Investment]:
        rows = (
            self.db.query(InvestmentRecord)
            .filter(InvestmentRecord.user_id == user_id)
            .order_by(InvestmentRecord.start_date.desc())
            .all()
        )
        return [
            Investment(
                id=r.id,
                plan_id=r.plan_id,
                amount=Decimal(r.amount),
                start_date=_aware(r.start_date),
                end_date=_aware(r.end_date),
                status=InvestmentStatus(r.status),
                expected_return=r.expected_return,
                funded_from_account_id=r.funded_from_account_id,
                completed_at=_aware(r.completed_at),
            )
            for r in rows
        ]

    def create(self, user_id: str, investment: Investment) -> None:
        self.db.add(
            InvestmentRecord(
                id=investment.id,
                user_id=user_id,
                plan_id=investment.plan_id,
                amount=investment.amount,
                start_date=investment.start_date,
                end_date=investment.end_date,
                status=investment.status.value,
                expected_return=investment.expected_return,
                funded_from_account_id=investment.funded_from_account_id,
            )
        )
        self.db.flush()

    def update(self, user_id: str, investment: Investment) -> bool:
        record = self.db.get(InvestmentRecord, investment.id)
        if record is None or record.user_id != user_id:
            return False
        record.status = investment.status.value
        record.completed_at = investment.completed_at
        return True


class LoanRepository:
    """Repository for loans"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[Loan]:
        rows = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.user_id == user_id)
            .order_by(LoanRecord.created_at.desc())
            .all()
        )
        return [
            Loan(
                id=r.id,
                amount=Decimal(r.amount),
                term_months=r.term_months,
                interest_rate=r.interest_rate,
                status=LoanStatus(r.status),
                disbursed_to_account_id=r.disbursed_to_account_id,
                created_at=_aware(r.created_at),
                approved_at=_aware(r.approved_at),
                closed_at=_aware(r.closed_at),
            )
            for r in rows
        ]

    def create(self, user_id: str, loan: Loan) -> None:
        self.db.add(
            LoanRecord(
                id=loan.id,
                user_id=user_id,
                amount=loan.amount,
                term_months=loan.term_months,
                interest_rate=loan.interest_rate,
                status=loan.status.value,
                disbursed_to_account_id=loan.disbursed_to_account_id,
                created_at=loan.created_at,
            )
        )
        self.db.flush()

    def update(self, user_id: str, loan: Loan) -> bool:
        record = self.db.get(LoanRecord, loan.id)
        if record is None or record.user_id != user_id:
            return False
        record.status = loan.status.value
        record.approved_at = loan.approved_at
        record.closed_at = loan.closed_at
        return True


class TransactionRepository:
    """Repository for the transaction log (insert and read only)"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_user(self, user_id: str) -> List[Transaction]:
        rows = (
            self.db.query(TransactionRecord)
            .filter(TransactionRecord.user_id == user_id)
            .order_by(TransactionRecord.date.desc())
            .all()
        )
        return [
            Transaction(
                id=r.id,
                type=TransactionType(r.type),
                amount=Decimal(r.amount),
                date=_aware(r.date),
                status=r.status,
                description=r.description or "",
                metadata=dict(r.meta or {}),
            )
            for r in rows
        ]

    def create(self, user_id: str, transaction: Transaction) -> None:
        self.db.add(
            TransactionRecord(
                id=transaction.id,
                user_id=user_id,
                type=transaction.type.value,
                amount=transaction.amount,
                date=transaction.date,
                status=transaction.status,
                description=transaction.description,
                meta=dict(transaction.metadata),
            )
        )
        self.db.flush()
