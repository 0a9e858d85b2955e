"""Relational store backed by SQLAlchemy sessions"""

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from prime_ledger.domain.models import Account, Investment, InvestmentPlan, Loan, Transaction
from prime_ledger.domain.exceptions import PersistenceError
from prime_ledger.infrastructure.database.repositories import (
    AccountRepository,
    InvestmentRepository,
    LoanRepository,
    PlanRepository,
    TransactionRepository,
)
from prime_ledger.infrastructure.store.interface import ChangeSet, LedgerStore


class SqlLedgerStore(LedgerStore):
    """
    LedgerStore over a relational database.

    Every call runs in its own session; `apply` writes a whole ChangeSet in a
    single database transaction and rolls back on any failure.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"Database error during {action}: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def fetch_accounts(self, user_id: str) -> List[Account]:
        with self._session("fetch accounts") as db:
            return AccountRepository(db).list_for_user(user_id)

    async def fetch_transactions(self, user_id: str) -> List[Transaction]:
        with self._session("fetch transactions") as db:
            return TransactionRepository(db).list_for_user(user_id)

    async def fetch_loans(self, user_id: str) -> List[Loan]:
        with self._session("fetch loans") as db:
            return LoanRepository(db).list_for_user(user_id)

    async def fetch_investments(self, user_id: str) -> List[Investment]:
        with self._session("fetch investments") as db:
            return InvestmentRepository(db).list_for_user(user_id)

    async def fetch_plans(self) -> List[InvestmentPlan]:
        with self._session("fetch plans") as db:
            return PlanRepository(db).list_all()

    def seed_plans(self, plans: List[InvestmentPlan]) -> None:
        with self._session("seed plans") as db:
            repo = PlanRepository(db)
            for plan in plans:
                repo.upsert(plan)

    async def insert_account(self, user_id: str, account: Account) -> None:
        with self._session("insert account") as db:
            AccountRepository(db).create(user_id, account)

    async def insert_transaction(self, user_id: str, transaction: Transaction) -> None:
        with self._session("insert transaction") as db:
            TransactionRepository(db).create(user_id, transaction)

    async def insert_investment(self, user_id: str, investment: Investment) -> None:
        with self._session("insert investment") as db:
            InvestmentRepository(db).create(user_id, investment)

    async def insert_loan(self, user_id: str, loan: Loan) -> None:
        with self._session("insert loan") as db:
            LoanRepository(db).create(user_id, loan)

    async def update_account_balance(self, user_id: str, account_id: str, balance: Decimal) -> None:
        with self._session("update account balance") as db:
            _ensure_found(AccountRepository(db).update_balance(user_id, account_id, balance), f"account {account_id}")

    async def update_loan(self, user_id: str, loan: Loan) -> None:
        with self._session("update loan") as db:
            _ensure_found(LoanRepository(db).update(user_id, loan), f"loan {loan.id}")

    async def update_investment(self, user_id: str, investment: Investment) -> None:
        with self._session("update investment") as db:
            _ensure_found(InvestmentRepository(db).update(user_id, investment), f"investment {investment.id}")

    async def apply(self, user_id: str, changes: ChangeSet) -> None:
        with self._session("apply changes") as db:
            accounts = AccountRepository(db)
            loans = LoanRepository(db)
            investments = InvestmentRepository(db)
            transactions = TransactionRepository(db)

            for loan in changes.new_loans:
                loans.create(user_id, loan)
            for loan in changes.updated_loans:
                _ensure_found(loans.update(user_id, loan), f"loan {loan.id}")
            for investment in changes.new_investments:
                investments.create(user_id, investment)
            for investment in changes.updated_investments:
                _ensure_found(investments.update(user_id, investment), f"investment {investment.id}")
            for account in changes.updated_accounts:
                _ensure_found(accounts.update_balance(user_id, account.id, account.balance), f"account {account.id}")
            for transaction in changes.new_transactions:
                transactions.create(user_id, transaction)


def _ensure_found(updated: bool, target: str) -> None:
    if not updated:
        raise PersistenceError(f"Stored {target} not found")
