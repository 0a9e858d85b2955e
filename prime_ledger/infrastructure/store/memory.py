"""In-process store used for demo sessions and tests"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from prime_ledger.domain.models import Account, Investment, InvestmentPlan, Loan, Transaction
from prime_ledger.domain.exceptions import PersistenceError
from prime_ledger.infrastructure.store.interface import ChangeSet, LedgerStore


@dataclass
class _UserRecords:
    accounts: Dict[str, Account] = field(default_factory=dict)
    transactions: List[Transaction] = field(default_factory=list)
    loans: Dict[str, Loan] = field(default_factory=dict)
    investments: Dict[str, Investment] = field(default_factory=dict)


class InMemoryStore(LedgerStore):
    """
    Dictionary-backed store.

    `fail_reads` / `fail_writes` make every read or write raise
    PersistenceError, simulating an unavailable backend.
    """

    def __init__(self, plans: Optional[Iterable[InvestmentPlan]] = None):
        self._plans: List[InvestmentPlan] = list(plans or [])
        self._users: Dict[str, _UserRecords] = {}
        self.fail_reads = False
        self.fail_writes = False

    def seed_accounts(self, user_id: str, accounts: Iterable[Account]) -> None:
        records = self._records(user_id)
        for account in accounts:
            records.accounts[account.id] = account

    def _records(self, user_id: str) -> _UserRecords:
        return self._users.setdefault(user_id, _UserRecords())

    def _check_read(self) -> None:
        if self.fail_reads:
            raise PersistenceError("Store unavailable (read)")

    def _check_write(self) -> None:
        if self.fail_writes:
            raise PersistenceError("Store unavailable (write)")

    async def fetch_accounts(self, user_id: str) -> List[Account]:
        self._check_read()
        return list(self._records(user_id).accounts.values())

    async def fetch_transactions(self, user_id: str) -> List[Transaction]:
        self._check_read()
        return sorted(self._records(user_id).transactions, key=lambda t: t.date, reverse=True)

    async def fetch_loans(self, user_id: str) -> List[Loan]:
        self._check_read()
        return sorted(self._records(user_id).loans.values(), key=lambda l: l.created_at, reverse=True)

    async def fetch_investments(self, user_id: str) -> List[Investment]:
        self._check_read()
        return sorted(self._records(user_id).investments.values(), key=lambda i: i.start_date, reverse=True)

    async def fetch_plans(self) -> List[InvestmentPlan]:
        self._check_read()
        return list(self._plans)

    async def insert_account(self, user_id: str, account: Account) -> None:
        self._check_write()
        self._records(user_id).accounts[account.id] = account

    async def insert_transaction(self, user_id: str, transaction: Transaction) -> None:
        self._check_write()
        self._records(user_id).transactions.append(transaction)

    async def insert_investment(self, user_id: str, investment: Investment) -> None:
        self._check_write()
        self._records(user_id).investments[investment.id] = investment

    async def insert_loan(self, user_id: str, loan: Loan) -> None:
        self._check_write()
        self._records(user_id).loans[loan.id] = loan

    async def update_account_balance(self, user_id: str, account_id: str, balance: Decimal) -> None:
        self._check_write()
        records = self._records(user_id)
        if account_id not in records.accounts:
            raise PersistenceError(f"Account {account_id} not found in store")
        records.accounts[account_id] = replace(records.accounts[account_id], balance=balance)

    async def update_loan(self, user_id: str, loan: Loan) -> None:
        self._check_write()
        records = self._records(user_id)
        if loan.id not in records.loans:
            raise PersistenceError(f"Loan {loan.id} not found in store")
        records.loans[loan.id] = loan

    async def update_investment(self, user_id: str, investment: Investment) -> None:
        self._check_write()
        records = self._records(user_id)
        if investment.id not in records.investments:
            raise PersistenceError(f"Investment {investment.id} not found in store")
        records.investments[investment.id] = investment

    async def apply(self, user_id: str, changes: ChangeSet) -> None:
        # Fail before the first write so nothing is half-applied
        self._check_write()
        await super().apply(user_id, changes)
