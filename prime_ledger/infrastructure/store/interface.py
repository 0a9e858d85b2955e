"""
Abstract persistence contract for ledger data.

Every operation is keyed by the opaque user id handed out by the auth
service. Implementations raise PersistenceError for any failure so the
ledger can abort the in-progress command without touching its snapshot.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List
from prime_ledger.domain.models import Account, Investment, InvestmentPlan, Loan, Transaction


@dataclass
class ChangeSet:
    """All writes produced by a single ledger command"""

    updated_accounts: List[Account] = field(default_factory=list)
    new_transactions: List[Transaction] = field(default_factory=list)
    new_investments: List[Investment] = field(default_factory=list)
    updated_investments: List[Investment] = field(default_factory=list)
    new_loans: List[Loan] = field(default_factory=list)
    updated_loans: List[Loan] = field(default_factory=list)

    def extend(self, other: "ChangeSet") -> None:
        self.updated_accounts.extend(other.updated_accounts)
        self.new_transactions.extend(other.new_transactions)
        self.new_investments.extend(other.new_investments)
        self.updated_investments.extend(other.updated_investments)
        self.new_loans.extend(other.new_loans)
        self.updated_loans.extend(other.updated_loans)


class LedgerStore(ABC):
    """
    CRUD-style store for accounts, transactions, loans, investments and plans.

    `apply` writes a whole ChangeSet. The default issues the CRUD calls in
    order; stores with real transactions override it to commit atomically.
    """

    @abstractmethod
    async def fetch_accounts(self, user_id: str) -> List[Account]:
        pass

    @abstractmethod
    async def fetch_transactions(self, user_id: str) -> List[Transaction]:
        pass

    @abstractmethod
    async def fetch_loans(self, user_id: str) -> List[Loan]:
        pass

    @abstractmethod
    async def fetch_investments(self, user_id: str) -> List[Investment]:
        pass

    @abstractmethod
    async def fetch_plans(self) -> List[InvestmentPlan]:
        pass

    @abstractmethod
    async def insert_account(self, user_id: str, account: Account) -> None:
        pass

    @abstractmethod
    async def insert_transaction(self, user_id: str, transaction: Transaction) -> None:
        pass

    @abstractmethod
    async def insert_investment(self, user_id: str, investment: Investment) -> None:
        pass

    @abstractmethod
    async def insert_loan(self, user_id: str, loan: Loan) -> None:
        pass

    @abstractmethod
    async def update_account_balance(self, user_id: str, account_id: str, balance: Decimal) -> None:
        pass

    @abstractmethod
    async def update_loan(self, user_id: str, loan: Loan) -> None:
        """Persist status and lifecycle stamps of an existing loan"""
        pass

    @abstractmethod
    async def update_investment(self, user_id: str, investment: Investment) -> None:
        """Persist status and completion stamp of an existing investment"""
        pass

    async def apply(self, user_id: str, changes: ChangeSet) -> None:
        """Write a ChangeSet: entity inserts, status updates, balances, then the log"""
        for loan in changes.new_loans:
            await self.insert_loan(user_id, loan)
        for loan in changes.updated_loans:
            await self.update_loan(user_id, loan)
        for investment in changes.new_investments:
            await self.insert_investment(user_id, investment)
        for investment in changes.updated_investments:
            await self.update_investment(user_id, investment)
        for account in changes.updated_accounts:
            await self.update_account_balance(user_id, account.id, account.balance)
        for transaction in changes.new_transactions:
            await self.insert_transaction(user_id, transaction)
