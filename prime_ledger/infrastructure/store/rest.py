"""Hosted backend store (PostgREST-style HTTP API)"""

import httpx
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
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
from prime_ledger.domain.exceptions import PersistenceError
from prime_ledger.infrastructure.clients.auth import AuthSession
from prime_ledger.infrastructure.store.interface import LedgerStore
from prime_ledger.config import settings


class RestLedgerStore(LedgerStore):
    """
    LedgerStore over a hosted REST data API.

    Rows live in snake_case tables (accounts, transactions, loans,
    investments, investment_plans) filtered by user_id. Requests carry the
    project API key and, when signed in, the user's bearer token.

    The hosted API has no multi-table transactions, so `apply` issues its
    writes in order and stops at the first failure.
    """

    def __init__(
        self,
        session: AuthSession,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self.base_url = (base_url or settings.store_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.store_api_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    def _headers(self, prefer: str = "return=minimal") -> Dict[str, str]:
        token = self.session.access_token or self.api_key
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token}",
            "Prefer": prefer,
        }

    async def _request(
        self,
        method: str,
        table: str,
        action: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: str = "return=minimal",
    ) -> Any:
        """
        Call the data API.

        Raises:
            PersistenceError: On timeout, HTTP errors, or unreadable response
        """
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.request(
                    method,
                    f"/rest/v1/{table}",
                    params=params,
                    json=json,
                    headers=self._headers(prefer),
                )
                response.raise_for_status()
                return response.json() if response.content else None
            except httpx.TimeoutException as e:
                raise PersistenceError(f"Data API timeout during {action} after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise PersistenceError(f"Data API error during {action}: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise PersistenceError(f"Data API unreachable during {action}: {e}") from e
            except ValueError as e:
                raise PersistenceError(f"Invalid response during {action}: {e}") from e

    async def _select(self, table: str, action: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        rows = await self._request("GET", table, action, params={"select": "*", **params})
        if not isinstance(rows, list):
            raise PersistenceError(f"Invalid response during {action}: expected a list of rows")
        return rows

    async def _update(self, table: str, action: str, user_id: str, row_id: str, values: Dict[str, Any]) -> None:
        """PATCH one row; the updated rows are echoed back so a miss is detectable"""
        rows = await self._request(
            "PATCH",
            table,
            action,
            params={"id": f"eq.{row_id}", "user_id": f"eq.{user_id}"},
            json=values,
            prefer="return=representation",
        )
        if not isinstance(rows, list) or not rows:
            raise PersistenceError(f"Stored {table} row {row_id} not found during {action}")

    async def fetch_accounts(self, user_id: str) -> List[Account]:
        rows = await self._select("accounts", "load accounts", {"user_id": f"eq.{user_id}"})
        return _parse_rows(rows, _account_from_row, "load accounts")

    async def fetch_transactions(self, user_id: str) -> List[Transaction]:
        rows = await self._select(
            "transactions", "load transactions", {"user_id": f"eq.{user_id}", "order": "created_at.desc"}
        )
        return _parse_rows(rows, _transaction_from_row, "load transactions")

    async def fetch_loans(self, user_id: str) -> List[Loan]:
        rows = await self._select("loans", "load loans", {"user_id": f"eq.{user_id}"})
        return _parse_rows(rows, _loan_from_row, "load loans")

    async def fetch_investments(self, user_id: str) -> List[Investment]:
        rows = await self._select("investments", "load investments", {"user_id": f"eq.{user_id}"})
        return _parse_rows(rows, _investment_from_row, "load investments")

    async def fetch_plans(self) -> List[InvestmentPlan]:
        rows = await self._select("investment_plans", "load plans", {})
        return _parse_rows(rows, _plan_from_row, "load plans")

    async def insert_account(self, user_id: str, account: Account) -> None:
        await self._request(
            "POST",
            "accounts",
            "create account",
            json={
                "id": account.id,
                "user_id": user_id,
                "name": account.name,
                "number": account.number,
                "balance": str(account.balance),
            },
        )

    async def insert_transaction(self, user_id: str, transaction: Transaction) -> None:
        await self._request(
            "POST",
            "transactions",
            "create transaction",
            json={
                "id": transaction.id,
                "user_id": user_id,
                "type": transaction.type.value,
                "amount": str(transaction.amount),
                "status": transaction.status,
                "description": transaction.description,
                "meta": transaction.metadata,
                "created_at": transaction.date.isoformat(),
            },
        )

    async def insert_investment(self, user_id: str, investment: Investment) -> None:
        await self._request(
            "POST",
            "investments",
            "create investment",
            json={
                "id": investment.id,
                "user_id": user_id,
                "plan_id": investment.plan_id,
                "amount": str(investment.amount),
                "start_date": investment.start_date.isoformat(),
                "end_date": investment.end_date.isoformat(),
                "status": investment.status.value,
                "expected_return": investment.expected_return,
                "funded_from_account_id": investment.funded_from_account_id,
            },
        )

    async def insert_loan(self, user_id: str, loan: Loan) -> None:
        await self._request(
            "POST",
            "loans",
            "create loan",
            json={
                "id": loan.id,
                "user_id": user_id,
                "amount": str(loan.amount),
                "term_months": loan.term_months,
                "interest_rate": loan.interest_rate,
                "status": loan.status.value,
                "disbursed_to_account_id": loan.disbursed_to_account_id,
                "created_at": loan.created_at.isoformat(),
            },
        )

    async def update_account_balance(self, user_id: str, account_id: str, balance: Decimal) -> None:
        await self._update("accounts", "update account balance", user_id, account_id, {"balance": str(balance)})

    async def update_loan(self, user_id: str, loan: Loan) -> None:
        await self._update(
            "loans",
            "update loan",
            user_id,
            loan.id,
            {
                "status": loan.status.value,
                "approved_at": _iso(loan.approved_at),
                "closed_at": _iso(loan.closed_at),
            },
        )

    async def update_investment(self, user_id: str, investment: Investment) -> None:
        await self._update(
            "investments",
            "update investment",
            user_id,
            investment.id,
            {"status": investment.status.value, "completed_at": _iso(investment.completed_at)},
        )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value.replace("Z", "+00:00")) if value else None


def _parse_rows(rows: List[Dict[str, Any]], parse, action: str) -> list:
    try:
        return [parse(row) for row in rows]
    except (KeyError, ValueError, TypeError, ArithmeticError) as e:
        raise PersistenceError(f"Invalid row data during {action}: {e}") from e


def _account_from_row(row: Dict[str, Any]) -> Account:
    return Account(
        id=str(row["id"]),
        name=row["name"],
        number=row["number"],
        balance=Decimal(str(row["balance"])),
    )


def _transaction_from_row(row: Dict[str, Any]) -> Transaction:
    return Transaction(
        id=str(row["id"]),
        type=TransactionType(row["type"]),
        amount=Decimal(str(row["amount"])),
        date=_datetime(row["created_at"]),
        status=row["status"],
        description=row.get("description") or "",
        metadata=dict(row.get("meta") or {}),
    )


def _loan_from_row(row: Dict[str, Any]) -> Loan:
    return Loan(
        id=str(row["id"]),
        amount=Decimal(str(row["amount"])),
        term_months=int(row["term_months"]),
        interest_rate=float(row["interest_rate"]),
        status=LoanStatus(row["status"]),
        disbursed_to_account_id=row["disbursed_to_account_id"],
        created_at=_datetime(row["created_at"]),
        approved_at=_datetime(row.get("approved_at")),
        closed_at=_datetime(row.get("closed_at")),
    )


def _investment_from_row(row: Dict[str, Any]) -> Investment:
    return Investment(
        id=str(row["id"]),
        plan_id=row["plan_id"],
        amount=Decimal(str(row["amount"])),
        start_date=_datetime(row["start_date"]),
        end_date=_datetime(row["end_date"]),
        status=InvestmentStatus(row["status"]),
        expected_return=float(row["expected_return"]),
        funded_from_account_id=row["funded_from_account_id"],
        completed_at=_datetime(row.get("completed_at")),
    )


def _plan_from_row(row: Dict[str, Any]) -> InvestmentPlan:
    return InvestmentPlan(
        id=str(row["id"]),
        name=row["name"],
        min_amount=Decimal(str(row["min_amount"])),
        max_amount=Decimal(str(row["max_amount"])),
        roi=float(row["roi"]),
        compounding_rate=int(row["compounding_rate"]),
        duration_days=int(row["duration_days"]),
        description=row.get("description") or "",
    )
