"""Ledger engine - accounts, balances and the append-only transaction log"""

import asyncio
import functools
import logging
import math
import time
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from prime_ledger.domain.models import (
    Account,
    AuthUser,
    Investment,
    InvestmentPlan,
    InvestmentStatus,
    Loan,
    LoanStatus,
    MAX_AMOUNT,
    MAX_INTEREST_RATE,
    MAX_TERM_MONTHS,
    Transaction,
    TransactionType,
)
from prime_ledger.domain.exceptions import (
    AmountOutOfRangeError,
    AuthenticationRequiredError,
    DomainException,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from prime_ledger.domain.calculator import estimate_plan_return
from prime_ledger.domain.loans import describe_approval, transition_loan
from prime_ledger.infrastructure.clients.auth import SIGNED_IN, SIGNED_OUT, AuthSession
from prime_ledger.infrastructure.store.interface import ChangeSet, LedgerStore
from prime_ledger.infrastructure.observability.logging import log_ledger_operation
from prime_ledger.infrastructure.observability.metrics import record_operation, store_failure_counter
from prime_ledger.utils.date_utils import add_days, utc_now
from prime_ledger.utils.ids import random_id

CENT = Decimal("0.01")
COMPLETED = "completed"


def parse_amount(value: Any) -> Decimal:
    """
    Normalize a user-supplied amount to a positive Decimal with cents precision.

    Raises:
        InvalidAmountError: If the value is not a finite number greater than zero
            and at most MAX_AMOUNT
    """
    if isinstance(value, bool):
        raise InvalidAmountError("Amount must be a number")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidAmountError("Amount must be a finite number")
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Amount must be a number, got {value!r}") from e

    if not amount.is_finite():
        raise InvalidAmountError("Amount must be a finite number")

    if amount > MAX_AMOUNT:
        raise InvalidAmountError(f"Amount exceeds the maximum of {MAX_AMOUNT}.")
    try:
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidAmountError(f"Amount cannot be represented in cents: {value!r}") from e
    if amount <= 0:
        raise InvalidAmountError("Amount must be greater than 0.")
    return amount


@dataclass(frozen=True)
class LedgerState:
    """Immutable snapshot of everything the ledger owns; newest records first"""

    accounts: Tuple[Account, ...] = ()
    plans: Tuple[InvestmentPlan, ...] = ()
    investments: Tuple[Investment, ...] = ()
    loans: Tuple[Loan, ...] = ()
    transactions: Tuple[Transaction, ...] = ()

    def account(self, account_id: str) -> Account:
        for account in self.accounts:
            if account.id == account_id:
                return account
        raise NotFoundError(f"Account {account_id} not found.")

    def plan(self, plan_id: str) -> InvestmentPlan:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        raise NotFoundError(f"Plan {plan_id} not found.")

    def loan(self, loan_id: str) -> Loan:
        for loan in self.loans:
            if loan.id == loan_id:
                return loan
        raise NotFoundError(f"Loan {loan_id} not found.")

    def investment(self, investment_id: str) -> Investment:
        for investment in self.investments:
            if investment.id == investment_id:
                return investment
        raise NotFoundError(f"Investment {investment_id} not found.")

    def with_accounts(self, *updated: Account) -> "LedgerState":
        by_id = {a.id: a for a in updated}
        return replace(self, accounts=tuple(by_id.get(a.id, a) for a in self.accounts))

    def with_loan(self, loan: Loan) -> "LedgerState":
        if any(l.id == loan.id for l in self.loans):
            return replace(self, loans=tuple(loan if l.id == loan.id else l for l in self.loans))
        return replace(self, loans=(loan,) + self.loans)

    def with_investment(self, investment: Investment) -> "LedgerState":
        if any(i.id == investment.id for i in self.investments):
            return replace(
                self,
                investments=tuple(investment if i.id == investment.id else i for i in self.investments),
            )
        return replace(self, investments=(investment,) + self.investments)

    def with_transaction(self, transaction: Transaction) -> "LedgerState":
        return replace(self, transactions=(transaction,) + self.transactions)


def ledger_command(operation: str):
    """
    Run a ledger command as one critical section.

    Commands are serialized on the ledger's lock and their outcome is
    recorded in logs and metrics. Domain errors propagate unchanged.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self: "Ledger", *args, **kwargs):
            start_time = time.time()
            async with self._lock:
                self._last_amount = None
                try:
                    result = await func(self, *args, **kwargs)
                except DomainException as e:
                    outcome = "persistence_error" if isinstance(e, PersistenceError) else "rejected"
                    record_operation(operation, outcome)
                    log_ledger_operation(
                        operation, self.current_user_id, outcome, (time.time() - start_time) * 1000, error=str(e)
                    )
                    raise

            record_operation(operation, "success", self._last_amount)
            log_ledger_operation(operation, self.current_user_id, "success", (time.time() - start_time) * 1000)
            return result

        return wrapper

    return decorator


class Ledger:
    """
    Command API over the signed-in user's accounts, loans and investments.

    Each command validates against the current snapshot, builds the complete
    next snapshot, writes the resulting ChangeSet to the store and only then
    publishes the new snapshot. A store failure leaves the snapshot as it was.
    """

    def __init__(
        self,
        store: LedgerStore,
        auth: AuthSession,
        plans: Sequence[InvestmentPlan] = (),
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._auth = auth
        self._seed_plans = tuple(plans)
        self._clock = clock
        self._lock = asyncio.Lock()
        self._state = LedgerState(plans=self._seed_plans)
        self._last_amount: Optional[Decimal] = None
        self._unsubscribe = auth.on_auth_state_change(self._on_auth_change)

    # -- session -------------------------------------------------------

    @property
    def current_user_id(self) -> Optional[str]:
        user = self._auth.current_user
        return user.id if user else None

    def _require_user(self) -> AuthUser:
        user = self._auth.current_user
        if user is None:
            raise AuthenticationRequiredError("Sign in required.")
        return user

    def _on_auth_change(self, event: str, user: Optional[AuthUser]) -> None:
        # SIGNED_IN only fires when the user id changes
        if event in (SIGNED_IN, SIGNED_OUT):
            self.reset()

    def reset(self) -> None:
        """Drop user data, keeping reference plans"""
        self._state = LedgerState(plans=self._seed_plans)

    def close(self) -> None:
        self._unsubscribe()

    async def load(self) -> None:
        """Replace the snapshot with the signed-in user's data from the store"""
        async with self._lock:
            user = self._require_user()
            try:
                accounts, transactions, loans, investments, plans = await asyncio.gather(
                    self._store.fetch_accounts(user.id),
                    self._store.fetch_transactions(user.id),
                    self._store.fetch_loans(user.id),
                    self._store.fetch_investments(user.id),
                    self._store.fetch_plans(),
                )
            except PersistenceError:
                store_failure_counter.inc()
                self.reset()
                raise
            except Exception as e:
                store_failure_counter.inc()
                self.reset()
                raise PersistenceError(f"Failed to load user data: {e}") from e

            if self.current_user_id != user.id:
                logging.warning("Discarding ledger load after the signed-in user changed", extra={"user_id": user.id})
                return

            self._state = LedgerState(
                accounts=tuple(accounts),
                plans=tuple(plans) or self._seed_plans,
                investments=tuple(sorted(investments, key=lambda i: i.start_date, reverse=True)),
                loans=tuple(sorted(loans, key=lambda l: l.created_at, reverse=True)),
                transactions=tuple(sorted(transactions, key=lambda t: t.date, reverse=True)),
            )
            logging.info(
                "Ledger loaded",
                extra={"user_id": user.id, "accounts": len(accounts), "transactions": len(transactions)},
            )

    async def _commit(self, user: AuthUser, next_state: LedgerState, changes: ChangeSet) -> None:
        try:
            await self._store.apply(user.id, changes)
        except PersistenceError:
            store_failure_counter.inc()
            raise
        except Exception as e:
            store_failure_counter.inc()
            raise PersistenceError(f"Failed to persist ledger change: {e}") from e
        if self.current_user_id == user.id:
            self._state = next_state

    def _new_transaction(
        self,
        type: TransactionType,
        amount: Decimal,
        description: str,
        at: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Transaction:
        return Transaction(
            id=random_id("tx"),
            type=type,
            amount=amount,
            date=at,
            status=COMPLETED,
            description=description,
            metadata=dict(metadata or {}),
        )

    # -- commands ------------------------------------------------------

    @ledger_command("transfer")
    async def transfer_between_accounts(self, from_id: str, to_id: str, amount: Any) -> Transaction:
        """
        Move funds between two accounts of the signed-in user.

        Raises:
            NotFoundError: Either account is missing
            InvalidAmountError: Amount not positive, or source equals destination
            InsufficientFundsError: Source balance below amount
        """
        user = self._require_user()
        state = self._state
        source = state.account(from_id)
        target = state.account(to_id)
        value = parse_amount(amount)
        if source.id == target.id:
            raise InvalidAmountError("Cannot transfer to the same account.")
        if source.balance < value:
            raise InsufficientFundsError("Insufficient balance for transfer.")

        now = self._clock()
        debited = replace(source, balance=source.balance - value)
        credited = replace(target, balance=target.balance + value)
        tx = self._new_transaction(
            TransactionType.TRANSFER,
            value,
            f"Transfer from {source.name} to {target.name}",
            now,
            {"from_account_id": source.id, "to_account_id": target.id},
        )

        next_state = state.with_accounts(debited, credited).with_transaction(tx)
        await self._commit(user, next_state, ChangeSet(updated_accounts=[debited, credited], new_transactions=[tx]))
        self._last_amount = value
        return tx

    @ledger_command("deposit")
    async def deposit_funds(self, account_id: str, amount: Any, description: Optional[str] = None) -> Transaction:
        """Credit an account with external funds"""
        user = self._require_user()
        state = self._state
        value = parse_amount(amount)
        account = state.account(account_id)

        credited = replace(account, balance=account.balance + value)
        tx = self._new_transaction(
            TransactionType.DEPOSIT,
            value,
            description or "Deposit",
            self._clock(),
            {"account_id": account.id},
        )

        next_state = state.with_accounts(credited).with_transaction(tx)
        await self._commit(user, next_state, ChangeSet(updated_accounts=[credited], new_transactions=[tx]))
        self._last_amount = value
        return tx

    @ledger_command("loan_apply")
    async def apply_for_loan(
        self, amount: Any, term_months: int, interest_rate: float, disburse_account_id: str
    ) -> Loan:
        """Create a pending loan; balances are untouched until approval"""
        user = self._require_user()
        state = self._state
        value = parse_amount(amount)
        if (
            isinstance(term_months, bool)
            or not isinstance(term_months, int)
            or not 0 < term_months <= MAX_TERM_MONTHS
        ):
            raise InvalidAmountError(f"Term must be a whole number of months from 1 to {MAX_TERM_MONTHS}.")
        if (
            isinstance(interest_rate, bool)
            or not isinstance(interest_rate, (int, float))
            or not math.isfinite(interest_rate)
            or not 0 <= interest_rate <= MAX_INTEREST_RATE
        ):
            raise InvalidAmountError(f"Interest rate must be a number from 0 to {MAX_INTEREST_RATE}.")
        state.account(disburse_account_id)

        loan = Loan(
            id=random_id("loan"),
            amount=value,
            term_months=term_months,
            interest_rate=float(interest_rate),
            status=LoanStatus.PENDING,
            disbursed_to_account_id=disburse_account_id,
            created_at=self._clock(),
        )

        await self._commit(user, state.with_loan(loan), ChangeSet(new_loans=[loan]))
        self._last_amount = None
        return loan

    @ledger_command("loan_approve")
    async def approve_loan(self, loan_id: str) -> Loan:
        """
        Approve a pending loan and disburse it.

        Raises:
            NotFoundError: Loan or disbursement account missing
            InvalidStateError: Loan is not pending
        """
        user = self._require_user()
        state = self._state
        loan = state.loan(loan_id)
        now = self._clock()
        approved = transition_loan(loan, LoanStatus.APPROVED, now)
        account = state.account(loan.disbursed_to_account_id)

        credited = replace(account, balance=account.balance + loan.amount)
        tx = self._new_transaction(
            TransactionType.LOAN,
            loan.amount,
            describe_approval(loan),
            now,
            {"loan_id": loan.id, "account_id": account.id},
        )

        next_state = state.with_loan(approved).with_accounts(credited).with_transaction(tx)
        changes = ChangeSet(updated_loans=[approved], updated_accounts=[credited], new_transactions=[tx])
        await self._commit(user, next_state, changes)
        self._last_amount = loan.amount
        return approved

    @ledger_command("loan_reject")
    async def reject_loan(self, loan_id: str) -> Loan:
        user = self._require_user()
        state = self._state
        rejected = transition_loan(state.loan(loan_id), LoanStatus.REJECTED, self._clock())

        await self._commit(user, state.with_loan(rejected), ChangeSet(updated_loans=[rejected]))
        self._last_amount = None
        return rejected

    @ledger_command("loan_repaid")
    async def mark_loan_repaid(self, loan_id: str) -> Loan:
        """Record the external repayment flow's completion event"""
        user = self._require_user()
        state = self._state
        repaid = transition_loan(state.loan(loan_id), LoanStatus.REPAID, self._clock())

        await self._commit(user, state.with_loan(repaid), ChangeSet(updated_loans=[repaid]))
        self._last_amount = None
        return repaid

    @ledger_command("invest")
    async def invest_in_plan(self, plan_id: str, amount: Any, from_account_id: str) -> Investment:
        """
        Lock funds from an account into a plan.

        The account is debited immediately with no offsetting credit; the
        funds are held by the plan until the investment completes.

        Raises:
            NotFoundError: Plan or account missing
            AmountOutOfRangeError: Amount outside the plan's bounds
            InsufficientFundsError: Account balance below amount
        """
        user = self._require_user()
        state = self._state
        plan = state.plan(plan_id)
        account = state.account(from_account_id)
        value = parse_amount(amount)
        if value < plan.min_amount:
            raise AmountOutOfRangeError(f"Amount is below the minimum of ${plan.min_amount}.")
        if value > plan.max_amount:
            raise AmountOutOfRangeError(f"Amount exceeds the maximum of ${plan.max_amount}.")
        if account.balance < value:
            raise InsufficientFundsError("Insufficient balance for investment.")

        now = self._clock()
        estimate = estimate_plan_return(plan, value)
        investment = Investment(
            id=random_id("inv"),
            plan_id=plan.id,
            amount=value,
            start_date=now,
            end_date=add_days(now, plan.duration_days),
            status=InvestmentStatus.ACTIVE,
            expected_return=estimate.expected_return,
            funded_from_account_id=account.id,
        )
        debited = replace(account, balance=account.balance - value)
        tx = self._new_transaction(
            TransactionType.INVESTMENT,
            -value,
            f"Invested in {plan.name}",
            now,
            {"investment_id": investment.id, "plan_id": plan.id, "account_id": account.id},
        )

        next_state = state.with_investment(investment).with_accounts(debited).with_transaction(tx)
        changes = ChangeSet(new_investments=[investment], updated_accounts=[debited], new_transactions=[tx])
        await self._commit(user, next_state, changes)
        self._last_amount = value
        return investment

    def _mature(self, state: LedgerState, investment: Investment, now: datetime) -> Tuple[LedgerState, ChangeSet]:
        if investment.status != InvestmentStatus.ACTIVE:
            raise InvalidStateError(f"Investment {investment.id} is not active.")
        if now < investment.end_date:
            raise InvalidStateError(f"Investment {investment.id} matures on {investment.end_date.date()}.")

        account = state.account(investment.funded_from_account_id)
        payout = (investment.amount + Decimal(str(investment.expected_return))).quantize(CENT, rounding=ROUND_HALF_UP)
        completed = replace(investment, status=InvestmentStatus.COMPLETED, completed_at=now)
        credited = replace(account, balance=account.balance + payout)
        plan_name = next((p.name for p in state.plans if p.id == investment.plan_id), "plan")
        tx = self._new_transaction(
            TransactionType.INVESTMENT,
            payout,
            f"Matured: {plan_name}",
            now,
            {"event": "maturity", "investment_id": investment.id, "account_id": account.id},
        )

        next_state = state.with_investment(completed).with_accounts(credited).with_transaction(tx)
        return next_state, ChangeSet(
            updated_investments=[completed], updated_accounts=[credited], new_transactions=[tx]
        )

    @ledger_command("investment_complete")
    async def complete_investment(self, investment_id: str) -> Investment:
        """Close a matured investment, paying principal plus expected return back to its funding account"""
        user = self._require_user()
        state = self._state
        investment = state.investment(investment_id)
        next_state, changes = self._mature(state, investment, self._clock())

        await self._commit(user, next_state, changes)
        self._last_amount = changes.new_transactions[0].amount
        return next_state.investment(investment_id)

    @ledger_command("investment_settle")
    async def settle_matured_investments(self) -> List[Investment]:
        """Complete every active investment whose end date has elapsed"""
        user = self._require_user()
        state = self._state
        now = self._clock()
        due = [i for i in state.investments if i.status == InvestmentStatus.ACTIVE and i.end_date <= now]

        next_state = state
        changes = ChangeSet()
        for investment in due:
            next_state, step = self._mature(next_state, investment, now)
            changes.extend(step)

        if due:
            await self._commit(user, next_state, changes)
        self._last_amount = sum((t.amount for t in changes.new_transactions), Decimal("0")) if due else None
        return [next_state.investment(i.id) for i in due]

    # -- reads ---------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def accounts(self) -> List[Account]:
        return list(self._state.accounts)

    @property
    def plans(self) -> List[InvestmentPlan]:
        return list(self._state.plans)

    @property
    def investments(self) -> List[Investment]:
        return list(self._state.investments)

    @property
    def loans(self) -> List[Loan]:
        return list(self._state.loans)

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._state.transactions)

    def get_account(self, account_id: str) -> Account:
        return self._state.account(account_id)

    def get_plan(self, plan_id: str) -> InvestmentPlan:
        return self._state.plan(plan_id)

    def get_loan(self, loan_id: str) -> Loan:
        return self._state.loan(loan_id)

    def get_investment(self, investment_id: str) -> Investment:
        return self._state.investment(investment_id)

    @property
    def total_balance(self) -> Decimal:
        return sum((a.balance for a in self._state.accounts), Decimal("0"))

    @property
    def active_investment_count(self) -> int:
        return sum(1 for i in self._state.investments if i.status == InvestmentStatus.ACTIVE)

    @property
    def pending_loan_count(self) -> int:
        return sum(1 for l in self._state.loans if l.status == LoanStatus.PENDING)

    def filter_transactions(
        self, type: Optional[TransactionType] = None, year: Optional[int] = None
    ) -> List[Transaction]:
        """Transactions newest first, optionally narrowed by type and calendar year"""
        return [
            t
            for t in self._state.transactions
            if (type is None or t.type == type) and (year is None or t.date.year == year)
        ]

    def available_years(self) -> List[int]:
        return sorted({t.date.year for t in self._state.transactions})

    def monthly_activity(self, year: int) -> List[Decimal]:
        """Twelve totals of absolute transaction amounts, January first"""
        totals = [Decimal("0")] * 12
        for t in self._state.transactions:
            if t.date.year == year:
                totals[t.date.month - 1] += abs(t.amount)
        return totals
