"""Unit tests for the ledger engine"""

import asyncio
import pytest
from datetime import timedelta
from decimal import Decimal
from typing import Dict
from prime_ledger.data.plans import SEED_PLANS
from prime_ledger.domain.models import MAX_AMOUNT, AuthUser, InvestmentStatus, LoanStatus, TransactionType
from prime_ledger.domain.exceptions import (
    AmountOutOfRangeError,
    AuthenticationRequiredError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from prime_ledger.infrastructure.store.interface import ChangeSet
from prime_ledger.infrastructure.store.memory import InMemoryStore
from prime_ledger.services.ledger import Ledger, parse_amount


pytestmark = pytest.mark.asyncio


def balances(ledger: Ledger) -> Dict[str, Decimal]:
    return {a.id: a.balance for a in ledger.accounts}


# parse_amount


@pytest.mark.parametrize(
    "raw,expected",
    [
        (100, Decimal("100.00")),
        ("25.5", Decimal("25.50")),
        (10.005, Decimal("10.01")),
        (Decimal("0.019"), Decimal("0.02")),
        (MAX_AMOUNT, MAX_AMOUNT),
    ],
)
async def test_parse_amount_normalizes_to_cents(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize(
    "raw", [0, -5, "abc", None, True, float("nan"), float("inf"), "0.001", "1e27", "-1e27", Decimal("1000000000000")]
)
async def test_parse_amount_rejects_unusable_values(raw):
    with pytest.raises(InvalidAmountError):
        parse_amount(raw)


# load


async def test_load_reads_accounts_and_plans(loaded_ledger: Ledger):
    assert balances(loaded_ledger) == {"acc1": Decimal("3500.00"), "acc2": Decimal("1200.00")}
    assert [p.id for p in loaded_ledger.plans] == ["plan1", "plan2", "plan3"]
    assert loaded_ledger.total_balance == Decimal("4700.00")


async def test_load_falls_back_to_seed_plans(store: InMemoryStore, ledger: Ledger):
    store._plans = []
    await ledger.load()

    assert ledger.plans == SEED_PLANS


async def test_load_failure_surfaces_persistence_error(store: InMemoryStore, ledger: Ledger):
    store.fail_reads = True

    with pytest.raises(PersistenceError):
        await ledger.load()
    assert ledger.accounts == []


# transfers


async def test_transfer_conserves_funds(loaded_ledger: Ledger):
    before = balances(loaded_ledger)

    tx = await loaded_ledger.transfer_between_accounts("acc1", "acc2", 500)

    after = balances(loaded_ledger)
    assert after["acc1"] == before["acc1"] - 500
    assert after["acc1"] + after["acc2"] == before["acc1"] + before["acc2"]
    assert tx.type == TransactionType.TRANSFER
    assert tx.amount == Decimal("500.00")
    assert tx.description == "Transfer from Wall Street Bank to Prime Savings"
    assert tx.metadata == {"from_account_id": "acc1", "to_account_id": "acc2"}
    assert loaded_ledger.transactions == [tx]


async def test_transfer_entire_balance_reaches_zero(loaded_ledger: Ledger):
    await loaded_ledger.transfer_between_accounts("acc2", "acc1", "1200.00")

    assert balances(loaded_ledger)["acc2"] == Decimal("0.00")


async def test_transfer_insufficient_funds_leaves_state_unchanged(loaded_ledger: Ledger):
    state = loaded_ledger.state

    with pytest.raises(InsufficientFundsError):
        await loaded_ledger.transfer_between_accounts("acc2", "acc1", "1200.01")

    assert loaded_ledger.state is state


@pytest.mark.parametrize("from_id,to_id", [("missing", "acc2"), ("acc1", "missing")])
async def test_transfer_unknown_account(loaded_ledger: Ledger, from_id, to_id):
    with pytest.raises(NotFoundError):
        await loaded_ledger.transfer_between_accounts(from_id, to_id, 10)


@pytest.mark.parametrize("amount", [0, -10, "ten", float("nan"), "1e27"])
async def test_transfer_invalid_amount(loaded_ledger: Ledger, amount):
    with pytest.raises(InvalidAmountError):
        await loaded_ledger.transfer_between_accounts("acc1", "acc2", amount)
    assert loaded_ledger.transactions == []


async def test_transfer_to_same_account_rejected(loaded_ledger: Ledger):
    with pytest.raises(InvalidAmountError):
        await loaded_ledger.transfer_between_accounts("acc1", "acc1", 10)


async def test_concurrent_transfers_never_overdraw(loaded_ledger: Ledger):
    """Seven 500 transfers fit in 3500; the rest must fail cleanly"""
    results = await asyncio.gather(
        *(loaded_ledger.transfer_between_accounts("acc1", "acc2", 500) for _ in range(10)),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 3
    assert all(isinstance(f, InsufficientFundsError) for f in failures)
    assert balances(loaded_ledger) == {"acc1": Decimal("0.00"), "acc2": Decimal("4700.00")}
    assert len(loaded_ledger.transactions) == 7


# deposits


async def test_deposit_credits_account(loaded_ledger: Ledger):
    tx = await loaded_ledger.deposit_funds("acc2", "250.50")

    assert balances(loaded_ledger)["acc2"] == Decimal("1450.50")
    assert tx.type == TransactionType.DEPOSIT
    assert tx.description == "Deposit"
    assert loaded_ledger.total_balance == Decimal("4950.50")


async def test_deposit_custom_description(loaded_ledger: Ledger):
    tx = await loaded_ledger.deposit_funds("acc1", 10, description="Paycheck")

    assert tx.description == "Paycheck"


async def test_deposit_rejects_non_finite_amount(loaded_ledger: Ledger):
    with pytest.raises(InvalidAmountError):
        await loaded_ledger.deposit_funds("acc1", float("inf"))


async def test_deposit_unknown_account(loaded_ledger: Ledger):
    with pytest.raises(NotFoundError):
        await loaded_ledger.deposit_funds("nope", 10)


# loans


async def test_apply_for_loan_creates_pending_loan_without_moving_funds(loaded_ledger: Ledger, clock):
    before = balances(loaded_ledger)

    loan = await loaded_ledger.apply_for_loan(2000, 12, 0.085, "acc1")

    assert loan.status == LoanStatus.PENDING
    assert loan.amount == Decimal("2000.00")
    assert loan.created_at == clock.now
    assert loan.approved_at is None
    assert balances(loaded_ledger) == before
    assert loaded_ledger.transactions == []
    assert loaded_ledger.pending_loan_count == 1


@pytest.mark.parametrize(
    "amount,term,rate",
    [
        (0, 12, 0.1),
        (1000, 0, 0.1),
        (1000, -3, 0.1),
        (1000, 1.5, 0.1),
        (1000, 601, 0.1),
        (1000, 12, -0.01),
        (1000, 12, 1.5),
        (1000, 12, float("nan")),
        ("1e27", 12, 0.1),
    ],
)
async def test_apply_for_loan_validates_terms(loaded_ledger: Ledger, amount, term, rate):
    with pytest.raises(InvalidAmountError):
        await loaded_ledger.apply_for_loan(amount, term, rate, "acc1")
    assert loaded_ledger.loans == []


async def test_apply_for_loan_unknown_account(loaded_ledger: Ledger):
    with pytest.raises(NotFoundError):
        await loaded_ledger.apply_for_loan(1000, 12, 0.1, "missing")


async def test_approve_loan_disburses_once(loaded_ledger: Ledger, clock):
    loan = await loaded_ledger.apply_for_loan(2000, 12, 0.085, "acc2")

    approved = await loaded_ledger.approve_loan(loan.id)

    assert approved.status == LoanStatus.APPROVED
    assert approved.approved_at == clock.now
    assert balances(loaded_ledger)["acc2"] == Decimal("3200.00")
    [tx] = loaded_ledger.transactions
    assert tx.type == TransactionType.LOAN
    assert tx.amount == Decimal("2000.00")
    assert tx.description == "Loan approved (12 mo @ 8.5%)"

    with pytest.raises(InvalidStateError):
        await loaded_ledger.approve_loan(loan.id)
    assert balances(loaded_ledger)["acc2"] == Decimal("3200.00")
    assert len(loaded_ledger.transactions) == 1


async def test_approve_unknown_loan(loaded_ledger: Ledger):
    with pytest.raises(NotFoundError):
        await loaded_ledger.approve_loan("loan_missing")


async def test_rejected_loan_cannot_be_approved(loaded_ledger: Ledger):
    loan = await loaded_ledger.apply_for_loan(500, 6, 0.1, "acc1")
    rejected = await loaded_ledger.reject_loan(loan.id)

    assert rejected.status == LoanStatus.REJECTED
    with pytest.raises(InvalidStateError):
        await loaded_ledger.approve_loan(loan.id)
    assert loaded_ledger.total_balance == Decimal("4700.00")


async def test_mark_loan_repaid(loaded_ledger: Ledger):
    loan = await loaded_ledger.apply_for_loan(500, 6, 0.1, "acc1")
    await loaded_ledger.approve_loan(loan.id)

    repaid = await loaded_ledger.mark_loan_repaid(loan.id)

    assert repaid.status == LoanStatus.REPAID
    assert loaded_ledger.get_loan(loan.id).status == LoanStatus.REPAID
    with pytest.raises(InvalidStateError):
        await loaded_ledger.mark_loan_repaid(loan.id)


# investments


async def test_invest_locks_funds(loaded_ledger: Ledger, clock):
    investment = await loaded_ledger.invest_in_plan("plan1", 1000, "acc1")

    assert investment.status == InvestmentStatus.ACTIVE
    assert investment.amount == Decimal("1000.00")
    assert investment.expected_return == pytest.approx(120.0)
    assert investment.start_date == clock.now
    assert investment.end_date == clock.now + timedelta(days=30)
    assert balances(loaded_ledger)["acc1"] == Decimal("2500.00")
    assert loaded_ledger.total_balance == Decimal("3700.00")

    [tx] = loaded_ledger.transactions
    assert tx.type == TransactionType.INVESTMENT
    assert tx.amount == Decimal("-1000.00")
    assert tx.description == "Invested in Prime Growth 30"
    assert loaded_ledger.active_investment_count == 1


@pytest.mark.parametrize("amount", [99.99, 10_000.01])
async def test_invest_outside_plan_bounds(loaded_ledger: Ledger, amount):
    state = loaded_ledger.state

    with pytest.raises(AmountOutOfRangeError):
        await loaded_ledger.invest_in_plan("plan1", amount, "acc1")
    assert loaded_ledger.state is state


async def test_invest_within_bounds_but_insufficient_funds(loaded_ledger: Ledger):
    state = loaded_ledger.state

    with pytest.raises(InsufficientFundsError):
        await loaded_ledger.invest_in_plan("plan2", 1500, "acc2")
    assert loaded_ledger.state is state


@pytest.mark.parametrize("plan_id,account_id", [("plan9", "acc1"), ("plan1", "acc9")])
async def test_invest_unknown_plan_or_account(loaded_ledger: Ledger, plan_id, account_id):
    with pytest.raises(NotFoundError):
        await loaded_ledger.invest_in_plan(plan_id, 500, account_id)


async def test_complete_investment_pays_back_principal_and_return(loaded_ledger: Ledger, clock):
    investment = await loaded_ledger.invest_in_plan("plan1", 1000, "acc1")

    with pytest.raises(InvalidStateError):
        await loaded_ledger.complete_investment(investment.id)

    clock.advance(30)
    completed = await loaded_ledger.complete_investment(investment.id)

    assert completed.status == InvestmentStatus.COMPLETED
    assert completed.completed_at == clock.now
    assert completed.expected_return == investment.expected_return
    assert balances(loaded_ledger)["acc1"] == Decimal("3620.00")
    payout = loaded_ledger.transactions[0]
    assert payout.amount == Decimal("1120.00")
    assert payout.metadata["event"] == "maturity"

    with pytest.raises(InvalidStateError):
        await loaded_ledger.complete_investment(investment.id)


async def test_settle_completes_only_matured_investments(loaded_ledger: Ledger, clock):
    short = await loaded_ledger.invest_in_plan("plan1", 500, "acc1")
    long = await loaded_ledger.invest_in_plan("plan2", 1000, "acc1")

    clock.advance(31)
    settled = await loaded_ledger.settle_matured_investments()

    assert [i.id for i in settled] == [short.id]
    assert loaded_ledger.get_investment(long.id).status == InvestmentStatus.ACTIVE
    assert loaded_ledger.active_investment_count == 1


async def test_settle_with_nothing_due_is_a_no_op(loaded_ledger: Ledger):
    await loaded_ledger.invest_in_plan("plan1", 500, "acc1")
    count = len(loaded_ledger.transactions)

    assert await loaded_ledger.settle_matured_investments() == []
    assert len(loaded_ledger.transactions) == count


# transaction log


async def test_log_is_append_only(loaded_ledger: Ledger):
    first = await loaded_ledger.deposit_funds("acc1", 100)
    snapshot = list(loaded_ledger.transactions)

    await loaded_ledger.transfer_between_accounts("acc1", "acc2", 50)
    loan = await loaded_ledger.apply_for_loan(300, 3, 0.1, "acc1")
    await loaded_ledger.approve_loan(loan.id)
    await loaded_ledger.invest_in_plan("plan1", 200, "acc1")

    log = loaded_ledger.transactions
    assert len(log) == 4
    assert log[-1] is first
    assert log[-len(snapshot):] == snapshot


async def test_filters_and_activity(loaded_ledger: Ledger, clock):
    await loaded_ledger.deposit_funds("acc1", 100)
    await loaded_ledger.transfer_between_accounts("acc1", "acc2", 50)
    await loaded_ledger.invest_in_plan("plan1", 200, "acc1")

    assert [t.type for t in loaded_ledger.filter_transactions(TransactionType.DEPOSIT)] == [TransactionType.DEPOSIT]
    assert loaded_ledger.filter_transactions(year=2025) == []
    assert len(loaded_ledger.filter_transactions(year=2026)) == 3
    assert loaded_ledger.available_years() == [2026]

    activity = loaded_ledger.monthly_activity(2026)
    assert len(activity) == 12
    assert activity[clock.now.month - 1] == Decimal("350.00")
    assert sum(activity) == Decimal("350.00")


# persistence and auth


async def test_store_failure_leaves_state_unchanged(loaded_ledger: Ledger, store: InMemoryStore):
    state = loaded_ledger.state
    store.fail_writes = True

    with pytest.raises(PersistenceError):
        await loaded_ledger.transfer_between_accounts("acc1", "acc2", 100)
    with pytest.raises(PersistenceError):
        await loaded_ledger.invest_in_plan("plan1", 100, "acc1")

    assert loaded_ledger.state is state

    store.fail_writes = False
    await loaded_ledger.transfer_between_accounts("acc1", "acc2", 100)
    assert balances(loaded_ledger)["acc1"] == Decimal("3400.00")


async def test_unexpected_store_error_is_wrapped(loaded_ledger: Ledger, store: InMemoryStore, monkeypatch):
    async def boom(user_id: str, changes: ChangeSet) -> None:
        raise RuntimeError("connection reset")

    monkeypatch.setattr(store, "apply", boom)

    with pytest.raises(PersistenceError, match="connection reset"):
        await loaded_ledger.deposit_funds("acc1", 10)
    assert balances(loaded_ledger)["acc1"] == Decimal("3500.00")


async def test_changes_are_persisted(loaded_ledger: Ledger, store: InMemoryStore, auth_session, clock):
    await loaded_ledger.transfer_between_accounts("acc1", "acc2", 100)
    loan = await loaded_ledger.apply_for_loan(300, 3, 0.1, "acc1")
    await loaded_ledger.approve_loan(loan.id)

    reloaded = Ledger(store, auth_session, plans=SEED_PLANS, clock=clock)
    await reloaded.load()

    assert balances(reloaded) == balances(loaded_ledger)
    assert reloaded.get_loan(loan.id).status == LoanStatus.APPROVED
    assert {t.id for t in reloaded.transactions} == {t.id for t in loaded_ledger.transactions}


async def test_readers_never_see_partial_commit(loaded_ledger: Ledger, store: InMemoryStore):
    entered, gate = asyncio.Event(), asyncio.Event()
    original_apply = store.apply

    async def slow_apply(user_id: str, changes: ChangeSet) -> None:
        entered.set()
        await gate.wait()
        await original_apply(user_id, changes)

    store.apply = slow_apply

    task = asyncio.create_task(loaded_ledger.transfer_between_accounts("acc1", "acc2", 700))
    await asyncio.sleep(0)

    assert balances(loaded_ledger) == {"acc1": Decimal("3500.00"), "acc2": Decimal("1200.00")}
    assert loaded_ledger.transactions == []

    gate.set()
    await task
    assert balances(loaded_ledger) == {"acc1": Decimal("2800.00"), "acc2": Decimal("1900.00")}


async def test_mutations_require_signed_in_user(loaded_ledger: Ledger, auth_session):
    auth_session.clear()

    assert loaded_ledger.accounts == []
    with pytest.raises(AuthenticationRequiredError):
        await loaded_ledger.deposit_funds("acc1", 10)
    with pytest.raises(AuthenticationRequiredError):
        await loaded_ledger.transfer_between_accounts("acc1", "acc2", 10)
    with pytest.raises(AuthenticationRequiredError):
        await loaded_ledger.apply_for_loan(100, 3, 0.1, "acc1")
    with pytest.raises(AuthenticationRequiredError):
        await loaded_ledger.approve_loan("loan_x")
    with pytest.raises(AuthenticationRequiredError):
        await loaded_ledger.invest_in_plan("plan1", 100, "acc1")


async def test_switching_user_drops_previous_user_data(loaded_ledger: Ledger, auth_session):
    auth_session.set_session(AuthUser(id="other-user", email="other@example.com"))

    assert loaded_ledger.accounts == []
    assert loaded_ledger.transactions == []
    assert loaded_ledger.plans == SEED_PLANS
    with pytest.raises(NotFoundError):
        await loaded_ledger.deposit_funds("acc1", 10)


async def test_failed_load_for_new_user_shows_no_stale_data(loaded_ledger: Ledger, store: InMemoryStore, auth_session):
    store.fail_reads = True
    auth_session.set_session(AuthUser(id="other-user", email="other@example.com"))

    with pytest.raises(PersistenceError):
        await loaded_ledger.load()

    assert loaded_ledger.accounts == []
    assert loaded_ledger.total_balance == Decimal("0")


async def test_refreshing_same_user_keeps_data(loaded_ledger: Ledger, auth_session, user):
    auth_session.set_session(user)

    assert balances(loaded_ledger) == {"acc1": Decimal("3500.00"), "acc2": Decimal("1200.00")}


async def test_commit_after_user_switch_is_not_published(loaded_ledger: Ledger, store: InMemoryStore, auth_session):
    entered, gate = asyncio.Event(), asyncio.Event()
    original_apply = store.apply

    async def slow_apply(user_id: str, changes: ChangeSet) -> None:
        entered.set()
        await gate.wait()
        await original_apply(user_id, changes)

    store.apply = slow_apply

    task = asyncio.create_task(loaded_ledger.deposit_funds("acc1", 100))
    await entered.wait()
    auth_session.set_session(AuthUser(id="other-user", email="other@example.com"))
    gate.set()
    await task

    assert loaded_ledger.accounts == []
    assert loaded_ledger.transactions == []
