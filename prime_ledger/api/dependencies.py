"""Composition root and dependency injection for FastAPI endpoints"""

from typing import Tuple
from fastapi import Request
from prime_ledger.config import Settings, settings
from prime_ledger.data.plans import SEED_PLANS, demo_accounts
from prime_ledger.domain.models import AuthUser
from prime_ledger.infrastructure.clients.auth import AuthClient, AuthSession
from prime_ledger.infrastructure.database.session import get_session_factory
from prime_ledger.infrastructure.store.interface import LedgerStore
from prime_ledger.infrastructure.store.memory import InMemoryStore
from prime_ledger.infrastructure.store.rest import RestLedgerStore
from prime_ledger.infrastructure.store.sql import SqlLedgerStore
from prime_ledger.services.ledger import Ledger


def build_store(config: Settings, session: AuthSession) -> LedgerStore:
    """Select the persistence backend named by `store_backend`"""
    if config.store_backend == "memory":
        store = InMemoryStore(plans=SEED_PLANS)
        if config.demo_user_id and config.seed_demo_accounts:
            store.seed_accounts(config.demo_user_id, demo_accounts())
        return store

    if config.store_backend == "sql":
        sql_store = SqlLedgerStore(get_session_factory())
        sql_store.seed_plans(SEED_PLANS)
        return sql_store

    if config.store_backend == "rest":
        return RestLedgerStore(session)

    raise ValueError(f"Unknown store backend: {config.store_backend!r}")


def build_ledger(config: Settings = settings) -> Tuple[Ledger, AuthClient]:
    """
    Wire one ledger for this service instance.

    Every caller shares this session and ledger, so a sign-in through the
    API switches the signed-in user for all clients.

    The in-memory backend starts with the demo user signed in so the
    service is usable without a hosted auth API.
    """
    session = AuthSession()
    store = build_store(config, session)

    if config.store_backend == "memory" and config.demo_user_id:
        session.set_session(
            AuthUser(id=config.demo_user_id, email=config.demo_user_email, display_name="Demo User")
        )

    ledger = Ledger(store, session, plans=SEED_PLANS)
    return ledger, AuthClient(session)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_ledger(request: Request) -> Ledger:
    """Provide the application's ledger instance"""
    return request.app.state.ledger


def get_auth_client(request: Request) -> AuthClient:
    """Provide the application's auth client"""
    return request.app.state.auth_client
