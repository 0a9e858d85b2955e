"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional, Type
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from prime_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from prime_ledger.api.dependencies import build_ledger, get_request_id
from prime_ledger.api.v1 import accounts, auth, investments, loans, plans, transactions
from prime_ledger.domain.exceptions import (
    AmountOutOfRangeError,
    AuthenticationError,
    AuthenticationRequiredError,
    DomainException,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
    PersistenceError,
)
from prime_ledger.infrastructure.clients.auth import AuthClient
from prime_ledger.infrastructure.observability.logging import setup_logging
from prime_ledger.services.ledger import Ledger
from prime_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)

ERROR_STATUS: Dict[Type[DomainException], int] = {
    NotFoundError: 404,
    InvalidAmountError: 422,
    AmountOutOfRangeError: 422,
    InsufficientFundsError: 409,
    InvalidStateError: 409,
    AuthenticationRequiredError: 401,
    AuthenticationError: 401,
    PersistenceError: 503,
}


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Translate domain errors into HTTP responses"""
    status_code = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        500,
    )
    request_id = get_request_id(request)
    if status_code >= 500:
        logging.error(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
    else:
        logging.warning(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})

    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def create_app(ledger: Optional[Ledger] = None, auth_client: Optional[AuthClient] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Tests pass their own ledger and auth client; otherwise both are built
    from settings.
    """
    if ledger is None or auth_client is None:
        ledger, auth_client = build_ledger(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if ledger.current_user_id is not None:
            await ledger.load()
        yield
        ledger.close()

    app = FastAPI(
        title="Prime Ledger",
        description="Accounts, transfers, investment plans and loans",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.ledger = ledger
    app.state.auth_client = auth_client

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(auth.router, prefix="/v1", tags=["auth"])
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])
    app.include_router(plans.router, prefix="/v1", tags=["plans"])
    app.include_router(investments.router, prefix="/v1", tags=["investments"])
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])

    return app


app = create_app()
