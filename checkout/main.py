"""
Checkout Reconciler: order intake and payment status reconciliation API.

Creates orders, hands them to a hosted-checkout payment gateway, and
converges each order to one terminal status from two unordered,
at-least-once signal channels: gateway callbacks and client status polls.

Start the server:
    uvicorn checkout.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from checkout.api.callbacks import router as callbacks_router
from checkout.api.dependencies import Services, build_services
from checkout.api.health import router as health_router
from checkout.api.orders import router as orders_router
from checkout.config import Settings, settings
from checkout.database import build_engine, build_session_factory, init_db
from checkout.gateway.mock_gateway import MockPaymentGateway
from checkout.notify.log_notifier import LoggingNotifier
from checkout.store.sql_store import SqlOrderStore

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def create_app(
    services: Optional[Services] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Build the application.

    With ``services`` given, the app uses them as-is (tests inject fakes
    this way). Otherwise the lifespan creates the database, a mock gateway
    and a logging notifier from ``app_settings``.
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services is not None:
            yield
            return

        engine = build_engine(app_settings.database_url)
        await init_db(engine)
        app.state.services = build_services(
            store=SqlOrderStore(build_session_factory(engine)),
            gateway=MockPaymentGateway(
                failure_rate=app_settings.mock_failure_rate,
                latency_ms=app_settings.mock_latency_ms,
            ),
            notifier=LoggingNotifier(),
            app_settings=app_settings,
        )
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(
        title="Checkout Reconciler",
        description=(
            "Order intake and payment reconciliation. Gateway callbacks and client "
            "status polls feed one write-once state machine per order, with "
            "exactly-once confirmation dispatch and an immutable audit trail."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.include_router(health_router)
    app.include_router(orders_router, prefix="/api")
    app.include_router(callbacks_router, prefix="/api")
    return app


app = create_app()
