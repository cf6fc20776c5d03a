"""Shared test fixtures."""

import asyncio
import base64
import json
from typing import Optional

import pytest
import pytest_asyncio

from checkout.database import build_engine, build_session_factory, init_db
from checkout.engine.callbacks import CallbackReceiver
from checkout.engine.errors import StoreUnavailable
from checkout.engine.factory import OrderFactory
from checkout.engine.reconciler import Reconciler
from checkout.engine.status_query import StatusQueryService
from checkout.gateway.base import GatewayStatus, InitiateRequest, InitiateResponse, PaymentGateway
from checkout.models.order import Order
from checkout.notify.base import NotificationError, Notifier
from checkout.store.sql_store import SqlOrderStore

LINE_ITEMS = [
    {"name": "Handloom Saree", "quantity": 1, "unit_price": 300},
    {"name": "Silk Scarf", "quantity": 2, "unit_price": 100},
]

SHIPPING_INFO = {
    "name": "Asha Rao",
    "email": "asha@example.com",
    "phone": "9999999999",
    "address": "12 MG Road, Bengaluru",
}


class FakeGateway(PaymentGateway):
    """Scripted gateway that records every call it receives."""

    def __init__(
        self,
        handle: str = "H1",
        status: Optional[GatewayStatus] = None,
        initiate_errors: Optional[list[Exception]] = None,
        query_error: Optional[Exception] = None,
        query_errors: Optional[list[Exception]] = None,
        initiate_delay: float = 0.0,
    ):
        self.handle = handle
        self.status = status or GatewayStatus(state="PENDING", code="PAYMENT_PENDING")
        self.initiate_errors = list(initiate_errors or [])
        self.query_error = query_error
        self.query_errors = list(query_errors or [])
        self.initiate_delay = initiate_delay
        self.initiate_calls: list[InitiateRequest] = []
        self.issued_handles: list[str] = []
        self.query_calls: list[str] = []

    @property
    def name(self) -> str:
        return "fake_gateway"

    async def initiate(self, request: InitiateRequest) -> InitiateResponse:
        self.initiate_calls.append(request)
        if self.initiate_delay:
            await asyncio.sleep(self.initiate_delay)
        if self.initiate_errors:
            raise self.initiate_errors.pop(0)
        # First payment gets the configured handle, later ones a numbered variant
        issued = len(self.issued_handles)
        handle = self.handle if issued == 0 else f"{self.handle}-{issued + 1}"
        self.issued_handles.append(handle)
        return InitiateResponse(handle=handle, redirect_url=f"https://gateway.test/pay/{handle}")

    async def query_status(self, handle: str) -> GatewayStatus:
        self.query_calls.append(handle)
        if self.query_errors:
            raise self.query_errors.pop(0)
        if self.query_error:
            raise self.query_error
        return self.status


class RecordingNotifier(Notifier):
    """Notifier that remembers what it sent instead of sending it."""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.sent: list[str] = []
        self.attempts = 0

    async def send_confirmation(self, order: Order) -> None:
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise NotificationError("mail relay refused the message")
        self.sent.append(order.order_id)


class AuditFailingStore(SqlOrderStore):
    """SQL store whose audit writes fail for the listed actions."""

    def __init__(self, session_factory, fail_actions):
        super().__init__(session_factory)
        self.fail_actions = set(fail_actions)

    async def record_event(self, order_id, action, details=None):
        if action in self.fail_actions:
            raise StoreUnavailable(f"audit table unavailable for {action}")
        await super().record_event(order_id, action, details)


def encode_callback(
    order_id: str,
    success: bool = True,
    code: str = "PAYMENT_SUCCESS",
    transaction_id: Optional[str] = "T1",
) -> dict:
    body = {
        "success": success,
        "code": code,
        "data": {"merchantOrderId": order_id, "transactionId": transaction_id},
    }
    return {"response": base64.b64encode(json.dumps(body).encode()).decode()}


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh file-backed SQLite database per test (concurrent writers need real locking)."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'checkout_test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return SqlOrderStore(build_session_factory(engine))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def reconciler(store, notifier):
    return Reconciler(store, notifier, max_attempts=5)


@pytest.fixture
def factory(store, gateway):
    return OrderFactory(
        store,
        gateway,
        backend_url="https://api.shop.test",
        frontend_url="https://shop.test",
        currency="INR",
        max_retries=0,
        retry_base_delay=0,
        timeout_seconds=1.0,
    )


@pytest.fixture
def status_query(store, gateway, reconciler):
    return StatusQueryService(store, gateway, reconciler, max_retries=1, retry_base_delay=0, timeout_seconds=1.0)


@pytest.fixture
def receiver(reconciler):
    return CallbackReceiver(reconciler)


@pytest_asyncio.fixture
async def pending_order(factory) -> Order:
    """An order with amount 500, two line items and gateway handle H1."""
    session = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")
    return session.order
