"""Tests for order creation and payment initiation."""

import pytest

from checkout.database import build_session_factory
from checkout.engine.errors import GatewayUnavailable, ValidationError
from checkout.engine.factory import OrderFactory
from checkout.gateway.errors import GatewayError, PermanentError
from checkout.models.enums import OrderStatus
from tests.conftest import LINE_ITEMS, SHIPPING_INFO, AuditFailingStore, FakeGateway


def _factory(store, gateway, **kwargs) -> OrderFactory:
    options = dict(
        backend_url="https://api.shop.test",
        frontend_url="https://shop.test",
        max_retries=0,
        retry_base_delay=0,
        timeout_seconds=1.0,
    )
    options.update(kwargs)
    return OrderFactory(store, gateway, **options)


@pytest.mark.asyncio
async def test_create_order_persists_pending_order_with_handle(factory, gateway, store):
    session = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

    assert session.order_id.startswith("M-")
    assert session.redirect_url == "https://gateway.test/pay/H1"

    stored = await store.get(session.order_id)
    assert stored.status == OrderStatus.PENDING.value
    assert stored.gateway_handle == "H1"
    assert stored.amount == 500
    assert len(stored.line_items) == 2
    assert stored.gateway_transaction_id is None
    assert stored.notified_at is None


@pytest.mark.asyncio
async def test_gateway_receives_urls_derived_from_order_id(factory, gateway):
    session = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

    request = gateway.initiate_calls[0]
    assert request.order_id == session.order_id
    assert request.amount == 500
    assert request.redirect_url == f"https://shop.test/payment-status/{session.order_id}"
    assert request.callback_url == "https://api.shop.test/api/callback"
    assert request.user_id == "user-1"
    assert request.phone == "9999999999"


@pytest.mark.asyncio
async def test_order_ids_are_unique(factory):
    first = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")
    second = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")
    assert first.order_id != second.order_id


@pytest.mark.asyncio
async def test_creation_is_audited(factory, store):
    session = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

    actions = [e.action for e in await store.list_events(session.order_id)]
    assert actions == ["order_created", "payment_initiated"]


class TestValidationHappensFirst:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount, line_items, shipping_info, user_id, field",
        [
            (None, LINE_ITEMS, SHIPPING_INFO, "user-1", "amount"),
            (0, LINE_ITEMS, SHIPPING_INFO, "user-1", "amount"),
            (-500, LINE_ITEMS, SHIPPING_INFO, "user-1", "amount"),
            (500, [], SHIPPING_INFO, "user-1", "line_items"),
            (500, LINE_ITEMS, None, "user-1", "shipping_info"),
            (500, LINE_ITEMS, SHIPPING_INFO, "", "user_id"),
        ],
    )
    async def test_invalid_input_makes_no_external_call(
        self, factory, gateway, amount, line_items, shipping_info, user_id, field
    ):
        with pytest.raises(ValidationError) as exc_info:
            await factory.create_order(amount, line_items, shipping_info, user_id)

        assert exc_info.value.field == field
        assert gateway.initiate_calls == []


class TestInitiationFailure:
    @pytest.mark.asyncio
    async def test_gateway_error_keeps_pending_order_without_handle(self, store):
        gateway = FakeGateway(initiate_errors=[PermanentError("merchant disabled")])
        factory = _factory(store, gateway)

        with pytest.raises(GatewayUnavailable) as exc_info:
            await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

        order_id = exc_info.value.order_id
        stored = await store.get(order_id)
        assert stored.status == OrderStatus.PENDING.value
        assert stored.gateway_handle is None

        actions = [e.action for e in await store.list_events(order_id)]
        assert actions == ["order_created", "initiation_failed"]

    @pytest.mark.asyncio
    async def test_timeout_keeps_pending_order_without_handle(self, store):
        gateway = FakeGateway(initiate_delay=0.5)
        factory = _factory(store, gateway, timeout_seconds=0.05)

        with pytest.raises(GatewayUnavailable) as exc_info:
            await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

        stored = await store.get(exc_info.value.order_id)
        assert stored.status == OrderStatus.PENDING.value
        assert stored.gateway_handle is None

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, store):
        gateway = FakeGateway(initiate_errors=[GatewayError("503 from gateway", status_code=503)])
        factory = _factory(store, gateway, max_retries=2)

        session = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

        assert len(gateway.initiate_calls) == 2
        assert (await store.get(session.order_id)).gateway_handle == "H1"

    @pytest.mark.asyncio
    async def test_permanent_error_is_not_retried(self, store):
        gateway = FakeGateway(initiate_errors=[PermanentError("bad request")])
        factory = _factory(store, gateway, max_retries=3)

        with pytest.raises(GatewayUnavailable):
            await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

        assert len(gateway.initiate_calls) == 1


@pytest.mark.asyncio
async def test_initiation_failure_keeps_order_id_when_audit_fails(engine):
    store = AuditFailingStore(build_session_factory(engine), fail_actions={"initiation_failed"})
    gateway = FakeGateway(initiate_errors=[PermanentError("merchant disabled")])
    factory = _factory(store, gateway)

    with pytest.raises(GatewayUnavailable) as exc_info:
        await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

    stored = await store.get(exc_info.value.order_id)
    assert stored.status == OrderStatus.PENDING.value
    assert stored.gateway_handle is None


@pytest.mark.asyncio
async def test_successful_initiation_survives_audit_failure(engine):
    store = AuditFailingStore(build_session_factory(engine), fail_actions={"payment_initiated"})
    factory = _factory(store, FakeGateway())

    session = await factory.create_order(500, LINE_ITEMS, SHIPPING_INFO, "user-1")

    assert session.redirect_url == "https://gateway.test/pay/H1"
    assert (await store.get(session.order_id)).gateway_handle == "H1"
