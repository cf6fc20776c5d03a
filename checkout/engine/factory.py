"""
Order factory: creates the order record, then starts the payment.

The order is persisted PENDING before the gateway is contacted, so every
handle the gateway ever returns has an order to land on. When initiation
fails the record is kept, without a handle, as the audit trail of the
attempt; it is never rolled back.
"""

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from checkout.config import settings
from checkout.engine.errors import GatewayUnavailable, StoreUnavailable
from checkout.engine.validation import validate_order_input
from checkout.gateway.base import InitiateRequest, PaymentGateway
from checkout.gateway.errors import GatewayError
from checkout.gateway.retry import RetryPolicy, call_gateway
from checkout.models.enums import OrderStatus
from checkout.models.order import Order, new_order_id
from checkout.store.base import OrderStore

logger = logging.getLogger("checkout.factory")


@dataclass
class CheckoutSession:
    """What the caller gets back: the order and where to send the shopper."""

    order: Order
    redirect_url: str

    @property
    def order_id(self) -> str:
        return self.order.order_id


class OrderFactory:
    """Creates orders and obtains their gateway handles."""

    def __init__(
        self,
        store: OrderStore,
        gateway: PaymentGateway,
        backend_url: Optional[str] = None,
        frontend_url: Optional[str] = None,
        currency: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._gateway = gateway
        self._backend_url = (backend_url or settings.backend_url).rstrip("/")
        self._frontend_url = (frontend_url or settings.frontend_url).rstrip("/")
        self._currency = currency or settings.currency
        self._retry = RetryPolicy(
            max_retries=max_retries if max_retries is not None else settings.gateway_max_retries,
            base_delay=retry_base_delay if retry_base_delay is not None else settings.gateway_retry_base_delay,
        )
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.gateway_timeout_seconds

    def redirect_url_for(self, order_id: str) -> str:
        return f"{self._frontend_url}/payment-status/{order_id}"

    @property
    def callback_url(self) -> str:
        return f"{self._backend_url}/api/callback"

    async def create_order(
        self,
        amount: int,
        line_items: Sequence[Mapping[str, Any]],
        shipping_info: Mapping[str, Any],
        user_id: str,
    ) -> CheckoutSession:
        """
        Create a PENDING order and initiate its payment.

        Returns:
            CheckoutSession with the stored order and the gateway's hosted
            payment URL.

        Raises:
            ValidationError: Bad input; nothing was persisted.
            GatewayUnavailable: Initiation failed; the order exists without
                a handle and ``order_id`` is set on the error.
        """
        validate_order_input(amount, line_items, shipping_info, user_id)

        order = Order(
            order_id=new_order_id(),
            user_id=str(user_id),
            amount=amount,
            currency=self._currency,
            line_items=[dict(item) for item in line_items],
            shipping_info=dict(shipping_info),
            status=OrderStatus.PENDING.value,
        )
        order = await self._store.create(order)
        order_id = order.order_id
        await self._store.record_event(order_id, "order_created", {
            "user_id": order.user_id,
            "amount": amount,
            "items": len(order.line_items),
        })

        request = InitiateRequest(
            order_id=order_id,
            amount=amount,
            currency=self._currency,
            redirect_url=self.redirect_url_for(order_id),
            callback_url=self.callback_url,
            user_id=order.user_id,
            phone=order.shipping_info.get("phone"),
        )

        try:
            response = await asyncio.wait_for(
                call_gateway(self._retry, "initiate", self._gateway.initiate, request),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            await self._record_initiation_failure(order_id, "timed out", None)
            raise GatewayUnavailable(f"Payment initiation timed out for order {order_id}", order_id=order_id)
        except GatewayError as e:
            await self._record_initiation_failure(order_id, str(e), e.status_code)
            raise GatewayUnavailable(
                f"Payment initiation failed for order {order_id}: {e}", order_id=order_id
            ) from e

        if await self._store.set_once(order_id, "gateway_handle", response.handle):
            order.gateway_handle = response.handle
        else:
            # Write-once: keep whatever handle got there first
            logger.warning("Order %s already had a gateway handle, ignoring %s", order_id, response.handle)

        await self._record_quietly(order_id, "payment_initiated", {
            "gateway": self._gateway.name,
            "handle": response.handle,
        })
        logger.info("Order %s created for user %s, payment %s initiated", order_id, order.user_id, response.handle)

        return CheckoutSession(order=order, redirect_url=response.redirect_url)

    async def _record_initiation_failure(self, order_id: str, error: str, status_code: Optional[int]) -> None:
        logger.warning("Payment initiation failed for order %s: %s", order_id, error)
        await self._record_quietly(order_id, "initiation_failed", {
            "gateway": self._gateway.name,
            "error": error,
            "status_code": status_code,
        })

    async def _record_quietly(self, order_id: str, action: str, details: dict) -> None:
        # The order row is already committed; a lost audit entry must not mask the outcome
        try:
            await self._store.record_event(order_id, action, details)
        except StoreUnavailable as e:
            logger.error("Could not audit %s for %s: %s", action, order_id, e)
