"""
Client-triggered status polling.

Terminal orders are answered from the store. Pending orders are re-queried
at the gateway and the answer goes through the reconciler, exactly as a
callback would. Retriable gateway errors are asked again within the
query timeout; a gateway that still cannot answer leaves the order untouched.
"""

import asyncio
import logging
from typing import Optional

from checkout.config import settings
from checkout.engine.errors import GatewayUnavailable, MissingHandle, UnknownOrder
from checkout.engine.reconciler import Reconciler
from checkout.gateway.errors import GatewayError
from checkout.engine.state_machine import normalize_poll
from checkout.gateway.base import PaymentGateway
from checkout.gateway.errors import GatewayError
from checkout.gateway.retry import RetryPolicy, call_gateway
from checkout.models.enums import SignalSource
from checkout.models.order import Order
from checkout.store.base import OrderStore

logger = logging.getLogger("checkout.status_query")


class StatusQueryService:
    def __init__(
        self,
        store: OrderStore,
        gateway: PaymentGateway,
        reconciler: Reconciler,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._store = store
        self._gateway = gateway
        self._reconciler = reconciler
        self._retry = RetryPolicy(
            max_retries=max_retries if max_retries is not None else settings.gateway_max_retries,
            base_delay=retry_base_delay if retry_base_delay is not None else settings.gateway_retry_base_delay,
        )
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.gateway_timeout_seconds

    async def query_status(self, order_id: str) -> Order:
        """
        Current view of an order, refreshed from the gateway while pending.

        Raises:
            UnknownOrder: No such order.
            MissingHandle: Payment initiation never recorded a handle.
            GatewayUnavailable: The gateway could not be asked; retry later.
        """
        order = await self._store.get(order_id)
        if order is None:
            raise UnknownOrder(order_id)

        if order.order_status.is_terminal:
            return order

        if not order.gateway_handle:
            raise MissingHandle(order_id)

        try:
            status = await asyncio.wait_for(
                call_gateway(self._retry, "query_status", self._gateway.query_status, order.gateway_handle),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Status query for %s timed out", order_id)
            raise GatewayUnavailable(f"Gateway status query timed out for order {order_id}", order_id=order_id)
        except GatewayError as e:
            logger.warning("Status query for %s failed: %s", order_id, e)
            raise GatewayUnavailable(
                f"Gateway status query failed for order {order_id}: {e}", order_id=order_id
            ) from e

        logger.info("Gateway reports %s/%s for order %s", status.state, status.code, order_id)
        return await self._reconciler.reconcile(
            order_id,
            normalize_poll(status.code),
            reported_code=status.code,
            reported_transaction_id=status.transaction_id,
            source=SignalSource.POLL,
        )
