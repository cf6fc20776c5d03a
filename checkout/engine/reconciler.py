"""
Order reconciler: the single writer of order status.

Callbacks and status polls both end up here. Each signal is applied with a
compare-and-swap on the stored status, so any number of concurrent,
duplicated or reordered signals for one order produce the same outcome:

  1. Unknown order        → UnknownOrder, nothing is written
  2. Terminal order       → no-op (audited as signal_ignored)
  3. PENDING + pending    → refresh gateway_state_code only
  4. PENDING + success    → COMPLETED, then one confirmation
  5. PENDING + failure    → FAILED

A writer that loses the swap reloads the order and re-evaluates; after a
lost race the order is terminal, so the second pass ends at step 2.

Confirmation dispatch happens only in the writer that won the PENDING →
COMPLETED swap, and only after it claims ``notified_at``. A send that fails
after the claim is logged and audited, never retried: a missed email is
preferable to a duplicate one.
"""

import logging
from typing import Optional

from checkout.config import settings
from checkout.engine.errors import StoreUnavailable, UnknownOrder
from checkout.engine.state_machine import OrderStateMachine
from checkout.models.enums import GatewaySignal, OrderStatus, SignalSource
from checkout.models.order import Order
from checkout.notify.base import NotificationError, Notifier
from checkout.store.base import OrderStore

logger = logging.getLogger("checkout.reconciler")

_TRANSITION_ACTIONS = {
    OrderStatus.COMPLETED: "order_completed",
    OrderStatus.FAILED: "order_failed",
}


class Reconciler:
    """Applies gateway signals to orders atomically."""

    def __init__(
        self,
        store: OrderStore,
        notifier: Notifier,
        max_attempts: Optional[int] = None,
    ):
        self._store = store
        self._notifier = notifier
        self._max_attempts = max_attempts if max_attempts is not None else settings.reconcile_max_attempts

    async def reconcile(
        self,
        order_id: str,
        reported_state: GatewaySignal,
        reported_code: Optional[str] = None,
        reported_transaction_id: Optional[str] = None,
        source: SignalSource = SignalSource.CALLBACK,
    ) -> Order:
        """
        Merge one gateway signal into the order's authoritative state.

        Args:
            order_id: The order the signal refers to.
            reported_state: Normalized gateway outcome.
            reported_code: Raw gateway code, stored for observability.
            reported_transaction_id: Settled transaction id (success only).
            source: Channel the signal arrived through.

        Returns:
            The order as stored after the signal was applied (or ignored).

        Raises:
            UnknownOrder: No such order; the signal is dropped.
            StoreUnavailable: The store failed, or the swap kept losing.
        """
        signal = reported_state
        if signal is GatewaySignal.SUCCESS and not reported_transaction_id:
            # COMPLETED requires a transaction id; wait for a signal that carries one
            logger.warning(
                "Success signal for %s via %s carries no transaction id, treating as pending",
                order_id,
                source.value,
            )
            signal = GatewaySignal.STILL_PENDING

        details = {
            "source": source.value,
            "signal": reported_state.value,
            "code": reported_code,
            "transaction_id": reported_transaction_id,
        }
        target = OrderStateMachine.target_for(signal)

        for attempt in range(1, self._max_attempts + 1):
            order = await self._store.get(order_id)
            if order is None:
                logger.warning("Dropping %s signal for unknown order %s", source.value, order_id)
                raise UnknownOrder(order_id)

            current = order.order_status
            if current.is_terminal:
                logger.info(
                    "Order %s already %s, ignoring %s signal %s",
                    order_id,
                    current.value,
                    source.value,
                    reported_state.value,
                )
                await self._record_quietly(order_id, "signal_ignored", {**details, "status": current.value})
                return order

            if target is None and reported_code == order.gateway_state_code:
                return order

            values: dict = {"gateway_state_code": reported_code}
            if target is not None:
                values["status"] = target
                if target is OrderStatus.COMPLETED:
                    values["gateway_transaction_id"] = reported_transaction_id

            updated = await self._store.conditional_update(order_id, OrderStatus.PENDING, values)
            if updated is None:
                logger.info(
                    "Order %s changed underneath %s signal (attempt %d/%d), reloading",
                    order_id,
                    source.value,
                    attempt,
                    self._max_attempts,
                )
                continue

            await self._record_quietly(order_id, _TRANSITION_ACTIONS.get(target, "signal_applied"), details)
            if target is not None:
                logger.info("Order %s: %s → %s via %s", order_id, current.value, target.value, source.value)

            if target is OrderStatus.COMPLETED:
                await self._dispatch_confirmation(updated)
            return updated

        logger.error("Could not reconcile order %s after %d attempts", order_id, self._max_attempts)
        raise StoreUnavailable(f"Could not reconcile order {order_id} after {self._max_attempts} attempts")

    async def _dispatch_confirmation(self, order: Order) -> None:
        try:
            claimed = await self._store.claim_once(order.order_id, "notified_at")
        except StoreUnavailable as e:
            logger.error("Could not claim confirmation for %s, not sending: %s", order.order_id, e)
            return

        if not claimed:
            logger.info("Confirmation for %s already claimed, skipping", order.order_id)
            return

        try:
            await self._notifier.send_confirmation(order)
        except NotificationError as e:
            logger.warning("Confirmation for %s was not delivered and will not be retried: %s", order.order_id, e)
            await self._record_quietly(order.order_id, "notification_failed", {"error": str(e)})
            return

        await self._record_quietly(order.order_id, "notification_sent", {"recipient": order.contact_email})

    async def _record_quietly(self, order_id: str, action: str, details: dict) -> None:
        # Status is already committed; an audit write failure must not surface as a reconcile failure
        try:
            await self._store.record_event(order_id, action, details)
        except StoreUnavailable as e:
            logger.error("Could not audit %s for %s: %s", action, order_id, e)
