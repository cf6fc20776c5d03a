"""Order state machine and gateway signal normalization."""

from typing import Optional

from checkout.models.enums import GatewaySignal, OrderStatus

# Poll response codes that settle a payment (everything else is still in flight)
POLL_SUCCESS_CODES = frozenset({"PAYMENT_SUCCESS"})
POLL_FAILURE_CODES = frozenset({"PAYMENT_ERROR", "TIMED_OUT", "TRANSACTION_NOT_FOUND"})

# Callback codes that accompany success=false without settling the payment
CALLBACK_PENDING_CODES = frozenset({"PAYMENT_PENDING"})


class OrderStateMachine:
    """State machine for order status transitions.

    Allowed transitions:
    - PENDING → COMPLETED (gateway reported success)
    - PENDING → FAILED (gateway reported failure)

    COMPLETED and FAILED are terminal: no signal moves an order out of them.
    """

    VALID_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
        OrderStatus.PENDING: frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED}),
        OrderStatus.COMPLETED: frozenset(),
        OrderStatus.FAILED: frozenset(),
    }

    SIGNAL_TARGETS: dict[GatewaySignal, Optional[OrderStatus]] = {
        GatewaySignal.SUCCESS: OrderStatus.COMPLETED,
        GatewaySignal.FAILURE: OrderStatus.FAILED,
        GatewaySignal.STILL_PENDING: None,
    }

    @classmethod
    def can_transition(cls, from_status: OrderStatus, to_status: OrderStatus) -> bool:
        """Check if a transition is valid."""
        return to_status in cls.VALID_TRANSITIONS[from_status]

    @classmethod
    def target_for(cls, signal: GatewaySignal) -> Optional[OrderStatus]:
        """Status a signal drives a PENDING order to, or None if it leaves it pending."""
        return cls.SIGNAL_TARGETS[signal]


def normalize_poll(code: Optional[str]) -> GatewaySignal:
    """Map a status query response code onto a gateway signal."""
    if code in POLL_SUCCESS_CODES:
        return GatewaySignal.SUCCESS
    if code in POLL_FAILURE_CODES:
        return GatewaySignal.FAILURE
    return GatewaySignal.STILL_PENDING


def normalize_callback(success: bool, code: Optional[str]) -> GatewaySignal:
    """Map a callback's success flag and code onto a gateway signal."""
    if success:
        return GatewaySignal.SUCCESS
    if code in CALLBACK_PENDING_CODES:
        return GatewaySignal.STILL_PENDING
    return GatewaySignal.FAILURE
