"""
Error taxonomy for the checkout engine.

None of these errors ever becomes an order status transition: a gateway
that cannot be reached says nothing about whether the payment failed.
"""

from typing import Optional


class CheckoutError(Exception):
    """Base class for all domain errors raised by the engine."""


class ValidationError(CheckoutError):
    """Bad caller input. Raised before any side effect."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class UnknownOrder(CheckoutError):
    """A signal or query referenced an order that does not exist."""

    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class MissingHandle(CheckoutError):
    """Status was queried before gateway initiation recorded a handle."""

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} has no gateway handle; payment initiation never completed")
        self.order_id = order_id


class InvalidCallback(CheckoutError):
    """Inbound gateway notification is unauthenticated or malformed."""


class GatewayUnavailable(CheckoutError):
    """Transient gateway failure (network error, timeout, malformed response)."""

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id


class StoreUnavailable(CheckoutError):
    """Transient persistence failure, or a write that could not be applied."""
