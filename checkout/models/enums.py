"""Enumerations for the checkout domain model."""

from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle states for an order."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class GatewaySignal(str, Enum):
    """Normalized outcome reported by the gateway, via callback or poll."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    STILL_PENDING = "STILL_PENDING"


class SignalSource(str, Enum):
    """Channel a gateway signal arrived through."""

    CALLBACK = "callback"
    POLL = "poll"
