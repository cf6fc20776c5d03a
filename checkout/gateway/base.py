"""
Abstract payment gateway interface.

The engine treats the gateway as an opaque remote service with two
operations: start a payment, and later ask what happened to it. Gateway
protocol details (request signing, checksum headers, settlement) belong to
concrete adapters.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class InitiateRequest:
    """Request to start a hosted payment for an order."""

    order_id: str
    amount: int  # Amount in smallest currency unit
    currency: str
    redirect_url: str  # Where the shopper lands after paying
    callback_url: str  # Where the gateway posts its server-to-server result
    user_id: str
    phone: Optional[str] = None


@dataclass
class InitiateResponse:
    """Gateway reply to a successful initiation."""

    handle: str  # Gateway-side identifier, used later for status queries
    redirect_url: str  # Hosted payment page for the shopper


@dataclass
class GatewayStatus:
    """Gateway-side view of a payment, as returned by a status query."""

    state: str  # e.g. "PENDING", "COMPLETED", "FAILED"
    code: str  # e.g. "PAYMENT_SUCCESS", "PAYMENT_PENDING", "PAYMENT_ERROR"
    transaction_id: Optional[str] = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway identifier (e.g. 'mock_gateway')."""
        ...

    @abstractmethod
    async def initiate(self, request: InitiateRequest) -> InitiateResponse:
        """
        Start a payment and return the gateway handle.

        Raises:
            GatewayError: On transient failure (will be retried).
            PermanentError: On non-retriable failure.
        """
        ...

    @abstractmethod
    async def query_status(self, handle: str) -> GatewayStatus:
        """
        Report the gateway-side state of a previously initiated payment.

        Raises:
            GatewayError: When the gateway cannot answer.
        """
        ...
