"""
Mock payment gateway for local runs and tests.

Simulates hosted-checkout gateway behavior:
  - Configurable latency (default 100ms)
  - Configurable failure rate (default 5%)
  - Rate limiting simulation (429s)
  - An in-memory registry of initiated payments that can be settled,
    producing the same signed callback envelope a real gateway would post

Settling is driven explicitly through ``settle()``; the mock never resolves
a payment on its own.
"""

import asyncio
import base64
import json
import random
import uuid
from dataclasses import dataclass, field
from typing import Optional

from checkout.config import settings
from checkout.gateway.errors import GatewayError, PermanentError, RateLimitError
from checkout.gateway.base import GatewayStatus, InitiateRequest, InitiateResponse, PaymentGateway

HOSTED_PAGE_URL = "https://mock-gateway.local/pay"


@dataclass
class _MockPayment:
    request: InitiateRequest
    state: str = "PENDING"
    code: str = "PAYMENT_PENDING"
    transaction_id: Optional[str] = None
    success: bool = False
    history: list[str] = field(default_factory=list)


class MockPaymentGateway(PaymentGateway):
    """
    In-memory gateway that mimics a hosted checkout flow.

    Random failures only affect the network-facing calls (``initiate`` and
    ``query_status``); ``settle`` is the simulated shopper outcome and never
    fails.

    Payments are kept in memory for the life of the instance and never
    evicted.
    """

    def __init__(
        self,
        failure_rate: Optional[float] = None,
        latency_ms: Optional[int] = None,
    ):
        self._failure_rate = failure_rate if failure_rate is not None else settings.mock_failure_rate
        self._latency_ms = latency_ms if latency_ms is not None else settings.mock_latency_ms
        self._payments: dict[str, _MockPayment] = {}

    @property
    def name(self) -> str:
        return "mock_gateway"

    async def _simulate_network(self, allow_permanent: bool) -> None:
        if self._latency_ms > 0:
            jitter = random.uniform(0.5, 1.5)
            await asyncio.sleep(self._latency_ms * jitter / 1000)

        roll = random.random()

        if roll < self._failure_rate * 0.3:
            raise RateLimitError(
                message="Mock rate limit: too many requests",
                retry_after=1.0,
            )

        if roll < self._failure_rate * 0.6 or (roll < self._failure_rate and not allow_permanent):
            raise GatewayError(
                message="Mock transient error: gateway temporarily unavailable",
                status_code=503,
                retriable=True,
            )

        if roll < self._failure_rate:
            raise PermanentError(
                message="Mock permanent error: payment request rejected",
                status_code=400,
            )

    async def initiate(self, request: InitiateRequest) -> InitiateResponse:
        await self._simulate_network(allow_permanent=True)

        handle = f"MT{uuid.uuid4().hex[:18].upper()}"
        self._payments[handle] = _MockPayment(request=request, history=["initiated"])

        return InitiateResponse(
            handle=handle,
            redirect_url=f"{HOSTED_PAGE_URL}/{handle}",
        )

    async def query_status(self, handle: str) -> GatewayStatus:
        await self._simulate_network(allow_permanent=False)

        payment = self._payments.get(handle)
        if payment is None:
            return GatewayStatus(state="FAILED", code="TRANSACTION_NOT_FOUND")

        payment.history.append("queried")
        return GatewayStatus(
            state=payment.state,
            code=payment.code,
            transaction_id=payment.transaction_id,
        )

    def settle(self, handle: str, success: bool = True, code: Optional[str] = None) -> dict:
        """
        Resolve a pending payment as the shopper's outcome would.

        Returns the callback envelope the gateway would post to the
        payment's callback URL: ``{"response": <base64 JSON>}``.
        """
        payment = self._payments.get(handle)
        if payment is None:
            raise KeyError(f"Unknown mock payment handle: {handle}")

        if success:
            payment.state = "COMPLETED"
            payment.code = code or "PAYMENT_SUCCESS"
            payment.transaction_id = payment.transaction_id or f"T{uuid.uuid4().hex[:16].upper()}"
        else:
            payment.state = "FAILED"
            payment.code = code or "PAYMENT_ERROR"
        payment.success = success
        payment.history.append(f"settled:{payment.code}")

        return self.callback_envelope(handle)

    def callback_envelope(self, handle: str) -> dict:
        payment = self._payments[handle]
        body = {
            "success": payment.success,
            "code": payment.code,
            "message": f"Payment {payment.state.lower()}",
            "data": {
                "merchantOrderId": payment.request.order_id,
                "merchantTransactionId": handle,
                "transactionId": payment.transaction_id,
                "amount": payment.request.amount,
                "state": payment.state,
            },
        }
        encoded = base64.b64encode(json.dumps(body).encode("utf-8")).decode("ascii")
        return {"response": encoded}
