"""Errors raised by payment gateway adapters."""

from typing import Optional


class GatewayError(Exception):
    """
    The gateway did not give a usable answer.

    ``retriable`` tells the caller whether asking again can help: network
    resets and 5xx answers can, a rejected request cannot.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, retriable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.retriable = retriable


class RateLimitError(GatewayError):
    """The gateway throttled us (HTTP 429), optionally saying how long to back off."""

    def __init__(self, message: str = "Rate limited", retry_after: Optional[float] = None):
        super().__init__(message, status_code=429, retriable=True)
        self.retry_after = retry_after


class PermanentError(GatewayError):
    """The gateway rejected the request outright (bad merchant, invalid amount, ...)."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, status_code=status_code, retriable=False)
