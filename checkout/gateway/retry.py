"""
Retry policy for calls to the payment gateway.

Only errors the gateway marks ``retriable`` are asked again. A throttled
call waits for the gateway's ``Retry-After`` hint when it gives one;
anything else backs off exponentially from ``base_delay``. Callers bound the
whole sequence with their own timeout.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from checkout.gateway.errors import GatewayError, RateLimitError

logger = logging.getLogger("checkout.gateway.retry")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 2
    base_delay: float = 0.5
    max_delay: float = 10.0

    def delay_before(self, retry: int, error: GatewayError) -> float:
        """Seconds to wait before retry number ``retry`` (1-based)."""
        if isinstance(error, RateLimitError) and error.retry_after is not None:
            return min(error.retry_after, self.max_delay)
        return min(self.base_delay * 2 ** (retry - 1), self.max_delay)


async def call_gateway(
    policy: RetryPolicy,
    operation: str,
    func: Callable[..., Awaitable[Any]],
    *args: Any,
) -> Any:
    """
    Run one gateway operation under ``policy``.

    Raises:
        GatewayError: The last error, once it is permanent or retries are spent.
    """
    retry = 0
    while True:
        try:
            return await func(*args)
        except GatewayError as e:
            if not e.retriable:
                logger.warning("Gateway %s rejected: %s", operation, e)
                raise
            if retry >= policy.max_retries:
                logger.error("Gateway %s still failing after %d attempts: %s", operation, retry + 1, e)
                raise

            retry += 1
            delay = policy.delay_before(retry, e)
            logger.warning(
                "Gateway %s failed (%s), retry %d/%d in %.2fs",
                operation,
                e,
                retry,
                policy.max_retries,
                delay,
            )
            await asyncio.sleep(delay)
