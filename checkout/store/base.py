"""
Abstract order store interface.

The engine only needs a keyed document store with three write primitives:
plain create, a compare-and-swap on ``status``, and set-once fields. Any
backend that offers those (a SQL row update with a WHERE guard, a document
store precondition, a per-key mutex) can implement it.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from checkout.models.enums import OrderStatus
from checkout.models.order import AuditLog, Order

# Columns that may be written once and never overwritten.
WRITE_ONCE_FIELDS = frozenset({"gateway_handle", "gateway_transaction_id", "notified_at"})


class OrderStore(ABC):
    """Abstract base class for order persistence."""

    @abstractmethod
    async def get(self, order_id: str) -> Optional[Order]:
        """Load an order, or None when it does not exist."""
        ...

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """Persist a brand new order."""
        ...

    @abstractmethod
    async def conditional_update(
        self,
        order_id: str,
        expected_status: OrderStatus,
        values: Mapping[str, Any],
    ) -> Optional[Order]:
        """
        Apply ``values`` only if the stored status still equals ``expected_status``.

        Write-once fields present in ``values`` are additionally required to
        be unset. Returns the updated order, or None when the guard did not
        hold (a conflicting writer got there first).
        """
        ...

    @abstractmethod
    async def set_once(self, order_id: str, field: str, value: Any) -> bool:
        """Set a write-once field if it is still unset. True if this call set it."""
        ...

    async def claim_once(self, order_id: str, field: str) -> bool:
        """Claim a write-once timestamp field. Exactly one caller ever gets True."""
        return await self.set_once(order_id, field, datetime.now(timezone.utc))

    @abstractmethod
    async def record_event(
        self,
        order_id: Optional[str],
        action: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        """Append an audit trail entry."""
        ...

    @abstractmethod
    async def list_events(self, order_id: str) -> list[AuditLog]:
        """Audit entries for an order, oldest first."""
        ...

    @abstractmethod
    async def ping(self) -> None:
        """Round-trip to the backend. Raises StoreUnavailable when it is down."""
        ...
