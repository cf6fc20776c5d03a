"""
SQLAlchemy-backed order store.

Conditional writes are single ``UPDATE ... WHERE`` statements whose guard
carries the expected state, so the database linearizes concurrent writers
for the same order: whoever's guard still holds gets ``rowcount == 1``, every
other writer gets 0 and has to reload. No row is ever locked across awaits.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, Mapping, Optional

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkout.audit.logger import log_event
from checkout.engine.errors import StoreUnavailable
from checkout.models.enums import OrderStatus
from checkout.models.order import AuditLog, Order
from checkout.store.base import WRITE_ONCE_FIELDS, OrderStore

logger = logging.getLogger("checkout.store")

_ORDER_COLUMNS = frozenset(Order.__table__.c.keys())


def _coerce(values: Mapping[str, Any]) -> dict[str, Any]:
    coerced = {}
    for name, value in values.items():
        if name not in _ORDER_COLUMNS:
            raise ValueError(f"Unknown order field: {name}")
        coerced[name] = value.value if isinstance(value, Enum) else value
    return coerced


class SqlOrderStore(OrderStore):
    """Order store over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except OperationalError as e:
            logger.error("Order store operation failed: %s", e)
            raise StoreUnavailable(f"Order store unavailable: {e.orig or e}") from e
        except IntegrityError as e:
            logger.error("Order store rejected a write: %s", e)
            raise StoreUnavailable(f"Order store rejected write: {e.orig or e}") from e

    async def get(self, order_id: str) -> Optional[Order]:
        async with self._session() as session:
            return await session.get(Order, order_id)

    async def create(self, order: Order) -> Order:
        async with self._session() as session:
            session.add(order)
            await session.commit()
            return order

    async def conditional_update(
        self,
        order_id: str,
        expected_status: OrderStatus,
        values: Mapping[str, Any],
    ) -> Optional[Order]:
        changes = _coerce(values)
        guards = [Order.order_id == order_id, Order.status == expected_status.value]
        guards.extend(getattr(Order, name).is_(None) for name in changes if name in WRITE_ONCE_FIELDS)

        stmt = (
            update(Order)
            .where(*guards)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )

        async with self._session() as session:
            result = await session.execute(stmt)
            if result.rowcount != 1:
                await session.rollback()
                logger.debug(
                    "Conditional update on %s lost: expected status %s", order_id, expected_status.value
                )
                return None
            await session.commit()
            return await session.get(Order, order_id)

    async def set_once(self, order_id: str, field: str, value: Any) -> bool:
        if field not in WRITE_ONCE_FIELDS:
            raise ValueError(f"{field} is not a write-once field")

        column = getattr(Order, field)
        stmt = (
            update(Order)
            .where(Order.order_id == order_id, column.is_(None))
            .values({field: value})
            .execution_options(synchronize_session=False)
        )

        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return result.rowcount == 1

    async def record_event(
        self,
        order_id: Optional[str],
        action: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        async with self._session() as session:
            await log_event(session, action, order_id=order_id, details=details)
            await session.commit()

    async def list_events(self, order_id: str) -> list[AuditLog]:
        async with self._session() as session:
            result = await session.execute(
                select(AuditLog)
                .where(AuditLog.order_id == order_id)
                .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
            )
            return list(result.scalars().all())

    async def ping(self) -> None:
        async with self._session() as session:
            await session.execute(text("SELECT 1"))
