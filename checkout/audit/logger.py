"""
Immutable audit trail for order reconciliation.

Every signal the engine receives gets an append-only audit log entry with:
  - Order ID (which order the signal referenced)
  - Action (what happened: applied, ignored, notified...)
  - Details (source channel, gateway code, transaction id, errors)
  - Timestamp (UTC)

Ignored duplicates are recorded too, so a trace shows every callback and
poll that touched an order, not only the one that won.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from checkout.models.order import AuditLog

logger = logging.getLogger("checkout.audit")


async def log_event(
    session: AsyncSession,
    action: str,
    order_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Create an immutable audit log entry.

    Args:
        session: Database session. The caller commits.
        action: What happened (e.g. "order_created", "signal_ignored", "notification_sent").
        order_id: The order this event relates to.
        details: Arbitrary context (serialized to JSON).

    Returns:
        The created AuditLog record.
    """
    entry = AuditLog(
        order_id=order_id,
        action=action,
        details=json.dumps(details, default=str) if details else None,
        timestamp=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | order=%s action=%s | %s",
        order_id or "-",
        action,
        json.dumps(details, default=str)[:200] if details else "",
    )
    return entry


def parse_details(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {"raw": raw}
