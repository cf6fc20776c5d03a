"""SQLAlchemy models for the checkout service."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, relationship

from checkout.models.enums import OrderStatus


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_order_id() -> str:
    return f"M-{uuid.uuid4().hex[:20]}"


class Order(Base):
    """
    A single purchase attempt, tracked from creation to payment resolution.

    Only ``status`` moves, and only once: PENDING → COMPLETED | FAILED.
    ``gateway_handle``, ``gateway_transaction_id`` and ``notified_at`` are
    write-once columns; the store refuses to overwrite them once set.
    """

    __tablename__ = "orders"

    order_id = Column(String(40), primary_key=True, default=new_order_id)
    user_id = Column(String(100), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # smallest currency unit (paise)
    currency = Column(String(3), default="INR")
    line_items = Column(JSON, nullable=False)  # [{"name", "quantity", "unit_price"}]
    shipping_info = Column(JSON, nullable=False)

    gateway_handle = Column(String(100), nullable=True, unique=True)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    gateway_state_code = Column(String(50), nullable=True)
    gateway_transaction_id = Column(String(100), nullable=True, index=True)
    notified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    audit_logs = relationship("AuditLog", back_populates="order", lazy="raise")

    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def contact_email(self) -> str | None:
        return (self.shipping_info or {}).get("email")


class AuditLog(Base):
    """
    Immutable audit trail entry.

    Every signal the engine sees, applied or ignored, gets an entry. These
    are append-only and never modified.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(40), ForeignKey("orders.order_id"), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)

    order = relationship("Order", back_populates="audit_logs")
