from checkout.models.enums import GatewaySignal, OrderStatus, SignalSource
from checkout.models.order import AuditLog, Base, Order, new_order_id

__all__ = [
    "Base",
    "Order",
    "AuditLog",
    "new_order_id",
    "OrderStatus",
    "GatewaySignal",
    "SignalSource",
]
