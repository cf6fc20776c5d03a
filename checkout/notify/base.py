"""
Order confirmation notifications.

The engine calls ``send_confirmation`` at most once per order, after it has
claimed the order's ``notified_at`` field. Notifiers make no retry promise:
a raised ``NotificationError`` is logged by the caller and left at that.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from checkout.models.order import Order


class NotificationError(Exception):
    """The confirmation could not be delivered."""


@dataclass
class ConfirmationMessage:
    recipient: str
    subject: str
    body: str


def _format_amount(minor_units: int, currency: str) -> str:
    return f"{currency} {minor_units / 100:,.2f}"


def build_confirmation(order: Order) -> ConfirmationMessage:
    """Render the confirmation message for a completed order."""
    recipient = order.contact_email
    if not recipient:
        raise NotificationError(f"Order {order.order_id} has no contact email")

    currency = order.currency or "INR"
    shipping = order.shipping_info or {}
    lines = [
        f"Hi {shipping.get('name') or 'there'},",
        "",
        f"Thanks for your order {order.order_id}. Your payment was received.",
        "",
    ]
    for item in order.line_items or []:
        quantity = item.get("quantity", 1)
        unit_price = item.get("unit_price", 0)
        lines.append(
            f"  {quantity} x {item.get('name', 'item')}  {_format_amount(quantity * unit_price, currency)}"
        )
    lines += [
        "",
        f"Total paid: {_format_amount(order.amount, currency)}",
        f"Payment reference: {order.gateway_transaction_id}",
    ]

    return ConfirmationMessage(
        recipient=recipient,
        subject=f"Order {order.order_id} confirmed",
        body="\n".join(lines),
    )


class Notifier(ABC):
    """Abstract base class for confirmation channels."""

    @abstractmethod
    async def send_confirmation(self, order: Order) -> None:
        """
        Deliver the order confirmation.

        Raises:
            NotificationError: When delivery failed.
        """
        ...
