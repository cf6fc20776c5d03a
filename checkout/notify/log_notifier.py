"""Notifier that writes confirmations to the application log."""

import logging

from checkout.models.order import Order
from checkout.notify.base import Notifier, build_confirmation

logger = logging.getLogger("checkout.notify")


class LoggingNotifier(Notifier):
    """Default channel for local runs: renders the message and logs it."""

    async def send_confirmation(self, order: Order) -> None:
        message = build_confirmation(order)
        logger.info(
            "Confirmation to %s: %s\n%s",
            message.recipient,
            message.subject,
            message.body,
        )
