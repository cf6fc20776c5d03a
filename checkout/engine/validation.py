"""
Order input checks, run before anything is persisted or sent to the gateway.

In order:
  1. Amount is a positive integer (smallest currency unit)
  2. Line items are present, each with a name and a positive quantity
  3. Shipping info is present
  4. User id is present

The first failing check raises ValidationError naming the offending field.
"""

from collections.abc import Mapping
from typing import Any

from checkout.engine.errors import ValidationError


def _check_amount(amount: Any) -> None:
    if amount is None:
        raise ValidationError("amount", "is required")
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("amount", f"must be an integer number of minor units, got {amount!r}")
    if amount <= 0:
        raise ValidationError("amount", f"must be positive, got {amount}")


def _check_line_items(line_items: Any) -> None:
    if not line_items:
        raise ValidationError("line_items", "at least one line item is required")
    if isinstance(line_items, (str, bytes, Mapping)):
        raise ValidationError("line_items", "must be a list of items")
    for index, item in enumerate(line_items):
        if not isinstance(item, Mapping) or not item.get("name"):
            raise ValidationError(f"line_items[{index}]", "each item needs a name")
        quantity = item.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"line_items[{index}].quantity", f"must be a positive integer, got {quantity!r}")


def validate_order_input(
    amount: Any,
    line_items: Any,
    shipping_info: Any,
    user_id: Any,
) -> None:
    """
    Check caller input for a new order.

    Raises:
        ValidationError: On the first missing or malformed input.
    """
    _check_amount(amount)
    _check_line_items(line_items)

    if not shipping_info or not isinstance(shipping_info, Mapping):
        raise ValidationError("shipping_info", "is required")

    if not user_id:
        raise ValidationError("user_id", "is required")
