"""
Gateway server-to-server callback handling.

The gateway posts ``{"response": <base64 JSON>}`` with an ``X-VERIFY``
header. The decoded body looks like::

    {
      "success": true,
      "code": "PAYMENT_SUCCESS",
      "data": {"merchantOrderId": "M-...", "transactionId": "T..."}
    }

Only the order id, success flag, code and transaction id are trusted from
it; the callback never carries enough to create an order on its own.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from checkout.engine.errors import InvalidCallback, UnknownOrder
from checkout.engine.reconciler import Reconciler
from checkout.engine.state_machine import normalize_callback
from checkout.models.enums import SignalSource

logger = logging.getLogger("checkout.callbacks")

RawPayload = Union[bytes, str, dict]


@dataclass
class GatewayCallback:
    """Decoded gateway notification."""

    order_id: str
    success: bool
    code: Optional[str]
    transaction_id: Optional[str]


def _load_json(raw: Union[bytes, str], what: str) -> Any:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise InvalidCallback(f"{what} is not valid JSON: {e}") from e


def decode_callback(raw_payload: RawPayload) -> GatewayCallback:
    """
    Unwrap the callback envelope.

    Raises:
        InvalidCallback: Envelope, base64 or inner JSON is malformed, or the
            order id is missing.
    """
    envelope = raw_payload if isinstance(raw_payload, dict) else _load_json(raw_payload, "Callback body")
    if not isinstance(envelope, dict) or not isinstance(envelope.get("response"), str):
        raise InvalidCallback("Callback body has no 'response' field")

    try:
        decoded = base64.b64decode(envelope["response"], validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidCallback(f"Callback response is not valid base64: {e}") from e

    body = _load_json(decoded, "Decoded callback response")
    if not isinstance(body, dict) or not isinstance(body.get("data"), dict):
        raise InvalidCallback("Decoded callback has no 'data' object")

    data = body["data"]
    order_id = data.get("merchantOrderId")
    if not order_id or not isinstance(order_id, str):
        raise InvalidCallback("Decoded callback has no merchantOrderId")

    code = body.get("code")
    transaction_id = data.get("transactionId")
    if code is not None and not isinstance(code, str):
        raise InvalidCallback(f"Callback code must be a string, got {type(code).__name__}")
    if transaction_id is not None and not isinstance(transaction_id, str):
        raise InvalidCallback(f"Callback transactionId must be a string, got {type(transaction_id).__name__}")

    return GatewayCallback(
        order_id=order_id,
        success=body.get("success") is True,
        code=code,
        transaction_id=transaction_id,
    )


class CallbackReceiver:
    """Validates gateway callbacks and routes them through the reconciler."""

    def __init__(self, reconciler: Reconciler):
        self._reconciler = reconciler

    async def handle_callback(self, raw_payload: RawPayload, signature_header: Optional[str]) -> None:
        """
        Process one gateway callback.

        Only a rejected callback raises. Once the payload is accepted, errors
        from reconciliation are logged and swallowed so the transport can
        acknowledge: the gateway cannot fix them by retrying.

        Raises:
            InvalidCallback: Missing signature header or malformed payload.
        """
        if not signature_header:
            raise InvalidCallback("Missing X-VERIFY header")

        callback = decode_callback(raw_payload)
        signal = normalize_callback(callback.success, callback.code)
        logger.info(
            "Callback received for order %s: success=%s code=%s",
            callback.order_id,
            callback.success,
            callback.code,
        )

        try:
            await self._reconciler.reconcile(
                callback.order_id,
                signal,
                reported_code=callback.code,
                reported_transaction_id=callback.transaction_id,
                source=SignalSource.CALLBACK,
            )
        except UnknownOrder:
            logger.warning("Callback for unknown order %s dropped", callback.order_id)
        except Exception:
            logger.exception("Callback for order %s could not be reconciled", callback.order_id)
