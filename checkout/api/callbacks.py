"""
Gateway callback endpoint.

POST /callback: Server-to-server payment result from the gateway.

Answers 200 whenever the payload was accepted for processing, even if the
order turned out to be unknown, so the gateway does not retry-storm on
problems it cannot fix. Only a rejected payload gets a 400.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Header, HTTPException, Request

from checkout.api.dependencies import ServicesDep
from checkout.engine.errors import InvalidCallback

logger = logging.getLogger("checkout.api.callbacks")

router = APIRouter(tags=["callbacks"])


@router.post("/callback")
async def gateway_callback(
    request: Request,
    services: ServicesDep,
    x_verify: Annotated[Optional[str], Header()] = None,
):
    raw = await request.body()
    try:
        await services.callbacks.handle_callback(raw, x_verify)
    except InvalidCallback as e:
        logger.warning("Rejected gateway callback: %s", e)
        raise HTTPException(status_code=400, detail={"success": False, "message": str(e)})
    return {"success": True}
