"""
Order endpoints.

POST /orders                   Create an order and start its payment.
GET  /orders/{id}              Stored order view (no gateway contact).
GET  /orders/{id}/status       Refresh a pending order from the gateway.
GET  /orders/{id}/trace        Order plus its full audit trail.
"""

from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from checkout.api.dependencies import ServicesDep
from checkout.audit.logger import parse_details
from checkout.engine import errors
from checkout.models.order import Order

router = APIRouter(prefix="/orders", tags=["orders"])


class LineItemIn(BaseModel):
    name: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    unit_price: int = Field(ge=0, description="Price per unit in minor currency units")


class ShippingInfoIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class CreateOrderRequest(BaseModel):
    amount: int = Field(description="Order total in minor currency units")
    line_items: list[LineItemIn]
    shipping_info: ShippingInfoIn
    user_id: str


class CreateOrderResponse(BaseModel):
    order_id: str
    redirect_url: str
    status: str


class OrderDetail(BaseModel):
    order_id: str
    user_id: str
    amount: int
    currency: Optional[str]
    line_items: list[dict[str, Any]]
    shipping_info: dict[str, Any]
    status: str
    gateway_handle: Optional[str]
    gateway_state_code: Optional[str]
    gateway_transaction_id: Optional[str]
    notified_at: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]


class AuditEntry(BaseModel):
    id: int
    action: str
    details: Optional[dict] = None
    timestamp: Optional[str]


class OrderTrace(BaseModel):
    order: OrderDetail
    audit_trail: list[AuditEntry]


def _order_to_detail(o: Order) -> OrderDetail:
    return OrderDetail(
        order_id=o.order_id,
        user_id=o.user_id,
        amount=o.amount,
        currency=o.currency,
        line_items=o.line_items or [],
        shipping_info=o.shipping_info or {},
        status=o.status,
        gateway_handle=o.gateway_handle,
        gateway_state_code=o.gateway_state_code,
        gateway_transaction_id=o.gateway_transaction_id,
        notified_at=o.notified_at.isoformat() if o.notified_at else None,
        created_at=o.created_at.isoformat() if o.created_at else None,
        updated_at=o.updated_at.isoformat() if o.updated_at else None,
    )


def _unavailable(e: errors.CheckoutError) -> HTTPException:
    return HTTPException(status_code=503, detail=str(e), headers={"Retry-After": "5"})


@router.post("", response_model=CreateOrderResponse, status_code=201)
async def create_order(body: CreateOrderRequest, services: ServicesDep):
    """
    Create a PENDING order and initiate its payment.

    When the gateway cannot be reached the order is still created; the 502
    response carries its ``order_id`` so the client can retry or poll.
    """
    try:
        checkout_session = await services.factory.create_order(
            amount=body.amount,
            line_items=[item.model_dump() for item in body.line_items],
            shipping_info=body.shipping_info.model_dump(exclude_none=True),
            user_id=body.user_id,
        )
    except errors.ValidationError as e:
        raise HTTPException(status_code=400, detail={"field": e.field, "message": e.message})
    except errors.GatewayUnavailable as e:
        raise HTTPException(status_code=502, detail={"message": str(e), "order_id": e.order_id})
    except errors.StoreUnavailable as e:
        raise _unavailable(e)

    return CreateOrderResponse(
        order_id=checkout_session.order_id,
        redirect_url=checkout_session.redirect_url,
        status=checkout_session.order.status,
    )


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(order_id: str, services: ServicesDep):
    """Stored order, exactly as last reconciled."""
    try:
        order = await services.store.get(order_id)
    except errors.StoreUnavailable as e:
        raise _unavailable(e)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")
    return _order_to_detail(order)


@router.get("/{order_id}/status", response_model=OrderDetail)
async def get_order_status(order_id: str, services: ServicesDep):
    """
    Payment status for the shopper's return page.

    Pending orders are re-queried at the gateway and reconciled before
    answering; terminal orders are answered from the store.
    """
    try:
        order = await services.status_query.query_status(order_id)
    except errors.UnknownOrder as e:
        raise HTTPException(status_code=404, detail=str(e))
    except errors.MissingHandle as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (errors.GatewayUnavailable, errors.StoreUnavailable) as e:
        raise _unavailable(e)
    return _order_to_detail(order)


@router.get("/{order_id}/trace", response_model=OrderTrace)
async def get_order_trace(order_id: str, services: ServicesDep):
    """
    Full audit trail for an order.

    Lists every signal the engine saw for the order, including duplicates
    it ignored, in arrival order.
    """
    try:
        order = await services.store.get(order_id)
        if not order:
            raise HTTPException(status_code=404, detail=f"Order not found: {order_id}")
        logs = await services.store.list_events(order_id)
    except errors.StoreUnavailable as e:
        raise _unavailable(e)

    audit_trail = [
        AuditEntry(
            id=log.id,
            action=log.action,
            details=parse_details(log.details),
            timestamp=log.timestamp.isoformat() if log.timestamp else None,
        )
        for log in logs
    ]
    return OrderTrace(order=_order_to_detail(order), audit_trail=audit_trail)
