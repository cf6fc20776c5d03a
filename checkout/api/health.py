"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from checkout.api.dependencies import ServicesDep
from checkout.engine.errors import StoreUnavailable

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    gateway: str


@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServicesDep) -> HealthResponse:
    """Check API and order store health."""
    db_status = "healthy"
    try:
        await services.store.ping()
    except StoreUnavailable:
        db_status = "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        gateway=services.gateway.name,
    )
