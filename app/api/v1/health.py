"""Health check endpoint with a fresh database connectivity check."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import get_image_store
from app.core.config import settings
from app.core.database import DatabaseMonitor, get_db_monitor
from app.schemas.health import HealthResponse
from app.services.image_store import ImageStore

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    monitor: Annotated[DatabaseMonitor, Depends(get_db_monitor)],
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    connected = monitor.check()
    state = monitor.state
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=state.status,
        connected=connected,
        consecutive_failures=state.consecutive_failures,
        last_checked_at=state.last_checked_at,
        image_storage=store.name,
        timestamp=datetime.now(UTC),
    )
