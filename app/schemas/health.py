"""Pydantic schemas for health check responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    database: Literal["unknown", "connected", "disconnected"] = Field(
        description="Database connectivity status after a fresh check",
    )
    connected: bool = Field(description="True when the database answered the check")
    consecutive_failures: int = Field(
        default=0,
        ge=0,
        description="Failed checks since the database was last reachable",
    )
    last_checked_at: datetime | None = None
    image_storage: str = Field(description="Active image backend (local or database)")
    timestamp: datetime
