"""Liveness/readiness payload."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel


class HealthResponse(CamelModel):
    """Probe answer. `degraded` means the process is up but the database is not reachable."""

    status: Literal["ok", "degraded"] = Field(default="ok", description="Overall service status")
    service: str = Field(default="auth-service", description="Service name")
    environment: str = Field(description="APP_ENV of this instance (dev or prod)")
    database: Literal["connected", "disconnected"] = Field(description="Result of a SELECT 1 ping")
    timestamp: datetime = Field(description="Server time of the check (UTC)")
