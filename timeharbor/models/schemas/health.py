from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field


class StoreHealth(BaseModel):
    connected: bool
    schema_revision: str | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    service: str = "timeharbor-backend"
    environment: str
    store: StoreHealth
    checked_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
