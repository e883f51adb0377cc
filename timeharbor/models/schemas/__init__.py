"""Pydantic schema definitions."""

from timeharbor.models.schemas.clock_event import (
    ClockEventDataResponse,
    ClockEventListResponse,
    ClockEventRead,
    ClockEventTeamRequest,
    ClockEventTicketRead,
    ClockEventTicketRequest,
)
from timeharbor.models.schemas.health import HealthResponse, StoreHealth
from timeharbor.models.schemas.team import (
    TeamCreateRequest,
    TeamDataResponse,
    TeamJoinRequest,
    TeamListResponse,
    TeamNameAvailability,
    TeamRead,
)
from timeharbor.models.schemas.ticket import (
    TicketCreateRequest,
    TicketDataResponse,
    TicketListResponse,
    TicketRead,
    TicketStatusBatchRequest,
    TicketStatusBatchResponse,
    TicketTimerRequest,
)
from timeharbor.models.schemas.timer import (
    ReconciliationRead,
    ReconciliationResponse,
    TimerStateRead,
    TimerStateResponse,
    TimerTeamRequest,
    TimerTicketCreateRequest,
    TimerTicketRequest,
)

__all__ = [
    "ClockEventDataResponse",
    "ClockEventListResponse",
    "ClockEventRead",
    "ClockEventTeamRequest",
    "ClockEventTicketRead",
    "ClockEventTicketRequest",
    "HealthResponse",
    "ReconciliationRead",
    "ReconciliationResponse",
    "StoreHealth",
    "TeamCreateRequest",
    "TeamDataResponse",
    "TeamJoinRequest",
    "TeamListResponse",
    "TeamNameAvailability",
    "TeamRead",
    "TicketCreateRequest",
    "TicketDataResponse",
    "TicketListResponse",
    "TicketRead",
    "TicketStatusBatchRequest",
    "TicketStatusBatchResponse",
    "TicketTimerRequest",
    "TimerStateRead",
    "TimerStateResponse",
    "TimerTeamRequest",
    "TimerTicketCreateRequest",
    "TimerTicketRequest",
]
