from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from timeharbor.api.dependencies import CurrentUser, get_timer_service
from timeharbor.models.schemas.timer import (
    ReconciliationResponse,
    TimerStateResponse,
    TimerTeamRequest,
    TimerTicketCreateRequest,
    TimerTicketRequest,
)
from timeharbor.services.timer_service import TimerService

router = APIRouter(prefix="/timer")


@router.get("/state", response_model=TimerStateResponse)
def get_timer_state(
    user_id: CurrentUser,
    timer_service: Annotated[TimerService, Depends(get_timer_service)],
    team_id: Annotated[int, Query()],
) -> TimerStateResponse:
    return TimerStateResponse(data=timer_service.get_state(user_id, team_id))


@router.post("/activate", response_model=ReconciliationResponse)
def activate_ticket(
    payload: TimerTicketRequest,
    user_id: CurrentUser,
    timer_service: Annotated[TimerService, Depends(get_timer_service)],
) -> ReconciliationResponse:
    result = timer_service.activate_ticket(
        user_id,
        payload.team_id,
        payload.ticket_id,
        now=payload.now,
    )
    return ReconciliationResponse(data=result)


@router.post("/deactivate", response_model=ReconciliationResponse)
def deactivate_ticket(
    payload: TimerTicketRequest,
    user_id: CurrentUser,
    timer_service: Annotated[TimerService, Depends(get_timer_service)],
) -> ReconciliationResponse:
    result = timer_service.deactivate_ticket(
        user_id,
        payload.team_id,
        payload.ticket_id,
        now=payload.now,
    )
    return ReconciliationResponse(data=result)


@router.post("/tickets", response_model=ReconciliationResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: TimerTicketCreateRequest,
    user_id: CurrentUser,
    timer_service: Annotated[TimerService, Depends(get_timer_service)],
) -> ReconciliationResponse:
    result = timer_service.create_ticket(user_id, payload, now=payload.now)
    return ReconciliationResponse(data=result)


@router.post("/clock-in", response_model=ReconciliationResponse)
def clock_in(
    payload: TimerTeamRequest,
    user_id: CurrentUser,
    timer_service: Annotated[TimerService, Depends(get_timer_service)],
) -> ReconciliationResponse:
    result = timer_service.clock_in(user_id, payload.team_id, now=payload.now)
    return ReconciliationResponse(data=result)


@router.post("/clock-out", response_model=ReconciliationResponse)
def clock_out(
    payload: TimerTeamRequest,
    user_id: CurrentUser,
    timer_service: Annotated[TimerService, Depends(get_timer_service)],
) -> ReconciliationResponse:
    result = timer_service.clock_out(user_id, payload.team_id, now=payload.now)
    return ReconciliationResponse(data=result)
