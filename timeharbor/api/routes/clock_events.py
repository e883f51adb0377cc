from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from timeharbor.api.dependencies import CurrentUser, get_clock_event_service
from timeharbor.models.schemas.clock_event import (
    ClockEventDataResponse,
    ClockEventListResponse,
    ClockEventTeamRequest,
    ClockEventTicketRequest,
)
from timeharbor.services.clock_event_service import ClockEventService

router = APIRouter(prefix="/clock-events")


@router.get("", response_model=ClockEventListResponse)
def list_my_clock_events(
    user_id: CurrentUser,
    clock_event_service: Annotated[ClockEventService, Depends(get_clock_event_service)],
    team_id: Annotated[int | None, Query()] = None,
) -> ClockEventListResponse:
    return ClockEventListResponse(data=clock_event_service.list_mine(user_id, team_id=team_id))


@router.get("/active", response_model=ClockEventDataResponse)
def get_active_clock_event(
    user_id: CurrentUser,
    clock_event_service: Annotated[ClockEventService, Depends(get_clock_event_service)],
    team_id: Annotated[int, Query()],
) -> ClockEventDataResponse:
    return ClockEventDataResponse(data=clock_event_service.get_active(user_id, team_id))


@router.get("/team/{team_id}", response_model=ClockEventListResponse)
def list_team_clock_events(
    team_id: int,
    user_id: CurrentUser,
    clock_event_service: Annotated[ClockEventService, Depends(get_clock_event_service)],
) -> ClockEventListResponse:
    return ClockEventListResponse(data=clock_event_service.list_for_team(user_id, team_id))


@router.post("/start", response_model=ClockEventDataResponse, status_code=status.HTTP_201_CREATED)
def start_clock_event(
    payload: ClockEventTeamRequest,
    user_id: CurrentUser,
    clock_event_service: Annotated[ClockEventService, Depends(get_clock_event_service)],
) -> ClockEventDataResponse:
    clock_event = clock_event_service.start_clock_event(user_id, payload.team_id, now=payload.now)
    return ClockEventDataResponse(data=clock_event)


@router.post("/stop", response_model=ClockEventDataResponse)
def stop_clock_event(
    payload: ClockEventTeamRequest,
    user_id: CurrentUser,
    clock_event_service: Annotated[ClockEventService, Depends(get_clock_event_service)],
) -> ClockEventDataResponse:
    clock_event = clock_event_service.stop_clock_event(user_id, payload.team_id, now=payload.now)
    return ClockEventDataResponse(data=clock_event)


@router.post("/{clock_event_id}/tickets/{ticket_id}", response_model=ClockEventDataResponse)
def add_ticket_to_clock_event(
    clock_event_id: int,
    ticket_id: int,
    payload: ClockEventTicketRequest,
    user_id: CurrentUser,
    clock_event_service: Annotated[ClockEventService, Depends(get_clock_event_service)],
) -> ClockEventDataResponse:
    clock_event = clock_event_service.add_ticket(
        user_id,
        clock_event_id,
        ticket_id,
        now=payload.now,
    )
    return ClockEventDataResponse(data=clock_event)


@router.post("/{clock_event_id}/tickets/{ticket_id}/stop", response_model=ClockEventDataResponse)
def stop_ticket_in_clock_event(
    clock_event_id: int,
    ticket_id: int,
    payload: ClockEventTicketRequest,
    user_id: CurrentUser,
    clock_event_service: Annotated[ClockEventService, Depends(get_clock_event_service)],
) -> ClockEventDataResponse:
    clock_event = clock_event_service.stop_ticket(
        user_id,
        clock_event_id,
        ticket_id,
        now=payload.now,
    )
    return ClockEventDataResponse(data=clock_event)
