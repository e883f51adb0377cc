from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from timeharbor.api.dependencies import CurrentUser, get_ticket_service
from timeharbor.models.entities import TicketStatus
from timeharbor.models.schemas.ticket import (
    TicketCreateRequest,
    TicketDataResponse,
    TicketListResponse,
    TicketStatusBatchRequest,
    TicketStatusBatchResponse,
    TicketTimerRequest,
)
from timeharbor.services.ticket_service import TicketService

router = APIRouter(prefix="/tickets")


@router.get("", response_model=TicketListResponse)
def list_tickets(
    user_id: CurrentUser,
    ticket_service: Annotated[TicketService, Depends(get_ticket_service)],
    team_id: Annotated[int, Query()],
    status: Annotated[TicketStatus | None, Query()] = None,
    mine: Annotated[bool, Query()] = False,
) -> TicketListResponse:
    return TicketListResponse(
        data=ticket_service.list_tickets(user_id, team_id=team_id, status=status, mine=mine)
    )


@router.post("", response_model=TicketDataResponse, status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: TicketCreateRequest,
    user_id: CurrentUser,
    ticket_service: Annotated[TicketService, Depends(get_ticket_service)],
) -> TicketDataResponse:
    return TicketDataResponse(data=ticket_service.create_ticket(user_id, payload))


@router.patch("/status", response_model=TicketStatusBatchResponse)
def batch_update_ticket_status(
    payload: TicketStatusBatchRequest,
    user_id: CurrentUser,
    ticket_service: Annotated[TicketService, Depends(get_ticket_service)],
) -> TicketStatusBatchResponse:
    return ticket_service.batch_update_status(user_id, payload)


@router.get("/{ticket_id}", response_model=TicketDataResponse)
def get_ticket(
    ticket_id: int,
    user_id: CurrentUser,
    ticket_service: Annotated[TicketService, Depends(get_ticket_service)],
) -> TicketDataResponse:
    return TicketDataResponse(data=ticket_service.get_ticket(user_id, ticket_id))


@router.post("/{ticket_id}/start", response_model=TicketDataResponse)
def start_ticket_timer(
    ticket_id: int,
    payload: TicketTimerRequest,
    user_id: CurrentUser,
    ticket_service: Annotated[TicketService, Depends(get_ticket_service)],
) -> TicketDataResponse:
    ticket = ticket_service.start_timer(user_id, ticket_id, now=payload.now)
    return TicketDataResponse(data=ticket)


@router.post("/{ticket_id}/stop", response_model=TicketDataResponse)
def stop_ticket_timer(
    ticket_id: int,
    payload: TicketTimerRequest,
    user_id: CurrentUser,
    ticket_service: Annotated[TicketService, Depends(get_ticket_service)],
) -> TicketDataResponse:
    ticket = ticket_service.stop_timer(user_id, ticket_id, now=payload.now)
    return TicketDataResponse(data=ticket)
