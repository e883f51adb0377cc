from pydantic import BaseModel

from timeharbor.models.schemas.clock_event import ClockEventRead
from timeharbor.models.schemas.ticket import NowMillis, TicketCreateRequest, TicketRead


class TimerTicketRequest(BaseModel):
    team_id: int
    ticket_id: int
    now: NowMillis = None


class TimerTeamRequest(BaseModel):
    team_id: int
    now: NowMillis = None


class TimerTicketCreateRequest(TicketCreateRequest):
    now: NowMillis = None


class ReconciliationRead(BaseModel):
    steps: list[str]
    active_ticket_id: int | None = None
    clock_event_id: int | None = None
    ticket: TicketRead | None = None


class ReconciliationResponse(BaseModel):
    data: ReconciliationRead


class TimerStateRead(BaseModel):
    team_id: int
    clocked_in: bool
    clock_event: ClockEventRead | None = None
    active_ticket: TicketRead | None = None
    session_seconds: int
    session_formatted: str


class TimerStateResponse(BaseModel):
    data: TimerStateRead
