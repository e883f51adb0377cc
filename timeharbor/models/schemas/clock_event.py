from pydantic import BaseModel

from timeharbor.models.schemas.ticket import NowMillis


class ClockEventTeamRequest(BaseModel):
    team_id: int
    now: NowMillis = None


class ClockEventTicketRequest(BaseModel):
    now: NowMillis = None


class ClockEventTicketRead(BaseModel):
    ticket_id: int
    accumulated_time: int
    start_timestamp: int | None = None
    is_running: bool
    total_seconds: int


class ClockEventRead(BaseModel):
    id: int
    user_id: str
    team_id: int
    start_timestamp: int
    accumulated_time: int
    end_time: int | None = None
    is_open: bool
    total_seconds: int
    formatted_time: str
    tickets: list[ClockEventTicketRead]


class ClockEventDataResponse(BaseModel):
    data: ClockEventRead | None


class ClockEventListResponse(BaseModel):
    data: list[ClockEventRead]
