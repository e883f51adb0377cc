from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

TicketStatus = Literal["open", "reviewed", "closed", "deleted"]
NowMillis = Annotated[int, Field(ge=0)] | None


class TicketCreateRequest(BaseModel):
    team_id: int
    title: str
    reference: str = ""
    initial_accumulated_seconds: Annotated[int, Field(ge=0)] = 0


class TicketTimerRequest(BaseModel):
    now: NowMillis = None


class TicketStatusBatchRequest(BaseModel):
    team_id: int
    ticket_ids: Annotated[list[int], Field(min_length=1)]
    status: TicketStatus


class TicketRead(BaseModel):
    id: int
    team_id: int
    title: str
    reference: str
    status: TicketStatus
    accumulated_time: int
    start_timestamp: int | None = None
    started_by: str | None = None
    is_running: bool
    total_seconds: int
    formatted_time: str
    created_by: str
    created_at: datetime
    updated_at: datetime


class TicketDataResponse(BaseModel):
    data: TicketRead


class TicketListResponse(BaseModel):
    data: list[TicketRead]


class TicketStatusBatchResponse(BaseModel):
    updated: int
