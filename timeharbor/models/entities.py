from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

TicketStatus = Literal["open", "reviewed", "closed", "deleted"]


@dataclass(slots=True)
class TeamEntity:
    id: int
    name: str
    code: str
    leader_id: str
    created_at: datetime
    member_ids: list[str] = field(default_factory=list)
    admin_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TicketEntity:
    id: int
    team_id: int
    title: str
    reference: str
    accumulated_time: int
    start_timestamp: int | None
    started_by: str | None
    status: TicketStatus
    created_by: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_running(self) -> bool:
        return self.start_timestamp is not None


@dataclass(slots=True)
class ClockEventTicketEntity:
    ticket_id: int
    accumulated_time: int
    start_timestamp: int | None

    @property
    def is_running(self) -> bool:
        return self.start_timestamp is not None


@dataclass(slots=True)
class ClockEventEntity:
    id: int
    user_id: str
    team_id: int
    start_timestamp: int
    accumulated_time: int
    end_time: int | None
    tickets: list[ClockEventTicketEntity] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def find_entry(self, ticket_id: int) -> ClockEventTicketEntity | None:
        for entry in self.tickets:
            if entry.ticket_id == ticket_id:
                return entry
        return None
