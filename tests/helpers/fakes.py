from collections.abc import Iterator
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass
from datetime import UTC, datetime

from timeharbor.models.entities import (
    ClockEventEntity,
    ClockEventTicketEntity,
    TeamEntity,
    TicketEntity,
)
from timeharbor.services.clock_event_service import ClockEventService
from timeharbor.services.team_service import TeamService
from timeharbor.services.ticket_service import TicketService
from timeharbor.services.timer_service import TimerService


@contextmanager
def fake_connection(_: str | None = None) -> Iterator[object]:
    yield object()


class FakeTeamRepository:
    def __init__(self) -> None:
        self.store: dict[int, TeamEntity] = {}
        self._next_id = 1

    def seed(
        self,
        *,
        name: str,
        leader_id: str,
        members: list[str] | None = None,
        admins: list[str] | None = None,
        code: str | None = None,
    ) -> TeamEntity:
        team = self.create(name=name, code=code or f"CODE{self._next_id:04d}", leader_id=leader_id)
        stored = self.store[team.id]
        for member in members or []:
            if member not in stored.member_ids:
                stored.member_ids.append(member)
        for admin in admins or []:
            if admin not in stored.admin_ids:
                stored.admin_ids.append(admin)
        return deepcopy(stored)

    def create(
        self,
        *,
        name: str,
        code: str,
        leader_id: str,
        connection: object | None = None,
    ) -> TeamEntity:
        team = TeamEntity(
            id=self._next_id,
            name=name,
            code=code,
            leader_id=leader_id,
            created_at=datetime.now(UTC),
            member_ids=[leader_id],
            admin_ids=[leader_id],
        )
        self.store[team.id] = team
        self._next_id += 1
        return deepcopy(team)

    def get_by_id(self, team_id: int, connection: object | None = None) -> TeamEntity | None:
        team = self.store.get(team_id)
        return deepcopy(team) if team else None

    def get_by_code(self, code: str, connection: object | None = None) -> TeamEntity | None:
        for team in self.store.values():
            if team.code == code:
                return deepcopy(team)
        return None

    def get_by_name(self, name: str, connection: object | None = None) -> TeamEntity | None:
        for team in self.store.values():
            if team.name.lower() == name.lower():
                return deepcopy(team)
        return None

    def list_for_member(self, user_id: str, connection: object | None = None) -> list[TeamEntity]:
        return [deepcopy(team) for team in self.store.values() if user_id in team.member_ids]

    def add_member(
        self,
        *,
        team_id: int,
        user_id: str,
        is_admin: bool = False,
        connection: object | None = None,
    ) -> bool:
        team = self.store[team_id]
        if user_id in team.member_ids:
            return False
        team.member_ids.append(user_id)
        if is_admin:
            team.admin_ids.append(user_id)
        return True


class FakeTicketRepository:
    def __init__(self) -> None:
        self.store: dict[int, TicketEntity] = {}
        self._next_id = 1

    def create(
        self,
        *,
        team_id: int,
        title: str,
        reference: str,
        accumulated_time: int,
        created_by: str,
        connection: object | None = None,
    ) -> TicketEntity:
        now = datetime.now(UTC)
        ticket = TicketEntity(
            id=self._next_id,
            team_id=team_id,
            title=title,
            reference=reference,
            accumulated_time=accumulated_time,
            start_timestamp=None,
            started_by=None,
            status="open",
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.store[ticket.id] = ticket
        self._next_id += 1
        return deepcopy(ticket)

    def get_by_id(self, ticket_id: int, connection: object | None = None) -> TicketEntity | None:
        ticket = self.store.get(ticket_id)
        return deepcopy(ticket) if ticket else None

    def list_by_team(
        self,
        *,
        team_id: int,
        status: str | None = None,
        created_by: str | None = None,
        connection: object | None = None,
    ) -> list[TicketEntity]:
        items = [ticket for ticket in self.store.values() if ticket.team_id == team_id]
        if status is not None:
            items = [ticket for ticket in items if ticket.status == status]
        if created_by is not None:
            items = [ticket for ticket in items if ticket.created_by == created_by]
        return [deepcopy(ticket) for ticket in sorted(items, key=lambda t: t.id, reverse=True)]

    def list_running_for_user(
        self,
        *,
        team_id: int,
        user_id: str,
        connection: object | None = None,
    ) -> list[TicketEntity]:
        return [
            deepcopy(ticket)
            for ticket in self.store.values()
            if ticket.team_id == team_id
            and ticket.started_by == user_id
            and ticket.start_timestamp is not None
        ]

    def mark_running(
        self,
        *,
        ticket_id: int,
        start_timestamp: int,
        started_by: str,
        connection: object | None = None,
    ) -> TicketEntity | None:
        ticket = self.store.get(ticket_id)
        if ticket is None:
            return None
        ticket.start_timestamp = start_timestamp
        ticket.started_by = started_by
        return deepcopy(ticket)

    def mark_stopped(
        self,
        *,
        ticket_id: int,
        accumulated_time: int,
        connection: object | None = None,
    ) -> TicketEntity | None:
        ticket = self.store.get(ticket_id)
        if ticket is None:
            return None
        ticket.accumulated_time = accumulated_time
        ticket.start_timestamp = None
        ticket.started_by = None
        return deepcopy(ticket)

    def update_status_many(
        self,
        *,
        team_id: int,
        ticket_ids: list[int],
        status: str,
        connection: object | None = None,
    ) -> int:
        updated = 0
        for ticket_id in ticket_ids:
            ticket = self.store.get(ticket_id)
            if ticket is not None and ticket.team_id == team_id:
                ticket.status = status
                updated += 1
        return updated


class FakeClockEventRepository:
    def __init__(self) -> None:
        self.store: dict[int, ClockEventEntity] = {}
        self._next_id = 1

    def create(
        self,
        *,
        user_id: str,
        team_id: int,
        start_timestamp: int,
        connection: object | None = None,
    ) -> ClockEventEntity:
        clock_event = ClockEventEntity(
            id=self._next_id,
            user_id=user_id,
            team_id=team_id,
            start_timestamp=start_timestamp,
            accumulated_time=0,
            end_time=None,
        )
        self.store[clock_event.id] = clock_event
        self._next_id += 1
        return deepcopy(clock_event)

    def get_by_id(
        self,
        clock_event_id: int,
        connection: object | None = None,
    ) -> ClockEventEntity | None:
        clock_event = self.store.get(clock_event_id)
        return deepcopy(clock_event) if clock_event else None

    def list_open(
        self,
        *,
        user_id: str,
        team_id: int,
        connection: object | None = None,
    ) -> list[ClockEventEntity]:
        return [
            deepcopy(event)
            for event in self.store.values()
            if event.user_id == user_id and event.team_id == team_id and event.end_time is None
        ]

    def get_open(
        self,
        *,
        user_id: str,
        team_id: int,
        connection: object | None = None,
    ) -> ClockEventEntity | None:
        open_events = self.list_open(user_id=user_id, team_id=team_id)
        return open_events[-1] if open_events else None

    def list_for_user(
        self,
        *,
        user_id: str,
        team_id: int | None = None,
        connection: object | None = None,
    ) -> list[ClockEventEntity]:
        return [
            deepcopy(event)
            for event in reversed(self.store.values())
            if event.user_id == user_id and (team_id is None or event.team_id == team_id)
        ]

    def list_for_team(
        self,
        team_id: int,
        connection: object | None = None,
    ) -> list[ClockEventEntity]:
        return [
            deepcopy(event) for event in reversed(self.store.values()) if event.team_id == team_id
        ]

    def set_accumulated_time(
        self,
        *,
        clock_event_id: int,
        accumulated_time: int,
        connection: object | None = None,
    ) -> None:
        self.store[clock_event_id].accumulated_time = accumulated_time

    def close(
        self,
        *,
        clock_event_id: int,
        end_time: int,
        connection: object | None = None,
    ) -> None:
        clock_event = self.store[clock_event_id]
        if clock_event.end_time is None:
            clock_event.end_time = end_time

    def add_entry(
        self,
        *,
        clock_event_id: int,
        ticket_id: int,
        accumulated_time: int,
        start_timestamp: int | None,
        connection: object | None = None,
    ) -> None:
        clock_event = self.store[clock_event_id]
        clock_event.tickets.append(
            ClockEventTicketEntity(
                ticket_id=ticket_id,
                accumulated_time=accumulated_time,
                start_timestamp=start_timestamp,
            )
        )
        clock_event.accumulated_time += accumulated_time

    def mark_entry_running(
        self,
        *,
        clock_event_id: int,
        ticket_id: int,
        start_timestamp: int,
        connection: object | None = None,
    ) -> bool:
        entry = self.store[clock_event_id].find_entry(ticket_id)
        if entry is None:
            return False
        entry.start_timestamp = start_timestamp
        return True

    def mark_entry_stopped(
        self,
        *,
        clock_event_id: int,
        ticket_id: int,
        accumulated_time: int,
        connection: object | None = None,
    ) -> bool:
        entry = self.store[clock_event_id].find_entry(ticket_id)
        if entry is None:
            return False
        entry.accumulated_time = accumulated_time
        entry.start_timestamp = None
        return True


@dataclass
class TimeTrackingStack:
    teams: FakeTeamRepository
    tickets: FakeTicketRepository
    clock_events: FakeClockEventRepository
    team_service: TeamService
    ticket_service: TicketService
    clock_event_service: ClockEventService
    timer_service: TimerService
    team: TeamEntity
