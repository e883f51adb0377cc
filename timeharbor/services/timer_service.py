"""Keeps ticket timers and clock-event entries in step for one user action.

Every action runs its sub-steps on a single connection, so they commit or roll
back as one unit. The ``Reconciliation`` record lists the steps in the order
they were applied; it is logged when a later step fails and the whole action
is rolled back.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from psycopg import Connection

from timeharbor.core.database import get_connection
from timeharbor.core.errors import ConflictError, InvalidInputError
from timeharbor.models.entities import ClockEventEntity
from timeharbor.models.schemas.ticket import TicketCreateRequest, TicketRead
from timeharbor.models.schemas.timer import ReconciliationRead, TimerStateRead
from timeharbor.services.clock_event_service import ClockEventService, to_clock_event_read
from timeharbor.services.team_service import TeamService
from timeharbor.services.ticket_service import TicketService, to_ticket_read
from timeharbor.timekeeping import current_millis, format_time

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Reconciliation:
    action: str
    user_id: str
    team_id: int
    now: int
    steps: list[str] = field(default_factory=list)
    active_ticket_id: int | None = None
    clock_event_id: int | None = None
    ticket: TicketRead | None = None

    def record(self, step: str) -> None:
        self.steps.append(step)

    def to_read(self) -> ReconciliationRead:
        return ReconciliationRead(
            steps=list(self.steps),
            active_ticket_id=self.active_ticket_id,
            clock_event_id=self.clock_event_id,
            ticket=self.ticket,
        )


class TimerService:
    def __init__(
        self,
        team_service: TeamService,
        ticket_service: TicketService,
        clock_event_service: ClockEventService,
        database_url: str | None = None,
    ) -> None:
        self.team_service = team_service
        self.ticket_service = ticket_service
        self.clock_event_service = clock_event_service
        self.database_url = database_url

    def activate_ticket(
        self,
        user_id: str,
        team_id: int,
        ticket_id: int,
        *,
        now: int | None = None,
    ) -> ReconciliationRead:
        result = Reconciliation("activate_ticket", user_id, team_id, self._resolve_now(now))

        with get_connection(self.database_url) as connection:
            self._run(result, lambda: self._activate(result, ticket_id, connection))

        return result.to_read()

    def deactivate_ticket(
        self,
        user_id: str,
        team_id: int,
        ticket_id: int,
        *,
        now: int | None = None,
    ) -> ReconciliationRead:
        result = Reconciliation("deactivate_ticket", user_id, team_id, self._resolve_now(now))

        def apply() -> None:
            self._require_ticket_in_team(result, ticket_id, connection)
            clock_event = self.clock_event_service.get_open_entity(user_id, team_id, connection)
            self._stop(result, ticket_id, clock_event, connection)
            result.clock_event_id = clock_event.id if clock_event else None

        with get_connection(self.database_url) as connection:
            self._run(result, apply)

        return result.to_read()

    def create_ticket(
        self,
        user_id: str,
        payload: TicketCreateRequest,
        *,
        now: int | None = None,
    ) -> ReconciliationRead:
        """Create a ticket; pre-filled time starts its timer.

        While clocked in the new ticket becomes the active ticket of the open
        clock event. Without a session only the ticket timer is started.
        """
        result = Reconciliation("create_ticket", user_id, payload.team_id, self._resolve_now(now))

        def apply() -> None:
            created = self.ticket_service.create_ticket(
                user_id,
                payload,
                now=result.now,
                connection=connection,
            )
            result.record(f"create_ticket:{created.id}")
            result.ticket = created

            if payload.initial_accumulated_seconds <= 0:
                return
            clock_event = self.clock_event_service.get_open_entity(
                user_id,
                payload.team_id,
                connection,
            )
            if clock_event is not None:
                self._activate(result, created.id, connection)
                return

            self._stop_running_tickets(result, None, connection, keep_ticket_id=created.id)
            result.ticket = self.ticket_service.start_timer(
                user_id,
                created.id,
                now=result.now,
                connection=connection,
            )
            result.record(f"start_ticket:{created.id}")
            result.active_ticket_id = created.id

        with get_connection(self.database_url) as connection:
            self._run(result, apply)

        return result.to_read()

    def clock_in(
        self,
        user_id: str,
        team_id: int,
        *,
        now: int | None = None,
    ) -> ReconciliationRead:
        result = Reconciliation("clock_in", user_id, team_id, self._resolve_now(now))

        def apply() -> None:
            self.team_service.require_member(team_id, user_id, connection)
            self._stop_running_tickets(result, None, connection)
            clock_event = self.clock_event_service.start_clock_event(
                user_id,
                team_id,
                now=result.now,
                connection=connection,
            )
            result.record(f"start_clock_event:{clock_event.id}")
            result.clock_event_id = clock_event.id

        with get_connection(self.database_url) as connection:
            self._run(result, apply)

        return result.to_read()

    def clock_out(
        self,
        user_id: str,
        team_id: int,
        *,
        now: int | None = None,
    ) -> ReconciliationRead:
        result = Reconciliation("clock_out", user_id, team_id, self._resolve_now(now))

        def apply() -> None:
            clock_event = self.clock_event_service.get_open_entity(user_id, team_id, connection)
            self._stop_running_tickets(result, clock_event, connection)
            if clock_event is None:
                return
            self.clock_event_service.stop_clock_event(
                user_id,
                team_id,
                now=result.now,
                connection=connection,
            )
            result.record(f"stop_clock_event:{clock_event.id}")
            result.clock_event_id = clock_event.id

        with get_connection(self.database_url) as connection:
            self._run(result, apply)

        return result.to_read()

    def get_state(self, user_id: str, team_id: int, *, now: int | None = None) -> TimerStateRead:
        now = self._resolve_now(now)

        with get_connection(self.database_url) as connection:
            clock_event = self.clock_event_service.get_open_entity(user_id, team_id, connection)
            running = self.ticket_service.list_running(user_id, team_id, connection)

        clock_event_read = to_clock_event_read(clock_event, now) if clock_event else None
        session_seconds = clock_event_read.total_seconds if clock_event_read else 0
        return TimerStateRead(
            team_id=team_id,
            clocked_in=clock_event is not None,
            clock_event=clock_event_read,
            active_ticket=to_ticket_read(running[0], now) if running else None,
            session_seconds=session_seconds,
            session_formatted=format_time(session_seconds),
        )

    def _activate(self, result: Reconciliation, ticket_id: int, connection: Connection) -> None:
        self._require_ticket_in_team(result, ticket_id, connection)
        clock_event = self.clock_event_service.get_open_entity(
            result.user_id,
            result.team_id,
            connection,
        )
        if clock_event is None:
            raise ConflictError(
                code="NO_ACTIVE_CLOCK_EVENT",
                message="Please start a session before starting an activity.",
                details={"team_id": result.team_id},
            )
        result.clock_event_id = clock_event.id

        stopped_ids = self._stop_running_tickets(
            result,
            clock_event,
            connection,
            keep_ticket_id=ticket_id,
        )
        # An entry can outlive its ticket timer when the ticket was stopped directly.
        for entry in clock_event.tickets:
            if not entry.is_running or entry.ticket_id in stopped_ids | {ticket_id}:
                continue
            self.clock_event_service.stop_ticket(
                result.user_id,
                clock_event.id,
                entry.ticket_id,
                now=result.now,
                connection=connection,
            )
            result.record(f"stop_clock_event_entry:{entry.ticket_id}")

        started = self.ticket_service.start_timer(
            result.user_id,
            ticket_id,
            now=result.now,
            connection=connection,
        )
        result.record(f"start_ticket:{ticket_id}")
        self.clock_event_service.add_ticket(
            result.user_id,
            clock_event.id,
            ticket_id,
            now=result.now,
            connection=connection,
        )
        result.record(f"add_clock_event_entry:{ticket_id}")
        result.active_ticket_id = ticket_id
        result.ticket = started

    def _stop_running_tickets(
        self,
        result: Reconciliation,
        clock_event: ClockEventEntity | None,
        connection: Connection,
        keep_ticket_id: int | None = None,
    ) -> set[int]:
        stopped_ids: set[int] = set()
        for running in self.ticket_service.list_running(result.user_id, result.team_id, connection):
            if running.id != keep_ticket_id:
                self._stop(result, running.id, clock_event, connection)
                stopped_ids.add(running.id)
        return stopped_ids

    def _stop(
        self,
        result: Reconciliation,
        ticket_id: int,
        clock_event: ClockEventEntity | None,
        connection: Connection,
    ) -> None:
        stopped = self.ticket_service.stop_timer(
            result.user_id,
            ticket_id,
            now=result.now,
            connection=connection,
        )
        result.record(f"stop_ticket:{ticket_id}")
        if result.ticket is None or result.ticket.id == ticket_id:
            result.ticket = stopped

        if clock_event is not None:
            self.clock_event_service.stop_ticket(
                result.user_id,
                clock_event.id,
                ticket_id,
                now=result.now,
                connection=connection,
            )
            result.record(f"stop_clock_event_entry:{ticket_id}")

    def _require_ticket_in_team(
        self,
        result: Reconciliation,
        ticket_id: int,
        connection: Connection,
    ) -> None:
        self.team_service.require_member(result.team_id, result.user_id, connection)
        ticket = self.ticket_service.get_ticket_entity(ticket_id, connection)
        if ticket.team_id != result.team_id:
            raise InvalidInputError(
                code="TICKET_TEAM_MISMATCH",
                message="The ticket belongs to a different team.",
                details={"ticket_id": ticket_id, "team_id": result.team_id},
            )

    def _run(self, result: Reconciliation, apply: Callable[[], None]) -> None:
        try:
            apply()
        except Exception:
            logger.warning(
                "%s for user %s in team %s rolled back after steps %s",
                result.action,
                result.user_id,
                result.team_id,
                result.steps or "[]",
            )
            raise
        logger.info(
            "%s for user %s in team %s applied %s",
            result.action,
            result.user_id,
            result.team_id,
            result.steps,
        )

    def _resolve_now(self, now: int | None) -> int:
        return current_millis() if now is None else now
