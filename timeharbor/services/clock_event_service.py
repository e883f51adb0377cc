import logging
from collections.abc import Iterator
from contextlib import contextmanager

from psycopg import Connection
from psycopg.errors import UniqueViolation

from timeharbor.core.database import get_connection
from timeharbor.core.errors import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from timeharbor.models.entities import ClockEventEntity
from timeharbor.models.schemas.clock_event import ClockEventRead, ClockEventTicketRead
from timeharbor.repositories.clock_event_repository import ClockEventRepository
from timeharbor.repositories.ticket_repository import TicketRepository
from timeharbor.services.team_service import TeamService
from timeharbor.timekeeping import current_millis, elapsed_seconds, format_time, total_seconds

logger = logging.getLogger(__name__)


def to_clock_event_read(clock_event: ClockEventEntity, now: int) -> ClockEventRead:
    total = total_seconds(
        clock_event.accumulated_time,
        clock_event.start_timestamp,
        now,
        end_time=clock_event.end_time,
    )
    return ClockEventRead(
        id=clock_event.id,
        user_id=clock_event.user_id,
        team_id=clock_event.team_id,
        start_timestamp=clock_event.start_timestamp,
        accumulated_time=clock_event.accumulated_time,
        end_time=clock_event.end_time,
        is_open=clock_event.is_open,
        total_seconds=total,
        formatted_time=format_time(total),
        tickets=[
            ClockEventTicketRead(
                ticket_id=entry.ticket_id,
                accumulated_time=entry.accumulated_time,
                start_timestamp=entry.start_timestamp,
                is_running=entry.is_running,
                total_seconds=total_seconds(entry.accumulated_time, entry.start_timestamp, now),
            )
            for entry in clock_event.tickets
        ],
    )


class ClockEventService:
    """Shift sessions of one user within one team.

    An event is Open while ``end_time`` is empty and Closed once it is set;
    closing is terminal. Each event keeps its own per-ticket timing entries,
    which mirror the ticket timers but only count time spent during the shift.
    """

    def __init__(
        self,
        clock_event_repository: ClockEventRepository,
        ticket_repository: TicketRepository,
        team_service: TeamService,
        database_url: str | None = None,
    ) -> None:
        self.clock_event_repository = clock_event_repository
        self.ticket_repository = ticket_repository
        self.team_service = team_service
        self.database_url = database_url

    @contextmanager
    def _use_connection(self, connection: Connection | None) -> Iterator[Connection]:
        if connection is not None:
            yield connection
            return
        with get_connection(self.database_url) as managed:
            yield managed

    def start_clock_event(
        self,
        user_id: str,
        team_id: int,
        *,
        now: int | None = None,
        connection: Connection | None = None,
    ) -> ClockEventRead:
        now = self._resolve_now(now)

        with self._use_connection(connection) as active_connection:
            self.team_service.require_member(team_id, user_id, active_connection)

            for previous in self.clock_event_repository.list_open(
                user_id=user_id,
                team_id=team_id,
                connection=active_connection,
            ):
                logger.info("Force-closing clock event %s for user %s", previous.id, user_id)
                self._close(previous, now, active_connection)

            try:
                created = self.clock_event_repository.create(
                    user_id=user_id,
                    team_id=team_id,
                    start_timestamp=now,
                    connection=active_connection,
                )
            except UniqueViolation as exc:
                raise ConflictError(
                    code="CLOCK_EVENT_ALREADY_OPEN",
                    message="Another session was started at the same time. Please retry.",
                    details={"team_id": team_id},
                ) from exc

        logger.info("User %s clocked in to team %s (event %s)", user_id, team_id, created.id)
        return to_clock_event_read(created, now)

    def stop_clock_event(
        self,
        user_id: str,
        team_id: int,
        *,
        now: int | None = None,
        connection: Connection | None = None,
    ) -> ClockEventRead | None:
        now = self._resolve_now(now)

        with self._use_connection(connection) as active_connection:
            self.team_service.require_member(team_id, user_id, active_connection)
            clock_event = self.clock_event_repository.get_open(
                user_id=user_id,
                team_id=team_id,
                connection=active_connection,
            )
            if clock_event is None:
                logger.debug("No open clock event for user %s in team %s", user_id, team_id)
                return None

            self._close(clock_event, now, active_connection)
            closed = self.clock_event_repository.get_by_id(
                clock_event.id,
                connection=active_connection,
            )

        logger.info("User %s clocked out of team %s (event %s)", user_id, team_id, clock_event.id)
        return to_clock_event_read(closed or clock_event, now)

    def add_ticket(
        self,
        user_id: str,
        clock_event_id: int,
        ticket_id: int,
        *,
        now: int | None = None,
        connection: Connection | None = None,
    ) -> ClockEventRead:
        """Resume the ticket's entry, or append one seeded with the ticket's current time.

        The seed is also added to the event total, so a shift reflects time the
        ticket already carried when it was first worked on during that shift.
        """
        now = self._resolve_now(now)

        with self._use_connection(connection) as active_connection:
            clock_event = self._get_owned_event(clock_event_id, user_id, active_connection)
            if not clock_event.is_open:
                raise ConflictError(
                    code="CLOCK_EVENT_CLOSED",
                    message="This clock event has already ended.",
                    details={"clock_event_id": clock_event_id},
                )

            entry = clock_event.find_entry(ticket_id)
            if entry is not None:
                if entry.is_running:
                    logger.debug("Ticket %s already running in %s", ticket_id, clock_event_id)
                else:
                    self.clock_event_repository.mark_entry_running(
                        clock_event_id=clock_event_id,
                        ticket_id=ticket_id,
                        start_timestamp=now,
                        connection=active_connection,
                    )
                    logger.info("Resumed ticket %s in clock event %s", ticket_id, clock_event_id)
            else:
                ticket = self.ticket_repository.get_by_id(ticket_id, connection=active_connection)
                if ticket is None:
                    raise NotFoundError(
                        code="TICKET_NOT_FOUND",
                        message="Ticket not found.",
                        details={"ticket_id": ticket_id},
                    )
                if ticket.team_id != clock_event.team_id:
                    raise InvalidInputError(
                        code="TICKET_TEAM_MISMATCH",
                        message="The ticket belongs to a different team than the clock event.",
                        details={"ticket_id": ticket_id, "clock_event_id": clock_event_id},
                    )

                self.clock_event_repository.add_entry(
                    clock_event_id=clock_event_id,
                    ticket_id=ticket_id,
                    accumulated_time=ticket.accumulated_time,
                    start_timestamp=now,
                    connection=active_connection,
                )
                logger.info(
                    "Added ticket %s to clock event %s seeded with %ss",
                    ticket_id,
                    clock_event_id,
                    ticket.accumulated_time,
                )

            updated = self.clock_event_repository.get_by_id(
                clock_event_id,
                connection=active_connection,
            )

        return to_clock_event_read(updated or clock_event, now)

    def stop_ticket(
        self,
        user_id: str,
        clock_event_id: int,
        ticket_id: int,
        *,
        now: int | None = None,
        connection: Connection | None = None,
    ) -> ClockEventRead:
        now = self._resolve_now(now)

        with self._use_connection(connection) as active_connection:
            clock_event = self._get_owned_event(clock_event_id, user_id, active_connection)
            entry = clock_event.find_entry(ticket_id)
            if entry is None or entry.start_timestamp is None:
                logger.debug("Ticket %s not running in clock event %s", ticket_id, clock_event_id)
                return to_clock_event_read(clock_event, now)

            self.clock_event_repository.mark_entry_stopped(
                clock_event_id=clock_event_id,
                ticket_id=ticket_id,
                accumulated_time=entry.accumulated_time
                + elapsed_seconds(entry.start_timestamp, now),
                connection=active_connection,
            )
            updated = self.clock_event_repository.get_by_id(
                clock_event_id,
                connection=active_connection,
            )

        logger.info("Stopped ticket %s in clock event %s", ticket_id, clock_event_id)
        return to_clock_event_read(updated or clock_event, now)

    def get_active(
        self,
        user_id: str,
        team_id: int,
        *,
        now: int | None = None,
    ) -> ClockEventRead | None:
        with get_connection(self.database_url) as connection:
            clock_event = self.get_open_entity(user_id, team_id, connection)
        if clock_event is None:
            return None
        return to_clock_event_read(clock_event, self._resolve_now(now))

    def get_open_entity(
        self,
        user_id: str,
        team_id: int,
        connection: Connection | None = None,
    ) -> ClockEventEntity | None:
        with self._use_connection(connection) as active_connection:
            self.team_service.require_member(team_id, user_id, active_connection)
            return self.clock_event_repository.get_open(
                user_id=user_id,
                team_id=team_id,
                connection=active_connection,
            )

    def list_mine(
        self,
        user_id: str,
        *,
        team_id: int | None = None,
        now: int | None = None,
    ) -> list[ClockEventRead]:
        reference_now = self._resolve_now(now)
        with get_connection(self.database_url) as connection:
            if team_id is not None:
                self.team_service.require_member(team_id, user_id, connection)
            clock_events = self.clock_event_repository.list_for_user(
                user_id=user_id,
                team_id=team_id,
                connection=connection,
            )
        return [to_clock_event_read(clock_event, reference_now) for clock_event in clock_events]

    def list_for_team(
        self,
        user_id: str,
        team_id: int,
        *,
        now: int | None = None,
    ) -> list[ClockEventRead]:
        reference_now = self._resolve_now(now)
        with get_connection(self.database_url) as connection:
            self.team_service.require_leader(team_id, user_id, connection)
            clock_events = self.clock_event_repository.list_for_team(
                team_id,
                connection=connection,
            )
        return [to_clock_event_read(clock_event, reference_now) for clock_event in clock_events]

    def _close(self, clock_event: ClockEventEntity, now: int, connection: Connection) -> None:
        if clock_event.start_timestamp is not None:
            self.clock_event_repository.set_accumulated_time(
                clock_event_id=clock_event.id,
                accumulated_time=clock_event.accumulated_time
                + elapsed_seconds(clock_event.start_timestamp, now),
                connection=connection,
            )

        for entry in clock_event.tickets:
            if entry.start_timestamp is None:
                continue
            self.clock_event_repository.mark_entry_stopped(
                clock_event_id=clock_event.id,
                ticket_id=entry.ticket_id,
                accumulated_time=entry.accumulated_time
                + elapsed_seconds(entry.start_timestamp, now),
                connection=connection,
            )

        self.clock_event_repository.close(
            clock_event_id=clock_event.id,
            end_time=now,
            connection=connection,
        )

    def _get_owned_event(
        self,
        clock_event_id: int,
        user_id: str,
        connection: Connection,
    ) -> ClockEventEntity:
        clock_event = self.clock_event_repository.get_by_id(clock_event_id, connection=connection)
        if clock_event is None:
            raise NotFoundError(
                code="CLOCK_EVENT_NOT_FOUND",
                message="Clock event not found.",
                details={"clock_event_id": clock_event_id},
            )

        self.team_service.require_member(clock_event.team_id, user_id, connection)
        if clock_event.user_id != user_id:
            raise ForbiddenError(
                code="NOT_CLOCK_EVENT_OWNER",
                message="You can only change your own clock events.",
                details={"clock_event_id": clock_event_id},
            )
        return clock_event

    def _resolve_now(self, now: int | None) -> int:
        return current_millis() if now is None else now
