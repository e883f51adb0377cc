import logging
from collections.abc import Iterator
from contextlib import contextmanager

from psycopg import Connection

from timeharbor.core.database import get_connection
from timeharbor.core.errors import ConflictError, InvalidInputError, NotFoundError
from timeharbor.models.entities import TicketEntity, TicketStatus
from timeharbor.models.schemas.ticket import (
    TicketCreateRequest,
    TicketRead,
    TicketStatusBatchRequest,
    TicketStatusBatchResponse,
)
from timeharbor.repositories.ticket_repository import TicketRepository
from timeharbor.services.team_service import TeamService
from timeharbor.timekeeping import current_millis, elapsed_seconds, format_time, total_seconds

logger = logging.getLogger(__name__)


def to_ticket_read(ticket: TicketEntity, now: int) -> TicketRead:
    total = total_seconds(ticket.accumulated_time, ticket.start_timestamp, now)
    return TicketRead(
        id=ticket.id,
        team_id=ticket.team_id,
        title=ticket.title,
        reference=ticket.reference,
        status=ticket.status,
        accumulated_time=ticket.accumulated_time,
        start_timestamp=ticket.start_timestamp,
        started_by=ticket.started_by,
        is_running=ticket.is_running,
        total_seconds=total,
        formatted_time=format_time(total),
        created_by=ticket.created_by,
        created_at=ticket.created_at,
        updated_at=ticket.updated_at,
    )


class TicketService:
    """Start/stop lifecycle of a single ticket timer.

    A ticket is Stopped while ``start_timestamp`` is empty and Running while it
    is set. Stopping folds the whole seconds elapsed since the start into
    ``accumulated_time``. A caller may have at most one Running ticket per team.
    """

    def __init__(
        self,
        ticket_repository: TicketRepository,
        team_service: TeamService,
        database_url: str | None = None,
    ) -> None:
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

    def create_ticket(
        self,
        user_id: str,
        payload: TicketCreateRequest,
        *,
        now: int | None = None,
        connection: Connection | None = None,
    ) -> TicketRead:
        title = self._validate_title(payload.title)
        if payload.initial_accumulated_seconds < 0:
            raise InvalidInputError(
                code="INVALID_ACCUMULATED_TIME",
                message="Initial time cannot be negative.",
            )

        with self._use_connection(connection) as active_connection:
            self.team_service.require_member(payload.team_id, user_id, active_connection)
            ticket = self.ticket_repository.create(
                team_id=payload.team_id,
                title=title,
                reference=payload.reference.strip(),
                accumulated_time=payload.initial_accumulated_seconds,
                created_by=user_id,
                connection=active_connection,
            )

        logger.info(
            "User %s created ticket %s in team %s with %ss already tracked",
            user_id,
            ticket.id,
            ticket.team_id,
            ticket.accumulated_time,
        )
        return to_ticket_read(ticket, self._resolve_now(now))

    def get_ticket(self, user_id: str, ticket_id: int, *, now: int | None = None) -> TicketRead:
        with get_connection(self.database_url) as connection:
            ticket = self.get_ticket_entity(ticket_id, connection)
            self.team_service.require_member(ticket.team_id, user_id, connection)
        return to_ticket_read(ticket, self._resolve_now(now))

    def list_tickets(
        self,
        user_id: str,
        *,
        team_id: int,
        status: TicketStatus | None = None,
        mine: bool = False,
        now: int | None = None,
    ) -> list[TicketRead]:
        reference_now = self._resolve_now(now)
        with get_connection(self.database_url) as connection:
            self.team_service.require_member(team_id, user_id, connection)
            tickets = self.ticket_repository.list_by_team(
                team_id=team_id,
                status=status,
                created_by=user_id if mine else None,
                connection=connection,
            )
        return [to_ticket_read(ticket, reference_now) for ticket in tickets]

    def start_timer(
        self,
        user_id: str,
        ticket_id: int,
        *,
        now: int | None = None,
        connection: Connection | None = None,
    ) -> TicketRead:
        now = self._resolve_now(now)

        with self._use_connection(connection) as active_connection:
            ticket = self.get_ticket_entity(ticket_id, active_connection)
            self.team_service.require_member(ticket.team_id, user_id, active_connection)

            if ticket.is_running:
                if ticket.started_by != user_id:
                    raise ConflictError(
                        code="TICKET_RUNNING_ELSEWHERE",
                        message="Another team member is already timing this ticket.",
                        details={"ticket_id": ticket_id},
                    )
                # Re-stamping would drop the time elapsed since the first start.
                logger.debug("Ticket %s already running for %s", ticket_id, user_id)
                return to_ticket_read(ticket, now)

            active_ids = [
                running.id
                for running in self.ticket_repository.list_running_for_user(
                    team_id=ticket.team_id,
                    user_id=user_id,
                    connection=active_connection,
                )
                if running.id != ticket_id
            ]
            if active_ids:
                raise ConflictError(
                    code="ACTIVE_TICKET_CONFLICT",
                    message="Stop the active ticket before starting another one.",
                    details={"ticket_id": ticket_id, "active_ticket_ids": active_ids},
                )

            started = self.ticket_repository.mark_running(
                ticket_id=ticket_id,
                start_timestamp=now,
                started_by=user_id,
                connection=active_connection,
            )
            if started is None:
                self._raise_ticket_not_found(ticket_id)

        logger.info("User %s started ticket %s at %s", user_id, ticket_id, now)
        return to_ticket_read(started, now)

    def stop_timer(
        self,
        user_id: str,
        ticket_id: int,
        *,
        now: int | None = None,
        connection: Connection | None = None,
    ) -> TicketRead:
        now = self._resolve_now(now)

        with self._use_connection(connection) as active_connection:
            ticket = self.get_ticket_entity(ticket_id, active_connection)
            self.team_service.require_member(ticket.team_id, user_id, active_connection)

            if ticket.start_timestamp is None:
                logger.debug("Ticket %s already stopped", ticket_id)
                return to_ticket_read(ticket, now)

            elapsed = elapsed_seconds(ticket.start_timestamp, now)
            stopped = self.ticket_repository.mark_stopped(
                ticket_id=ticket_id,
                accumulated_time=ticket.accumulated_time + elapsed,
                connection=active_connection,
            )
            if stopped is None:
                self._raise_ticket_not_found(ticket_id)

        logger.info("User %s stopped ticket %s after %ss", user_id, ticket_id, elapsed)
        return to_ticket_read(stopped, now)

    def batch_update_status(
        self,
        user_id: str,
        payload: TicketStatusBatchRequest,
    ) -> TicketStatusBatchResponse:
        ticket_ids = list(dict.fromkeys(payload.ticket_ids))

        with get_connection(self.database_url) as connection:
            self.team_service.require_admin(payload.team_id, user_id, connection)
            updated = self.ticket_repository.update_status_many(
                team_id=payload.team_id,
                ticket_ids=ticket_ids,
                status=payload.status,
                connection=connection,
            )

        logger.info(
            "User %s set %s of %s tickets in team %s to %s",
            user_id,
            updated,
            len(ticket_ids),
            payload.team_id,
            payload.status,
        )
        return TicketStatusBatchResponse(updated=updated)

    def list_running(
        self,
        user_id: str,
        team_id: int,
        connection: Connection | None = None,
    ) -> list[TicketEntity]:
        with self._use_connection(connection) as active_connection:
            return self.ticket_repository.list_running_for_user(
                team_id=team_id,
                user_id=user_id,
                connection=active_connection,
            )

    def get_ticket_entity(
        self,
        ticket_id: int,
        connection: Connection | None = None,
    ) -> TicketEntity:
        with self._use_connection(connection) as active_connection:
            ticket = self.ticket_repository.get_by_id(ticket_id, connection=active_connection)
        if ticket is None:
            self._raise_ticket_not_found(ticket_id)
        return ticket

    def _resolve_now(self, now: int | None) -> int:
        return current_millis() if now is None else now

    def _validate_title(self, title: str) -> str:
        normalized = title.strip()
        if not 1 <= len(normalized) <= 200:
            raise InvalidInputError(
                code="INVALID_TICKET_TITLE",
                message="Ticket title length must be between 1 and 200 characters.",
            )
        return normalized

    def _raise_ticket_not_found(self, ticket_id: int) -> None:
        raise NotFoundError(
            code="TICKET_NOT_FOUND",
            message="Ticket not found.",
            details={"ticket_id": ticket_id},
        )
