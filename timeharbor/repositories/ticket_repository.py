from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from psycopg import Connection

from timeharbor.core.database import get_connection
from timeharbor.models.entities import TicketEntity, TicketStatus

_TICKET_COLUMNS = """
    id, team_id, title, reference, accumulated_time, start_timestamp, started_by,
    status, created_by, created_at, updated_at
"""


def _to_ticket_entity(row: dict[str, Any]) -> TicketEntity:
    return TicketEntity(
        id=row["id"],
        team_id=row["team_id"],
        title=row["title"],
        reference=row["reference"],
        accumulated_time=row["accumulated_time"],
        start_timestamp=row["start_timestamp"],
        started_by=row["started_by"],
        status=row["status"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class TicketRepository:
    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    @contextmanager
    def _use_connection(self, connection: Connection | None) -> Iterator[Connection]:
        if connection is not None:
            yield connection
            return
        with get_connection(self.database_url) as managed:
            yield managed

    def create(
        self,
        *,
        team_id: int,
        title: str,
        reference: str,
        accumulated_time: int,
        created_by: str,
        connection: Connection | None = None,
    ) -> TicketEntity:
        query = f"""
            INSERT INTO tickets (team_id, title, reference, accumulated_time, created_by)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_TICKET_COLUMNS}
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (team_id, title, reference, accumulated_time, created_by))
                created = cursor.fetchone()
        if created is None:
            raise RuntimeError("Failed to create ticket.")
        return _to_ticket_entity(created)

    def get_by_id(
        self,
        ticket_id: int,
        connection: Connection | None = None,
    ) -> TicketEntity | None:
        query = f"SELECT {_TICKET_COLUMNS} FROM tickets WHERE id = %s"
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (ticket_id,))
                row = cursor.fetchone()
        if row is None:
            return None
        return _to_ticket_entity(row)

    def list_by_team(
        self,
        *,
        team_id: int,
        status: TicketStatus | None = None,
        created_by: str | None = None,
        connection: Connection | None = None,
    ) -> list[TicketEntity]:
        where_clauses = ["team_id = %s"]
        params: list[Any] = [team_id]

        if status is not None:
            where_clauses.append("status = %s")
            params.append(status)

        if created_by is not None:
            where_clauses.append("created_by = %s")
            params.append(created_by)

        query = f"""
            SELECT {_TICKET_COLUMNS}
            FROM tickets
            WHERE {" AND ".join(where_clauses)}
            ORDER BY created_at DESC, id DESC
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
        return [_to_ticket_entity(row) for row in rows]

    def list_running_for_user(
        self,
        *,
        team_id: int,
        user_id: str,
        connection: Connection | None = None,
    ) -> list[TicketEntity]:
        query = f"""
            SELECT {_TICKET_COLUMNS}
            FROM tickets
            WHERE team_id = %s AND started_by = %s AND start_timestamp IS NOT NULL
            ORDER BY start_timestamp ASC, id ASC
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (team_id, user_id))
                rows = cursor.fetchall()
        return [_to_ticket_entity(row) for row in rows]

    def mark_running(
        self,
        *,
        ticket_id: int,
        start_timestamp: int,
        started_by: str,
        connection: Connection | None = None,
    ) -> TicketEntity | None:
        query = f"""
            UPDATE tickets
            SET start_timestamp = %s,
                started_by = %s,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {_TICKET_COLUMNS}
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (start_timestamp, started_by, ticket_id))
                row = cursor.fetchone()
        if row is None:
            return None
        return _to_ticket_entity(row)

    def mark_stopped(
        self,
        *,
        ticket_id: int,
        accumulated_time: int,
        connection: Connection | None = None,
    ) -> TicketEntity | None:
        query = f"""
            UPDATE tickets
            SET accumulated_time = %s,
                start_timestamp = NULL,
                started_by = NULL,
                updated_at = NOW()
            WHERE id = %s
            RETURNING {_TICKET_COLUMNS}
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (accumulated_time, ticket_id))
                row = cursor.fetchone()
        if row is None:
            return None
        return _to_ticket_entity(row)

    def update_status_many(
        self,
        *,
        team_id: int,
        ticket_ids: list[int],
        status: TicketStatus,
        connection: Connection | None = None,
    ) -> int:
        if not ticket_ids:
            return 0

        query = """
            UPDATE tickets
            SET status = %s,
                updated_at = NOW()
            WHERE team_id = %s AND id = ANY(%s)
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (status, team_id, ticket_ids))
                return cursor.rowcount
