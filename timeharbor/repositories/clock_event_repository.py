from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from psycopg import Connection, Cursor

from timeharbor.core.database import get_connection
from timeharbor.models.entities import ClockEventEntity, ClockEventTicketEntity

_CLOCK_EVENT_COLUMNS = "id, user_id, team_id, start_timestamp, accumulated_time, end_time"


def _to_clock_event_entity(
    row: dict[str, Any],
    entries: list[ClockEventTicketEntity],
) -> ClockEventEntity:
    return ClockEventEntity(
        id=row["id"],
        user_id=row["user_id"],
        team_id=row["team_id"],
        start_timestamp=row["start_timestamp"],
        accumulated_time=row["accumulated_time"],
        end_time=row["end_time"],
        tickets=entries,
    )


class ClockEventRepository:
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
        user_id: str,
        team_id: int,
        start_timestamp: int,
        connection: Connection | None = None,
    ) -> ClockEventEntity:
        query = f"""
            INSERT INTO clock_events (user_id, team_id, start_timestamp, accumulated_time)
            VALUES (%s, %s, %s, 0)
            RETURNING {_CLOCK_EVENT_COLUMNS}
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (user_id, team_id, start_timestamp))
                created = cursor.fetchone()
        if created is None:
            raise RuntimeError("Failed to create clock event.")
        return _to_clock_event_entity(created, [])

    def get_by_id(
        self,
        clock_event_id: int,
        connection: Connection | None = None,
    ) -> ClockEventEntity | None:
        query = f"SELECT {_CLOCK_EVENT_COLUMNS} FROM clock_events WHERE id = %s"
        return self._fetch_one(query, (clock_event_id,), connection)

    def get_open(
        self,
        *,
        user_id: str,
        team_id: int,
        connection: Connection | None = None,
    ) -> ClockEventEntity | None:
        query = f"""
            SELECT {_CLOCK_EVENT_COLUMNS}
            FROM clock_events
            WHERE user_id = %s AND team_id = %s AND end_time IS NULL
            ORDER BY id DESC
            LIMIT 1
        """
        return self._fetch_one(query, (user_id, team_id), connection)

    def list_open(
        self,
        *,
        user_id: str,
        team_id: int,
        connection: Connection | None = None,
    ) -> list[ClockEventEntity]:
        query = f"""
            SELECT {_CLOCK_EVENT_COLUMNS}
            FROM clock_events
            WHERE user_id = %s AND team_id = %s AND end_time IS NULL
            ORDER BY id ASC
        """
        return self._fetch_many(query, (user_id, team_id), connection)

    def list_for_user(
        self,
        *,
        user_id: str,
        team_id: int | None = None,
        connection: Connection | None = None,
    ) -> list[ClockEventEntity]:
        where_sql = "user_id = %s"
        params: list[Any] = [user_id]
        if team_id is not None:
            where_sql += " AND team_id = %s"
            params.append(team_id)

        query = f"""
            SELECT {_CLOCK_EVENT_COLUMNS}
            FROM clock_events
            WHERE {where_sql}
            ORDER BY start_timestamp DESC, id DESC
        """
        return self._fetch_many(query, params, connection)

    def list_for_team(
        self,
        team_id: int,
        connection: Connection | None = None,
    ) -> list[ClockEventEntity]:
        query = f"""
            SELECT {_CLOCK_EVENT_COLUMNS}
            FROM clock_events
            WHERE team_id = %s
            ORDER BY start_timestamp DESC, id DESC
        """
        return self._fetch_many(query, (team_id,), connection)

    def set_accumulated_time(
        self,
        *,
        clock_event_id: int,
        accumulated_time: int,
        connection: Connection | None = None,
    ) -> None:
        query = "UPDATE clock_events SET accumulated_time = %s WHERE id = %s"
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (accumulated_time, clock_event_id))

    def close(
        self,
        *,
        clock_event_id: int,
        end_time: int,
        connection: Connection | None = None,
    ) -> None:
        query = "UPDATE clock_events SET end_time = %s WHERE id = %s AND end_time IS NULL"
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (end_time, clock_event_id))

    def add_entry(
        self,
        *,
        clock_event_id: int,
        ticket_id: int,
        accumulated_time: int,
        start_timestamp: int | None,
        connection: Connection | None = None,
    ) -> None:
        """Append a ticket entry and fold its seed time into the event total."""
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(
                    """
                    INSERT INTO clock_event_tickets
                        (clock_event_id, ticket_id, accumulated_time, start_timestamp)
                    VALUES (%s, %s, %s, %s)
                    """,
                    (clock_event_id, ticket_id, accumulated_time, start_timestamp),
                )
                cursor.execute(
                    """
                    UPDATE clock_events
                    SET accumulated_time = accumulated_time + %s
                    WHERE id = %s
                    """,
                    (accumulated_time, clock_event_id),
                )

    def mark_entry_running(
        self,
        *,
        clock_event_id: int,
        ticket_id: int,
        start_timestamp: int,
        connection: Connection | None = None,
    ) -> bool:
        query = """
            UPDATE clock_event_tickets
            SET start_timestamp = %s
            WHERE clock_event_id = %s AND ticket_id = %s
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (start_timestamp, clock_event_id, ticket_id))
                return cursor.rowcount > 0

    def mark_entry_stopped(
        self,
        *,
        clock_event_id: int,
        ticket_id: int,
        accumulated_time: int,
        connection: Connection | None = None,
    ) -> bool:
        query = """
            UPDATE clock_event_tickets
            SET accumulated_time = %s,
                start_timestamp = NULL
            WHERE clock_event_id = %s AND ticket_id = %s
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (accumulated_time, clock_event_id, ticket_id))
                return cursor.rowcount > 0

    def _fetch_one(
        self,
        query: str,
        params: Any,
        connection: Connection | None,
    ) -> ClockEventEntity | None:
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                if row is None:
                    return None
                entries = self._fetch_entries(cursor, [row["id"]])
        return _to_clock_event_entity(row, entries.get(row["id"], []))

    def _fetch_many(
        self,
        query: str,
        params: Any,
        connection: Connection | None,
    ) -> list[ClockEventEntity]:
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
                entries = self._fetch_entries(cursor, [row["id"] for row in rows])
        return [_to_clock_event_entity(row, entries.get(row["id"], [])) for row in rows]

    @staticmethod
    def _fetch_entries(
        cursor: Cursor,
        clock_event_ids: list[int],
    ) -> dict[int, list[ClockEventTicketEntity]]:
        if not clock_event_ids:
            return {}

        cursor.execute(
            """
            SELECT clock_event_id, ticket_id, accumulated_time, start_timestamp
            FROM clock_event_tickets
            WHERE clock_event_id = ANY(%s)
            ORDER BY clock_event_id ASC, id ASC
            """,
            (clock_event_ids,),
        )
        mapping: dict[int, list[ClockEventTicketEntity]] = {
            clock_event_id: [] for clock_event_id in clock_event_ids
        }
        for row in cursor.fetchall():
            mapping[row["clock_event_id"]].append(
                ClockEventTicketEntity(
                    ticket_id=row["ticket_id"],
                    accumulated_time=row["accumulated_time"],
                    start_timestamp=row["start_timestamp"],
                )
            )
        return mapping
