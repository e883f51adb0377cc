from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from psycopg import Connection, Cursor

from timeharbor.core.database import get_connection
from timeharbor.models.entities import TeamEntity

_TEAM_COLUMNS = "id, name, code, leader_id, created_at"


def _to_team_entity(row: dict[str, Any], members: list[dict[str, Any]]) -> TeamEntity:
    return TeamEntity(
        id=row["id"],
        name=row["name"],
        code=row["code"],
        leader_id=row["leader_id"],
        created_at=row["created_at"],
        member_ids=[member["user_id"] for member in members],
        admin_ids=[member["user_id"] for member in members if member["is_admin"]],
    )


class TeamRepository:
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
        name: str,
        code: str,
        leader_id: str,
        connection: Connection | None = None,
    ) -> TeamEntity:
        query = f"""
            INSERT INTO teams (name, code, leader_id)
            VALUES (%s, %s, %s)
            RETURNING {_TEAM_COLUMNS}
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (name, code, leader_id))
                created = cursor.fetchone()
                if created is None:
                    raise RuntimeError("Failed to create team.")
                cursor.execute(
                    "INSERT INTO team_members (team_id, user_id, is_admin) VALUES (%s, %s, TRUE)",
                    (created["id"], leader_id),
                )
                members = self._fetch_members(cursor, [created["id"]])
        return _to_team_entity(created, members.get(created["id"], []))

    def get_by_id(self, team_id: int, connection: Connection | None = None) -> TeamEntity | None:
        return self._get_one("id = %s", team_id, connection)

    def get_by_code(self, code: str, connection: Connection | None = None) -> TeamEntity | None:
        return self._get_one("code = %s", code, connection)

    def get_by_name(self, name: str, connection: Connection | None = None) -> TeamEntity | None:
        return self._get_one("LOWER(name) = LOWER(%s)", name, connection)

    def list_for_member(
        self,
        user_id: str,
        connection: Connection | None = None,
    ) -> list[TeamEntity]:
        query = f"""
            SELECT {_TEAM_COLUMNS}
            FROM teams t
            WHERE EXISTS (
                SELECT 1 FROM team_members tm WHERE tm.team_id = t.id AND tm.user_id = %s
            )
            ORDER BY t.id ASC
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (user_id,))
                rows = cursor.fetchall()
                members = self._fetch_members(cursor, [row["id"] for row in rows])
        return [_to_team_entity(row, members.get(row["id"], [])) for row in rows]

    def add_member(
        self,
        *,
        team_id: int,
        user_id: str,
        is_admin: bool = False,
        connection: Connection | None = None,
    ) -> bool:
        query = """
            INSERT INTO team_members (team_id, user_id, is_admin)
            VALUES (%s, %s, %s)
            ON CONFLICT (team_id, user_id) DO NOTHING
        """
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (team_id, user_id, is_admin))
                return cursor.rowcount > 0

    def _get_one(
        self,
        where_sql: str,
        value: Any,
        connection: Connection | None,
    ) -> TeamEntity | None:
        query = f"SELECT {_TEAM_COLUMNS} FROM teams WHERE {where_sql}"
        with self._use_connection(connection) as active_connection:
            with active_connection.cursor() as cursor:
                cursor.execute(query, (value,))
                row = cursor.fetchone()
                if row is None:
                    return None
                members = self._fetch_members(cursor, [row["id"]])
        return _to_team_entity(row, members.get(row["id"], []))

    @staticmethod
    def _fetch_members(cursor: Cursor, team_ids: list[int]) -> dict[int, list[dict[str, Any]]]:
        if not team_ids:
            return {}
        cursor.execute(
            """
            SELECT team_id, user_id, is_admin
            FROM team_members
            WHERE team_id = ANY(%s)
            ORDER BY joined_at ASC, user_id ASC
            """,
            (team_ids,),
        )
        mapping: dict[int, list[dict[str, Any]]] = {team_id: [] for team_id in team_ids}
        for row in cursor.fetchall():
            mapping[row["team_id"]].append(row)
        return mapping
