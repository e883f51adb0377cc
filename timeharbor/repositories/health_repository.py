from psycopg import Connection, Error, connect

from timeharbor.models.schemas.health import StoreHealth


class HealthRepository:
    def __init__(self, timeout_seconds: int = 3) -> None:
        self.timeout_seconds = timeout_seconds

    def check_connection(self, database_url: str) -> StoreHealth:
        try:
            with connect(database_url, connect_timeout=self.timeout_seconds) as connection:
                connection.execute("SELECT 1")
                revision = self._schema_revision(connection)
        except Error as exc:
            return StoreHealth(connected=False, message=str(exc))
        return StoreHealth(connected=True, schema_revision=revision)

    def _schema_revision(self, connection: Connection) -> str | None:
        exists = connection.execute("SELECT to_regclass('alembic_version') IS NOT NULL").fetchone()
        if not exists or not exists[0]:
            return None
        row = connection.execute("SELECT version_num FROM alembic_version").fetchone()
        return row[0] if row else None
