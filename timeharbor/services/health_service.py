import logging

from timeharbor.core.config import Settings
from timeharbor.models.schemas.health import HealthResponse
from timeharbor.repositories.health_repository import HealthRepository

logger = logging.getLogger(__name__)


class HealthService:
    """Reports ``ok`` only when the store answers and carries a migrated schema."""

    def __init__(self, repository: HealthRepository, settings: Settings) -> None:
        self.repository = repository
        self.settings = settings

    def get_health(self) -> HealthResponse:
        store = self.repository.check_connection(self.settings.database_url)
        if not store.connected:
            logger.warning("Store unreachable: %s", store.message)
        elif store.schema_revision is None:
            store.message = "Schema has not been migrated."
            logger.warning("Store reachable but no migration has been applied")

        healthy = store.connected and store.schema_revision is not None
        return HealthResponse(
            status="ok" if healthy else "degraded",
            environment=self.settings.app_env,
            store=store,
        )
