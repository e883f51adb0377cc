from typing import Annotated

from fastapi import Depends

from timeharbor.core.auth import get_current_user_id
from timeharbor.core.config import Settings, get_settings
from timeharbor.repositories.clock_event_repository import ClockEventRepository
from timeharbor.repositories.health_repository import HealthRepository
from timeharbor.repositories.team_repository import TeamRepository
from timeharbor.repositories.ticket_repository import TicketRepository
from timeharbor.services.clock_event_service import ClockEventService
from timeharbor.services.health_service import HealthService
from timeharbor.services.team_service import TeamService
from timeharbor.services.ticket_service import TicketService
from timeharbor.services.timer_service import TimerService

CurrentUser = Annotated[str, Depends(get_current_user_id)]


def get_team_service() -> TeamService:
    return TeamService(team_repository=TeamRepository())


def get_ticket_service() -> TicketService:
    return TicketService(
        ticket_repository=TicketRepository(),
        team_service=get_team_service(),
    )


def get_clock_event_service() -> ClockEventService:
    return ClockEventService(
        clock_event_repository=ClockEventRepository(),
        ticket_repository=TicketRepository(),
        team_service=get_team_service(),
    )


def get_timer_service() -> TimerService:
    return TimerService(
        team_service=get_team_service(),
        ticket_service=get_ticket_service(),
        clock_event_service=get_clock_event_service(),
    )


def get_health_service(settings: Annotated[Settings, Depends(get_settings)]) -> HealthService:
    return HealthService(
        repository=HealthRepository(timeout_seconds=settings.health_timeout_seconds),
        settings=settings,
    )
