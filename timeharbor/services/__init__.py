"""Business services."""

from timeharbor.services.clock_event_service import ClockEventService
from timeharbor.services.health_service import HealthService
from timeharbor.services.team_service import TeamService
from timeharbor.services.ticket_service import TicketService
from timeharbor.services.timer_service import TimerService

__all__ = [
    "ClockEventService",
    "HealthService",
    "TeamService",
    "TicketService",
    "TimerService",
]
