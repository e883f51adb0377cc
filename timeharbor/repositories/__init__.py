"""Database repositories."""

from timeharbor.repositories.clock_event_repository import ClockEventRepository
from timeharbor.repositories.health_repository import HealthRepository
from timeharbor.repositories.team_repository import TeamRepository
from timeharbor.repositories.ticket_repository import TicketRepository

__all__ = [
    "ClockEventRepository",
    "HealthRepository",
    "TeamRepository",
    "TicketRepository",
]
