"""Domain models and API schemas."""

from timeharbor.models.entities import (
    ClockEventEntity,
    ClockEventTicketEntity,
    TeamEntity,
    TicketEntity,
    TicketStatus,
)

__all__ = [
    "ClockEventEntity",
    "ClockEventTicketEntity",
    "TeamEntity",
    "TicketEntity",
    "TicketStatus",
]
