from fastapi import APIRouter

from timeharbor.api.routes.clock_events import router as clock_event_router
from timeharbor.api.routes.health import router as health_router
from timeharbor.api.routes.teams import router as team_router
from timeharbor.api.routes.tickets import router as ticket_router
from timeharbor.api.routes.timer import router as timer_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(team_router, tags=["teams"])
api_router.include_router(ticket_router, tags=["tickets"])
api_router.include_router(clock_event_router, tags=["clock-events"])
api_router.include_router(timer_router, tags=["timer"])
