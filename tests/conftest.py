from collections.abc import Iterator
from pathlib import Path

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from tests.helpers.fakes import (
    FakeClockEventRepository,
    FakeTeamRepository,
    FakeTicketRepository,
    TimeTrackingStack,
    fake_connection,
)
from timeharbor.api.dependencies import (
    get_clock_event_service,
    get_team_service,
    get_ticket_service,
    get_timer_service,
)
from timeharbor.main import app
from timeharbor.services.clock_event_service import ClockEventService
from timeharbor.services.team_service import TeamService
from timeharbor.services.ticket_service import TicketService
from timeharbor.services.timer_service import TimerService

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

SERVICE_MODULES = (
    "timeharbor.services.team_service",
    "timeharbor.services.ticket_service",
    "timeharbor.services.clock_event_service",
    "timeharbor.services.timer_service",
)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def stack(monkeypatch: pytest.MonkeyPatch) -> TimeTrackingStack:
    for module in SERVICE_MODULES:
        monkeypatch.setattr(f"{module}.get_connection", fake_connection)

    teams = FakeTeamRepository()
    tickets = FakeTicketRepository()
    clock_events = FakeClockEventRepository()
    team = teams.seed(name="Harbor", leader_id="alice", members=["bob"])

    team_service = TeamService(team_repository=teams)
    ticket_service = TicketService(ticket_repository=tickets, team_service=team_service)
    clock_event_service = ClockEventService(
        clock_event_repository=clock_events,
        ticket_repository=tickets,
        team_service=team_service,
    )
    timer_service = TimerService(
        team_service=team_service,
        ticket_service=ticket_service,
        clock_event_service=clock_event_service,
    )
    return TimeTrackingStack(
        teams=teams,
        tickets=tickets,
        clock_events=clock_events,
        team_service=team_service,
        ticket_service=ticket_service,
        clock_event_service=clock_event_service,
        timer_service=timer_service,
        team=team,
    )


@pytest.fixture
def api_client(client: TestClient, stack: TimeTrackingStack) -> Iterator[TestClient]:
    app.dependency_overrides[get_team_service] = lambda: stack.team_service
    app.dependency_overrides[get_ticket_service] = lambda: stack.ticket_service
    app.dependency_overrides[get_clock_event_service] = lambda: stack.clock_event_service
    app.dependency_overrides[get_timer_service] = lambda: stack.timer_service
    yield client
    app.dependency_overrides.clear()
