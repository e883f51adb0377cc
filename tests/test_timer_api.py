from fastapi import status
from fastapi.testclient import TestClient
from tests.helpers.fakes import TimeTrackingStack

ALICE = {"X-User-Id": "alice"}


def test_timer_api_session_flow(api_client: TestClient, stack: TimeTrackingStack) -> None:
    team_id = stack.team.id

    clock_in = api_client.post(
        "/api/timer/clock-in",
        json={"team_id": team_id, "now": 0},
        headers=ALICE,
    )
    assert clock_in.status_code == status.HTTP_200_OK
    clock_event_id = clock_in.json()["data"]["clock_event_id"]

    created = api_client.post(
        "/api/timer/tickets",
        json={
            "team_id": team_id,
            "title": "Investigate outage",
            "initial_accumulated_seconds": 120,
            "now": 0,
        },
        headers=ALICE,
    )
    assert created.status_code == status.HTTP_201_CREATED
    first_id = created.json()["data"]["active_ticket_id"]
    assert first_id is not None

    second_id = api_client.post(
        "/api/tickets",
        json={"team_id": team_id, "title": "Write postmortem"},
        headers=ALICE,
    ).json()["data"]["id"]

    switched = api_client.post(
        "/api/timer/activate",
        json={"team_id": team_id, "ticket_id": second_id, "now": 30_000},
        headers=ALICE,
    )
    assert switched.status_code == status.HTTP_200_OK
    assert switched.json()["data"]["steps"][:2] == [
        f"stop_ticket:{first_id}",
        f"stop_clock_event_entry:{first_id}",
    ]

    state = api_client.get("/api/timer/state", params={"team_id": team_id}, headers=ALICE)
    assert state.status_code == status.HTTP_200_OK
    assert state.json()["data"]["clocked_in"] is True
    assert state.json()["data"]["active_ticket"]["id"] == second_id

    clock_out = api_client.post(
        "/api/timer/clock-out",
        json={"team_id": team_id, "now": 60_000},
        headers=ALICE,
    )
    assert clock_out.status_code == status.HTTP_200_OK
    assert clock_out.json()["data"]["steps"][-1] == f"stop_clock_event:{clock_event_id}"
    assert stack.tickets.store[first_id].accumulated_time == 150
    assert stack.tickets.store[second_id].accumulated_time == 30
    assert stack.clock_events.store[clock_event_id].end_time == 60_000


def test_timer_api_activate_without_session(
    api_client: TestClient,
    stack: TimeTrackingStack,
) -> None:
    ticket_id = api_client.post(
        "/api/tickets",
        json={"team_id": stack.team.id, "title": "Idle"},
        headers=ALICE,
    ).json()["data"]["id"]

    response = api_client.post(
        "/api/timer/activate",
        json={"team_id": stack.team.id, "ticket_id": ticket_id},
        headers=ALICE,
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"]["code"] == "NO_ACTIVE_CLOCK_EVENT"


def test_timer_api_rejects_outsiders(api_client: TestClient, stack: TimeTrackingStack) -> None:
    response = api_client.post(
        "/api/timer/clock-in",
        json={"team_id": stack.team.id},
        headers={"X-User-Id": "mallory"},
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"]["code"] == "NOT_A_TEAM_MEMBER"


def test_timer_api_rejects_negative_now(api_client: TestClient, stack: TimeTrackingStack) -> None:
    response = api_client.post(
        "/api/timer/clock-in",
        json={"team_id": stack.team.id, "now": -1},
        headers=ALICE,
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
