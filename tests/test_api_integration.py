import os
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient
from tests.helpers.db_env import isolated_database
from timeharbor.main import app

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


@pytest.fixture(scope="module")
def integration_client() -> Iterator[TestClient]:
    base_url = os.getenv("TEST_DATABASE_URL")
    if not base_url:
        pytest.skip("Set TEST_DATABASE_URL to run integration tests.")

    with isolated_database(base_url, schema_prefix="timeharbor_api_test"):
        with TestClient(app) as client:
            yield client


def test_time_tracking_end_to_end_flow(integration_client: TestClient) -> None:
    team = integration_client.post("/api/teams", json={"name": "Harbor"}, headers=ALICE)
    assert team.status_code == 201
    team_id = team.json()["data"]["id"]
    code = team.json()["data"]["code"]

    joined = integration_client.post("/api/teams/join", json={"code": code}, headers=BOB)
    assert joined.status_code == 200

    clock_in = integration_client.post(
        "/api/timer/clock-in",
        json={"team_id": team_id, "now": 0},
        headers=BOB,
    )
    assert clock_in.status_code == 200
    clock_event_id = clock_in.json()["data"]["clock_event_id"]

    created = integration_client.post(
        "/api/timer/tickets",
        json={"team_id": team_id, "title": "Seeded", "initial_accumulated_seconds": 120, "now": 0},
        headers=BOB,
    )
    assert created.status_code == 201
    first_id = created.json()["data"]["active_ticket_id"]

    second = integration_client.post(
        "/api/tickets",
        json={"team_id": team_id, "title": "Follow-up"},
        headers=BOB,
    )
    second_id = second.json()["data"]["id"]

    switched = integration_client.post(
        "/api/timer/activate",
        json={"team_id": team_id, "ticket_id": second_id, "now": 10_000},
        headers=BOB,
    )
    assert switched.status_code == 200

    first = integration_client.get(f"/api/tickets/{first_id}", headers=BOB).json()["data"]
    assert first["is_running"] is False
    assert first["accumulated_time"] == 130

    clock_out = integration_client.post(
        "/api/timer/clock-out",
        json={"team_id": team_id, "now": 20_000},
        headers=BOB,
    )
    assert clock_out.status_code == 200

    history = integration_client.get(f"/api/clock-events/team/{team_id}", headers=ALICE)
    assert history.status_code == 200
    event = history.json()["data"][0]
    assert event["id"] == clock_event_id
    assert event["is_open"] is False
    assert event["accumulated_time"] == 140
    entries = {entry["ticket_id"]: entry for entry in event["tickets"]}
    assert entries[first_id]["accumulated_time"] == 130
    assert entries[second_id]["accumulated_time"] == 10
    assert all(not entry["is_running"] for entry in event["tickets"])


def test_failed_activation_rolls_back_earlier_steps(integration_client: TestClient) -> None:
    team = integration_client.post("/api/teams", json={"name": "Breakwater"}, headers=ALICE)
    team_id = team.json()["data"]["id"]
    code = team.json()["data"]["code"]
    integration_client.post("/api/teams/join", json={"code": code}, headers=BOB)

    def create_ticket(title: str) -> int:
        response = integration_client.post(
            "/api/tickets",
            json={"team_id": team_id, "title": title},
            headers=ALICE,
        )
        return response.json()["data"]["id"]

    contested_id = create_ticket("Contested")
    bobs_id = create_ticket("Bob's current work")

    for headers in (ALICE, BOB):
        integration_client.post(
            "/api/timer/clock-in",
            json={"team_id": team_id, "now": 0},
            headers=headers,
        )
    integration_client.post(
        "/api/timer/activate",
        json={"team_id": team_id, "ticket_id": contested_id, "now": 0},
        headers=ALICE,
    )
    integration_client.post(
        "/api/timer/activate",
        json={"team_id": team_id, "ticket_id": bobs_id, "now": 0},
        headers=BOB,
    )

    response = integration_client.post(
        "/api/timer/activate",
        json={"team_id": team_id, "ticket_id": contested_id, "now": 5_000},
        headers=BOB,
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "TICKET_RUNNING_ELSEWHERE"

    bobs_ticket = integration_client.get(f"/api/tickets/{bobs_id}", headers=BOB).json()["data"]
    assert bobs_ticket["is_running"] is True
    assert bobs_ticket["start_timestamp"] == 0
