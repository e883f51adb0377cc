from fastapi import status
from fastapi.testclient import TestClient
from psycopg import OperationalError
from tests.helpers.fakes import TimeTrackingStack
from timeharbor.api.dependencies import get_ticket_service
from timeharbor.main import app

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


def test_ticket_api_requires_identity(client: TestClient) -> None:
    response = client.get("/api/tickets", params={"team_id": 1})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"


def test_ticket_api_timer_flow(api_client: TestClient, stack: TimeTrackingStack) -> None:
    created = api_client.post(
        "/api/tickets",
        json={"team_id": stack.team.id, "title": "Ship release", "initial_accumulated_seconds": 60},
        headers=ALICE,
    )
    assert created.status_code == status.HTTP_201_CREATED
    ticket_id = created.json()["data"]["id"]
    assert created.json()["data"]["formatted_time"] == "0:01:00"

    started = api_client.post(f"/api/tickets/{ticket_id}/start", json={"now": 1000}, headers=ALICE)
    assert started.status_code == status.HTTP_200_OK
    assert started.json()["data"]["is_running"] is True
    assert started.json()["data"]["started_by"] == "alice"

    stopped = api_client.post(f"/api/tickets/{ticket_id}/stop", json={"now": 4600}, headers=ALICE)
    assert stopped.status_code == status.HTTP_200_OK
    assert stopped.json()["data"]["accumulated_time"] == 63
    assert stopped.json()["data"]["is_running"] is False

    loaded = api_client.get(f"/api/tickets/{ticket_id}", headers=BOB)
    assert loaded.status_code == status.HTTP_200_OK
    assert loaded.json()["data"]["title"] == "Ship release"

    listed = api_client.get("/api/tickets", params={"team_id": stack.team.id}, headers=BOB)
    assert [item["id"] for item in listed.json()["data"]] == [ticket_id]


def test_ticket_api_second_running_ticket_conflict(
    api_client: TestClient,
    stack: TimeTrackingStack,
) -> None:
    first = api_client.post(
        "/api/tickets",
        json={"team_id": stack.team.id, "title": "First"},
        headers=ALICE,
    ).json()["data"]["id"]
    second = api_client.post(
        "/api/tickets",
        json={"team_id": stack.team.id, "title": "Second"},
        headers=ALICE,
    ).json()["data"]["id"]
    api_client.post(f"/api/tickets/{first}/start", json={"now": 0}, headers=ALICE)

    response = api_client.post(f"/api/tickets/{second}/start", json={"now": 10}, headers=ALICE)

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"]["code"] == "ACTIVE_TICKET_CONFLICT"
    assert response.json()["error"]["details"]["active_ticket_ids"] == [first]


def test_ticket_api_batch_status(api_client: TestClient, stack: TimeTrackingStack) -> None:
    ticket_id = api_client.post(
        "/api/tickets",
        json={"team_id": stack.team.id, "title": "Review"},
        headers=BOB,
    ).json()["data"]["id"]
    payload = {"team_id": stack.team.id, "ticket_ids": [ticket_id], "status": "reviewed"}

    denied = api_client.patch("/api/tickets/status", json=payload, headers=BOB)
    assert denied.status_code == status.HTTP_403_FORBIDDEN

    updated = api_client.patch("/api/tickets/status", json=payload, headers=ALICE)
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json() == {"updated": 1}

    reviewed = api_client.get(
        "/api/tickets",
        params={"team_id": stack.team.id, "status": "reviewed"},
        headers=ALICE,
    )
    assert [item["id"] for item in reviewed.json()["data"]] == [ticket_id]


def test_ticket_api_validation(api_client: TestClient, stack: TimeTrackingStack) -> None:
    negative = api_client.post(
        "/api/tickets",
        json={"team_id": stack.team.id, "title": "Bad", "initial_accumulated_seconds": -5},
        headers=ALICE,
    )
    assert negative.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT
    assert negative.json()["error"]["code"] == "VALIDATION_ERROR"

    bad_status = api_client.patch(
        "/api/tickets/status",
        json={"team_id": stack.team.id, "ticket_ids": [1], "status": "archived"},
        headers=ALICE,
    )
    assert bad_status.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


def test_ticket_api_error_structure(api_client: TestClient) -> None:
    response = api_client.get("/api/tickets/404", headers=ALICE)

    assert response.status_code == status.HTTP_404_NOT_FOUND
    payload = response.json()
    assert payload["error"]["code"] == "TICKET_NOT_FOUND"
    assert payload["error"]["details"] == {"ticket_id": 404}


class _UnavailableTicketService:
    def get_ticket(self, user_id: str, ticket_id: int) -> None:
        raise OperationalError("server closed the connection unexpectedly")


def test_ticket_api_store_failure_is_503(client: TestClient) -> None:
    app.dependency_overrides[get_ticket_service] = _UnavailableTicketService
    response = client.get("/api/tickets/1", headers=ALICE)
    app.dependency_overrides.clear()

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["error"]["code"] == "STORE_UNAVAILABLE"
