"""HTTP API over an in-memory service."""

import pytest
from fastapi.testclient import TestClient

from lifesync.main import create_app


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as client:
        yield client


def signup(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "ada@example.com", "password": "correct-horse", "name": "Ada"},
    )
    assert response.json() == {"status": "success"}


def test_status(client):
    body = client.get("/status").json()
    assert body["status"] == "running"
    assert body["signed_in"] is False


def test_user_requires_session(client):
    assert client.get("/api/user").status_code == 401


def test_habit_flow(client):
    signup(client)

    created = client.post(
        "/api/tasks",
        json={"name": "Read", "start_date": "2024-03-01", "end_date": "2024-03-31", "category": "Personal"},
    ).json()
    assert created["status"] == "success"
    task_id = created["task"]["id"]

    assert client.post(f"/api/tasks/{task_id}/complete", json={"remark": "Chapter 1"}).json() == {"status": "success"}
    assert client.post(f"/api/tasks/{task_id}/complete", json={"remark": "Again"}).json() == {"status": "error"}
    assert client.post(
        f"/api/tasks/{task_id}/complete", json={"day": "2024-03-11"}
    ).json() == {"status": "error"}

    state = client.get("/api/state").json()
    assert state["tasks"][0]["completedDates"] == ["2024-03-15"]
    assert state["tasks"][0]["streaks"] == 1
    assert len(state["proofs"]) == 1

    calendar = client.get("/api/calendar/2024/3").json()
    by_date = {day["date"]: day for day in calendar}
    assert by_date["2024-03-15"]["status"] == "all"
    assert by_date["2024-03-14"]["status"] == "none"
    assert by_date["2024-03-11"]["locked"] is True

    toasts = client.get("/api/toasts").json()
    assert any(t["message"] == "Task completed! Keep it up!" for t in toasts)
    assert client.get("/api/toasts").json() == []


def test_bad_month(client):
    assert client.get("/api/calendar/2024/13").status_code == 422


def test_views_and_settings(client):
    signup(client)
    client.post("/api/todos", json={"text": "Buy milk"})
    client.post("/api/expenses", json={"amount": 9.5, "category": "Food"})

    dashboard = client.get("/api/dashboard").json()
    assert dashboard["pending_todos"] == 1
    assert dashboard["spent_today"] == 9.5

    assert client.get("/api/insights").json()["total_tasks"] == 0

    assert client.post("/api/settings/dark-mode").json() == {"status": "success"}
    assert client.get("/api/state").json()["settings"]["darkMode"] is False


def test_export_import(client):
    signup(client)
    backup = client.get("/api/export").json()["data"]

    assert client.post("/api/import", json={"data": backup}).json() == {"status": "success"}
    assert client.post("/api/import", json={"data": "nope"}).json() == {"status": "error"}


def test_logout(client):
    signup(client)
    assert client.get("/api/user").json()["name"] == "Ada"

    assert client.post("/api/auth/logout").json() == {"status": "success"}
    assert client.get("/status").json()["signed_in"] is False


def test_task_detail_and_proof_wall(client):
    signup(client)
    task_id = client.post(
        "/api/tasks", json={"name": "Read", "start_date": "2024-03-01", "end_date": "2024-03-31"}
    ).json()["task"]["id"]
    client.post(f"/api/tasks/{task_id}/complete", json={"remark": "Done"})

    proofs = client.get("/api/proofs", params={"task_id": task_id, "start": "2024-03-15"}).json()
    assert [proof["remark"] for proof in proofs] == ["Done"]
    assert client.get("/api/proofs", params={"end": "2024-03-14"}).json() == []

    detail = client.get(f"/api/tasks/{task_id}").json()
    assert detail["task"]["completedDates"] == ["2024-03-15"]
    assert detail["missed"][0] == "2024-03-14"
    assert client.get("/api/tasks/missing").status_code == 404


def test_update_journal(client):
    signup(client)
    client.post("/api/journal", json={"subject": "Day", "content": "Good"})
    entry_id = client.get("/api/state").json()["journal"][0]["id"]

    response = client.put(f"/api/journal/{entry_id}", json={"subject": "Day", "content": "Great"})

    assert response.json() == {"status": "success"}
    assert client.get("/api/state").json()["journal"][0]["content"] == "Great"
    assert client.put("/api/journal/missing", json={"content": "x"}).status_code == 404
