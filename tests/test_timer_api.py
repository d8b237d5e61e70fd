"""Timer endpoint tests."""

from src.models.enums import WorkItemStatus
from src.services.auth import create_access_token


def test_timer_lifecycle(client, auth_headers, make_work_item):
    """Test start, pause, resume and stop over HTTP."""
    item = make_work_item(status=WorkItemStatus.IN_PROGRESS)

    response = client.post(f"/api/v1/work-items/{item.id}/timer/start", headers=auth_headers)
    assert response.status_code == 201
    session = response.json()
    assert session["state"] == "running"
    assert session["user_id"] == auth_headers.user_id

    response = client.get(f"/api/v1/work-items/{item.id}/timer", headers=auth_headers)
    assert response.json()["id"] == session["id"]

    response = client.post(f"/api/v1/timers/{session['id']}/pause", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["state"] == "paused"
    assert response.json()["version"] == 2

    response = client.post(f"/api/v1/timers/{session['id']}/resume", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["state"] == "running"

    response = client.post(f"/api/v1/timers/{session['id']}/stop", headers=auth_headers)
    assert response.status_code == 200
    log = response.json()
    assert log["worked_minutes"] >= 0
    assert log["work_item_id"] == item.id

    response = client.get(f"/api/v1/work-items/{item.id}/timer", headers=auth_headers)
    assert response.json() is None

    response = client.get(f"/api/v1/work-items/{item.id}/time-logs", headers=auth_headers)
    assert len(response.json()) == 1


def test_start_twice_conflicts(client, auth_headers, make_work_item):
    """Test that a second start reports the running session."""
    item = make_work_item(status=WorkItemStatus.IN_PROGRESS)
    first = client.post(f"/api/v1/work-items/{item.id}/timer/start", headers=auth_headers)

    response = client.post(f"/api/v1/work-items/{item.id}/timer/start", headers=auth_headers)

    assert response.status_code == 409
    assert response.json()["error"] == "AlreadyRunningError"
    assert response.json()["details"]["session_id"] == first.json()["id"]


def test_pause_paused_timer_conflicts(client, auth_headers, make_work_item):
    """Test that an illegal transition maps to 409."""
    item = make_work_item(status=WorkItemStatus.IN_PROGRESS)
    session = client.post(
        f"/api/v1/work-items/{item.id}/timer/start", headers=auth_headers
    ).json()
    client.post(f"/api/v1/timers/{session['id']}/pause", headers=auth_headers)

    response = client.post(f"/api/v1/timers/{session['id']}/pause", headers=auth_headers)

    assert response.status_code == 409


def test_start_on_missing_item(client, auth_headers):
    """Test starting a timer on a missing work item."""
    response = client.post("/api/v1/work-items/999/timer/start", headers=auth_headers)
    assert response.status_code == 404


def test_other_users_timer_is_hidden(client, auth_headers, make_user, make_work_item):
    """Test that another user cannot control a timer they did not start."""
    item = make_work_item(status=WorkItemStatus.IN_PROGRESS)
    session = client.post(
        f"/api/v1/work-items/{item.id}/timer/start", headers=auth_headers
    ).json()
    other = make_user()
    other_headers = {"Authorization": f"Bearer {create_access_token(other.id, other.email)}"}

    response = client.post(f"/api/v1/timers/{session['id']}/stop", headers=other_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Timer not found"


def test_missing_timer(client, auth_headers):
    """Test acting on a timer that does not exist."""
    response = client.post("/api/v1/timers/999/pause", headers=auth_headers)
    assert response.status_code == 404
