"""API endpoint tests."""

from datetime import timedelta

from src.models import EscalationRecord, EscalationRule, Notification
from src.models.enums import (
    EscalationStatus,
    EscalationTarget,
    NotificationPriority,
    NotificationType,
    TriggerType,
    UserRole,
    WorkItemKind,
    WorkItemStatus,
)
from src.models.mixins import utcnow
from src.services.auth import create_access_token


def headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


def test_health_check(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requires_authentication(client):
    """Test that user endpoints reject requests without a token."""
    response = client.get("/api/v1/notifications")
    assert response.status_code in (401, 403)


def test_invalid_token(client):
    """Test that a forged token is rejected."""
    response = client.get(
        "/api/v1/notifications", headers={"Authorization": "Bearer not-a-real-token"}
    )
    assert response.status_code == 401


# Deadlines


def test_deadline_range(client, auth_headers, make_category):
    """Test the deadline window of a category."""
    category = make_category(min_deadline_hours=8, max_deadline_hours=48)

    response = client.get(
        f"/api/v1/categories/{category.id}/deadline-range",
        headers=auth_headers,
        params={"start_date": "2026-03-02T09:00:00Z"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["bounds"] == {"min_hours": 8, "max_hours": 48, "suggested_hours": 24}
    assert data["min"].startswith("2026-03-02T17:00:00")
    assert data["max"].startswith("2026-03-04T09:00:00")


def test_deadline_range_unknown_category(client, auth_headers):
    """Test that a missing category maps to 404."""
    response = client.get("/api/v1/categories/999/deadline-range", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"


def test_validate_deadline_too_short(client, auth_headers, make_category):
    """Test validating a deadline under the category minimum."""
    category = make_category()

    response = client.post(
        f"/api/v1/categories/{category.id}/deadline/validate",
        headers=auth_headers,
        json={"deadline": "2026-03-02T11:00:00Z", "start_date": "2026-03-02T09:00:00Z"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is False
    assert data["is_too_short"] is True
    assert data["hours_until_deadline"] == 2


def test_validate_deadline_before_start(client, auth_headers, make_category):
    """Test that a deadline before its start date is a validation error."""
    category = make_category()

    response = client.post(
        f"/api/v1/categories/{category.id}/deadline/validate",
        headers=auth_headers,
        json={"deadline": "2026-03-02T08:00:00Z", "start_date": "2026-03-02T09:00:00Z"},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


def test_estimate_timeline(client, auth_headers, make_category):
    """Test timeline estimation for a new request."""
    category = make_category(default_duration_hours=6)

    response = client.get(
        f"/api/v1/categories/{category.id}/timeline",
        headers=auth_headers,
        params={"request_date": "2026-03-02T09:00:00Z"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["estimated_start"].startswith("2026-03-02T11:00:00")
    assert data["estimated_end"].startswith("2026-03-02T17:00:00")
    assert data["estimated_duration_hours"] == 6


def test_validate_timeline(client, auth_headers):
    """Test timeline consistency checks."""
    response = client.post(
        "/api/v1/timeline/validate",
        headers=auth_headers,
        json={
            "estimated_start": "2026-03-02T09:00:00Z",
            "estimated_end": "2026-03-02T18:00:00Z",
            "deadline": "2026-03-02T17:00:00Z",
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "is_valid": False,
        "errors": ["Estimated end must not be after the deadline"],
    }


def test_refresh_stats_requires_leader(client, auth_headers, make_category):
    """Test that staff cannot refresh category statistics."""
    category = make_category()

    response = client.post(f"/api/v1/categories/{category.id}/stats/refresh", headers=auth_headers)

    assert response.status_code == 403


def test_refresh_stats(client, make_user, make_category, make_work_item):
    """Test refreshing category statistics as a leader."""
    leader = make_user(role=UserRole.LEADER)
    category = make_category()
    created_at = utcnow() - timedelta(days=2)
    for hours in (4, 8):
        make_work_item(
            category_id=category.id,
            status=WorkItemStatus.DONE,
            created_at=created_at,
            completed_at=created_at + timedelta(hours=hours),
        )

    response = client.post(
        f"/api/v1/categories/{category.id}/stats/refresh", headers=headers_for(leader)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["sample_size"] == 2
    assert data["avg_hours"] == 6


# SLA


def test_sla_status(client, auth_headers, make_work_item):
    """Test reading the SLA Clock of a work item."""
    created_at = utcnow() - timedelta(hours=1)
    item = make_work_item(
        status=WorkItemStatus.IN_PROGRESS,
        created_at=created_at,
        deadline=created_at + timedelta(hours=10),
        sla_window_minutes=600,
    )

    response = client.get(f"/api/v1/work-items/{item.id}/sla", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["has_sla"] is True
    assert data["status"] == "on_time"
    assert 80 < data["percent_remaining"] <= 90


def test_sla_status_without_deadline(client, auth_headers, make_work_item):
    """Test reading a work item that has no SLA."""
    item = make_work_item()

    response = client.get(f"/api/v1/work-items/{item.id}/sla", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["has_sla"] is False
    assert response.json()["status"] is None


def test_sla_status_overdue(client, auth_headers, make_work_item):
    """Test that a passed deadline reads as overdue."""
    created_at = utcnow() - timedelta(hours=5)
    item = make_work_item(
        status=WorkItemStatus.IN_PROGRESS,
        created_at=created_at,
        deadline=created_at + timedelta(hours=4),
        sla_window_minutes=240,
    )

    response = client.get(f"/api/v1/work-items/{item.id}/sla", headers=auth_headers)

    assert response.json()["status"] == "overdue"
    assert response.json()["remaining_minutes"] < 0


# Notifications


def add_notification(db, user_id, title="Reminder", is_read=False):
    notification = Notification(
        user_id=user_id,
        type=NotificationType.REMINDER,
        priority=NotificationPriority.INFO,
        title=title,
        message="Still working on it?",
        extra={"work_item_id": 1},
        is_read=is_read,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def test_list_notifications(client, db, auth_headers):
    """Test listing the inbox."""
    add_notification(db, auth_headers.user_id)
    add_notification(db, auth_headers.user_id, is_read=True)

    response = client.get("/api/v1/notifications", headers=auth_headers)
    assert response.status_code == 200
    assert len(response.json()) == 2
    assert response.json()[0]["metadata"] == {"work_item_id": 1}

    response = client.get(
        "/api/v1/notifications", headers=auth_headers, params={"unread_only": True}
    )
    assert len(response.json()) == 1


def test_unread_count_and_read_all(client, db, auth_headers):
    """Test the unread counter and marking everything read."""
    for _ in range(3):
        add_notification(db, auth_headers.user_id)

    assert client.get("/api/v1/notifications/unread-count", headers=auth_headers).json() == {
        "count": 3
    }

    response = client.post("/api/v1/notifications/read-all", headers=auth_headers)
    assert response.json() == {"updated": 3}

    response = client.get("/api/v1/notifications/unread-count", headers=auth_headers)
    assert response.json() == {"count": 0}


def test_mark_notification_read(client, db, auth_headers):
    """Test marking one notification read."""
    notification = add_notification(db, auth_headers.user_id)

    response = client.post(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert response.json()["read_at"] is not None


def test_mark_other_users_notification(client, db, auth_headers, make_user):
    """Test that another user's notification is not found."""
    other = make_user()
    notification = add_notification(db, other.id)

    response = client.post(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers)

    assert response.status_code == 404


def test_notification_settings_defaults(client, auth_headers):
    """Test that settings are created on first read."""
    response = client.get("/api/v1/notifications/settings", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["dnd_enabled"] is False
    assert data["timezone"] == "UTC"


def test_update_notification_settings(client, auth_headers):
    """Test updating Do-Not-Disturb settings."""
    response = client.put(
        "/api/v1/notifications/settings",
        headers=auth_headers,
        json={
            "dnd_enabled": True,
            "dnd_start_time": "22:00:00",
            "dnd_end_time": "07:00:00",
            "dnd_days": [1, 2, 3, 4, 5],
            "timezone": "Europe/Berlin",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["dnd_enabled"] is True
    assert data["dnd_start_time"] == "22:00:00"
    assert data["dnd_days"] == [1, 2, 3, 4, 5]
    assert data["timezone"] == "Europe/Berlin"


def test_update_settings_rejects_bad_values(client, auth_headers):
    """Test that unknown timezones and weekdays are rejected."""
    response = client.put(
        "/api/v1/notifications/settings",
        headers=auth_headers,
        json={"timezone": "Nowhere/Special"},
    )
    assert response.status_code == 422

    response = client.put(
        "/api/v1/notifications/settings", headers=auth_headers, json={"dnd_days": [7]}
    )
    assert response.status_code == 422


# Escalations


def add_escalation(db, recipient, make_work_item):
    item = make_work_item(kind=WorkItemKind.REQUEST)
    rule = EscalationRule(
        name="Unconfirmed requests",
        trigger_type=TriggerType.NO_CONFIRMATION,
        threshold_hours=24,
        escalate_to=EscalationTarget.ADMIN,
        notification_channels=["in_app"],
    )
    db.add(rule)
    db.commit()
    record = EscalationRecord(
        rule_id=rule.id,
        entity_type=WorkItemKind.REQUEST,
        entity_id=item.id,
        recipient_id=recipient.id,
        reason="Not confirmed for 25h",
        status=EscalationStatus.PENDING,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def test_escalation_lifecycle(client, db, make_user, make_work_item):
    """Test listing, acknowledging and resolving an escalation."""
    admin = make_user(role=UserRole.ADMIN)
    headers = headers_for(admin)
    record = add_escalation(db, admin, make_work_item)

    response = client.get("/api/v1/escalations", headers=headers)
    assert response.status_code == 200
    assert [e["id"] for e in response.json()] == [record.id]

    response = client.post(f"/api/v1/escalations/{record.id}/acknowledge", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "acknowledged"

    response = client.post(f"/api/v1/escalations/{record.id}/acknowledge", headers=headers)
    assert response.status_code == 409

    response = client.post(
        f"/api/v1/escalations/{record.id}/resolve",
        headers=headers,
        json={"notes": "Called the requester"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "resolved"
    assert response.json()["notes"] == "Called the requester"

    response = client.get("/api/v1/escalations", headers=headers)
    assert response.json() == []

    response = client.get("/api/v1/escalations/stats", headers=headers)
    assert response.json() == {"pending": 0, "acknowledged": 0, "resolved": 1, "total": 1}


def test_escalation_other_recipient(client, db, auth_headers, make_user, make_work_item):
    """Test that only the recipient can act on an escalation."""
    admin = make_user(role=UserRole.ADMIN)
    record = add_escalation(db, admin, make_work_item)

    response = client.post(f"/api/v1/escalations/{record.id}/acknowledge", headers=auth_headers)

    assert response.status_code == 409


def test_escalation_not_found(client, auth_headers):
    """Test acting on a missing escalation."""
    response = client.post("/api/v1/escalations/999/resolve", headers=auth_headers, json={})
    assert response.status_code == 404
