import uuid
from datetime import timedelta

import pytest_asyncio
from fastapi.testclient import TestClient

from shms.core.notification import models_notification
from shms.core.notification.types_notification import NotificationType
from shms.core.users import models_users
from shms.core.users.types_users import Role
from shms.utils.tools import utc_now
from tests.commons import (
    add_object_to_db,
    auth_headers,
    create_session_token,
    create_user,
)

admin_user: models_users.User
faculty_user: models_users.User
club_user: models_users.User

token_admin: str
token_faculty: str
token_club: str

faculty_notification_ids: list[str]
club_notification: models_notification.Notification


@pytest_asyncio.fixture(scope="module", autouse=True)
async def init_objects() -> None:
    global admin_user, faculty_user, club_user
    admin_user = await create_user(Role.admin)
    faculty_user = await create_user(Role.faculty)
    club_user = await create_user(Role.clubs)

    global token_admin, token_faculty, token_club
    token_admin = create_session_token(admin_user)
    token_faculty = create_session_token(faculty_user)
    token_club = create_session_token(club_user)

    global faculty_notification_ids, club_notification
    now = utc_now()
    faculty_notification_ids = []
    for index in range(3):
        notification = models_notification.Notification(
            id=str(uuid.uuid4()),
            user_id=faculty_user.id,
            title=f"Notification {index}",
            message="Your booking request has been submitted",
            type=NotificationType.info,
            created_at=now - timedelta(minutes=10 - index),
        )
        await add_object_to_db(notification)
        faculty_notification_ids.append(notification.id)

    club_notification = models_notification.Notification(
        id=str(uuid.uuid4()),
        user_id=club_user.id,
        title="Booking Request Rejected",
        message="Your booking request has been rejected",
        type=NotificationType.error,
        created_at=now,
    )
    await add_object_to_db(club_notification)


def test_get_notifications_without_user_id(client: TestClient) -> None:
    response = client.get(
        "/api/notifications",
        headers=auth_headers(token_faculty),
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User ID is required"}


def test_get_own_notifications(client: TestClient) -> None:
    response = client.get(
        f"/api/notifications?user_id={faculty_user.id}",
        headers=auth_headers(token_faculty),
    )
    assert response.status_code == 200
    json = response.json()
    assert json["success"] is True
    # Newest first
    assert [notification["title"] for notification in json["data"]] == [
        "Notification 2",
        "Notification 1",
        "Notification 0",
    ]
    assert {notification["user_id"] for notification in json["data"]} == {
        faculty_user.id,
    }


def test_get_notifications_with_limit(client: TestClient) -> None:
    response = client.get(
        f"/api/notifications?user_id={faculty_user.id}&limit=2",
        headers=auth_headers(token_faculty),
    )
    assert response.status_code == 200
    assert len(response.json()["data"]) == 2


def test_get_notifications_of_other_user(client: TestClient) -> None:
    response = client.get(
        f"/api/notifications?user_id={faculty_user.id}",
        headers=auth_headers(token_club),
    )
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_get_notifications_of_other_user_as_admin(client: TestClient) -> None:
    response = client.get(
        f"/api/notifications?user_id={club_user.id}",
        headers=auth_headers(token_admin),
    )
    assert response.status_code == 200
    assert [notification["id"] for notification in response.json()["data"]] == [
        club_notification.id,
    ]


def test_get_notifications_without_session(client: TestClient) -> None:
    response = client.get(f"/api/notifications?user_id={faculty_user.id}")
    assert response.status_code == 401


def test_mark_as_read_with_missing_fields(client: TestClient) -> None:
    response = client.patch(
        "/api/notifications",
        json={"user_id": faculty_user.id},
        headers=auth_headers(token_faculty),
    )
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "User ID and notification IDs array are required",
    }


def test_mark_as_read_for_other_user(client: TestClient) -> None:
    response = client.patch(
        "/api/notifications",
        json={
            "user_id": faculty_user.id,
            "notification_ids": faculty_notification_ids,
        },
        headers=auth_headers(token_club),
    )
    assert response.status_code == 403


def test_mark_as_read_ignores_other_users_notifications(client: TestClient) -> None:
    response = client.patch(
        "/api/notifications",
        json={
            "user_id": faculty_user.id,
            "notification_ids": [club_notification.id, "unknown"],
        },
        headers=auth_headers(token_faculty),
    )
    assert response.status_code == 200
    assert response.json()["data"] == []

    response = client.get(
        f"/api/notifications?user_id={club_user.id}",
        headers=auth_headers(token_club),
    )
    assert response.json()["data"][0]["is_read"] is False


def test_mark_as_read_is_idempotent(client: TestClient) -> None:
    body = {
        "user_id": faculty_user.id,
        "notification_ids": faculty_notification_ids[:2],
    }
    for _ in range(2):
        response = client.patch(
            "/api/notifications",
            json=body,
            headers=auth_headers(token_faculty),
        )
        assert response.status_code == 200
        json = response.json()
        assert json["message"] == "Notifications marked as read"
        assert {notification["id"] for notification in json["data"]} == set(
            faculty_notification_ids[:2],
        )
        assert all(notification["is_read"] for notification in json["data"])

    response = client.get(
        f"/api/notifications?user_id={faculty_user.id}&is_read=false",
        headers=auth_headers(token_faculty),
    )
    assert [notification["id"] for notification in response.json()["data"]] == [
        faculty_notification_ids[2],
    ]
