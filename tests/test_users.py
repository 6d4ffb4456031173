from datetime import timedelta

import pytest_asyncio
from fastapi.testclient import TestClient

from shms.core.users import models_users
from shms.core.users.types_users import Role
from shms.modules.booking.types_booking import RequestStatus
from shms.utils.tools import local_today, utc_now
from tests.commons import (
    auth_headers,
    create_booking_request,
    create_session_token,
    create_user,
    settings,
)

admin_user: models_users.User
faculty_user: models_users.User
club_user: models_users.User
inactive_club_user: models_users.User

token_admin: str
token_faculty: str

TODAY = local_today(settings)


@pytest_asyncio.fixture(scope="module", autouse=True)
async def init_objects() -> None:
    global admin_user, faculty_user, club_user, inactive_club_user
    now = utc_now()
    admin_user = await create_user(
        Role.admin,
        username="hod_admin",
        created_at=now - timedelta(days=3),
    )
    faculty_user = await create_user(
        Role.faculty,
        username="prof_iyer",
        email="iyer@kitsw.ac.in",
        branch="ECE",
        created_at=now - timedelta(days=2),
    )
    club_user = await create_user(
        Role.clubs,
        username="coding_club",
        club_name="Coding Club",
        created_at=now - timedelta(days=1),
    )
    inactive_club_user = await create_user(
        Role.clubs,
        username="chess_club",
        club_name="Chess Club",
        is_active=False,
        created_at=now,
    )

    global token_admin, token_faculty
    token_admin = create_session_token(admin_user)
    token_faculty = create_session_token(faculty_user)

    await create_booking_request(
        requester=faculty_user,
        hall_ids=["1"],
        start_date=TODAY + timedelta(days=7),
        status=RequestStatus.approved,
    )
    await create_booking_request(
        requester=faculty_user,
        hall_ids=["2"],
        start_date=TODAY - timedelta(days=7),
        status=RequestStatus.approved,
    )
    await create_booking_request(
        requester=faculty_user,
        hall_ids=["3"],
        start_date=TODAY + timedelta(days=8),
    )
    await create_booking_request(
        requester=faculty_user,
        hall_ids=["4"],
        start_date=TODAY + timedelta(days=9),
        status=RequestStatus.rejected,
    )


def test_get_users(client: TestClient) -> None:
    response = client.get("/api/users", headers=auth_headers(token_admin))
    assert response.status_code == 200
    json = response.json()
    assert json["success"] is True
    # Newest first, inactive accounts included
    assert [user["username"] for user in json["data"]] == [
        "chess_club",
        "coding_club",
        "prof_iyer",
        "hod_admin",
    ]
    assert all("password_hash" not in user for user in json["data"])


def test_get_users_by_role(client: TestClient) -> None:
    response = client.get("/api/users?role=clubs", headers=auth_headers(token_admin))
    assert response.status_code == 200
    assert {user["id"] for user in response.json()["data"]} == {
        club_user.id,
        inactive_club_user.id,
    }


def test_search_users(client: TestClient) -> None:
    response = client.get("/api/users?search=coding", headers=auth_headers(token_admin))
    assert [user["id"] for user in response.json()["data"]] == [club_user.id]

    # The search is case insensitive and also matches emails
    response = client.get("/api/users?search=IYER@", headers=auth_headers(token_admin))
    assert [user["id"] for user in response.json()["data"]] == [faculty_user.id]


def test_search_users_with_wildcard_characters(client: TestClient) -> None:
    response = client.get(
        "/api/users",
        params={"search": "%"},
        headers=auth_headers(token_admin),
    )
    assert response.status_code == 200
    assert response.json()["data"] == []

    # _ only matches an underscore
    response = client.get(
        "/api/users",
        params={"search": "c_ub"},
        headers=auth_headers(token_admin),
    )
    assert response.json()["data"] == []

    response = client.get(
        "/api/users",
        params={"search": "g_club"},
        headers=auth_headers(token_admin),
    )
    assert [user["id"] for user in response.json()["data"]] == [club_user.id]


def test_get_users_as_faculty(client: TestClient) -> None:
    response = client.get("/api/users", headers=auth_headers(token_faculty))
    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "message": "You are not allowed to access this resource",
    }


def test_read_current_user(client: TestClient) -> None:
    response = client.get("/api/users/me", headers=auth_headers(token_faculty))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == faculty_user.id
    assert data["branch"] == "ECE"
    assert data["role"] == "faculty"


def test_read_current_user_with_inactive_account(client: TestClient) -> None:
    token = create_session_token(inactive_club_user)
    response = client.get("/api/users/me", headers=auth_headers(token))
    assert response.status_code == 401


def test_read_user(client: TestClient) -> None:
    response = client.get(
        f"/api/users/{faculty_user.id}",
        headers=auth_headers(token_admin),
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["username"] == "prof_iyer"
    assert len(user["bookings"]) == 4
    assert user["stats"] == {
        "totalBookings": 4,
        "approved": 2,
        "pending": 1,
        "rejected": 1,
        "upcomingEvents": 1,
    }


def test_read_unknown_user(client: TestClient) -> None:
    response = client.get("/api/users/unknown", headers=auth_headers(token_admin))
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "User not found"}


def test_read_user_as_faculty(client: TestClient) -> None:
    response = client.get(
        f"/api/users/{faculty_user.id}",
        headers=auth_headers(token_faculty),
    )
    assert response.status_code == 403
