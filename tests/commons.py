import logging
import secrets
import uuid
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from typing import Any

from fastapi import BackgroundTasks, FastAPI
from sqlalchemy import NullPool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shms.core.auth import schemas_auth
from shms.core.users import cruds_users, models_users
from shms.core.users.types_users import Role
from shms.core.utils import security
from shms.core.utils.config import Settings
from shms.modules.booking import models_booking
from shms.modules.booking.types_booking import RequestStatus
from shms.types.sqlalchemy import Base, SessionLocalType
from shms.utils.communication.emails import EmailTool
from shms.utils.state import LifespanState, get_database_url
from shms.utils.tools import utc_now


class FailedToAddObjectToDB(Exception):
    """Exception raised when an object cannot be added to the database."""


def get_random_string(length: int = 5) -> str:
    return "".join(
        secrets.choice("abcdefghijklmnopqrstuvwxyz0123456789") for _ in range(length)
    )


async def override_init_app_state(
    app: FastAPI,
    settings: Settings,
    shms_error_logger: logging.Logger,
) -> LifespanState:
    """
    Initialize the state of the application with the test database.
    """
    return LifespanState(
        engine=init_test_engine(),
        SessionLocal=init_test_SessionLocal(),
    )


@lru_cache
def override_get_settings() -> Settings:
    """Override the get_settings function to use the testing session"""

    return Settings(_env_file="./tests/.env.test")


settings = override_get_settings()


engine = create_async_engine(
    get_database_url(settings),
    echo=settings.DATABASE_DEBUG,
    # We need to use NullPool as tests and the TestClient run in different event loops
    # See https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html#using-multiple-asyncio-event-loops
    poolclass=NullPool,
)

# Create a session for testing purposes
TestingSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def init_test_engine() -> AsyncEngine:
    return engine


def init_test_SessionLocal() -> SessionLocalType:
    return TestingSessionLocal


shms_error_logger = logging.getLogger("shms.error")

TEST_PASSWORD_HASH = security.get_password_hash(get_random_string())


class RecordingEmailTool(EmailTool):
    """
    Email tool keeping sent emails in memory instead of calling the SMTP server.

    Background tasks are run by the TestClient before the response is returned, so emails can be checked right after a request.
    """

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        settings: Settings,
        sent_emails: list[dict[str, Any]],
    ):
        super().__init__(background_tasks=background_tasks, settings=settings)
        self.sent_emails = sent_emails

    def deliver(
        self,
        recipient: str | list[str],
        subject: str,
        content: str,
    ) -> bool:
        self.sent_emails.append(
            {"recipient": recipient, "subject": subject, "content": content},
        )
        return True


def override_get_email_tool(sent_emails: list[dict[str, Any]]):
    """
    Return a `get_email_tool` override recording emails in `sent_emails`
    """

    def get_email_tool(background_tasks: BackgroundTasks) -> EmailTool:
        return RecordingEmailTool(
            background_tasks=background_tasks,
            settings=settings,
            sent_emails=sent_emails,
        )

    return get_email_tool


async def create_user(
    role: Role,
    user_id: str | None = None,
    username: str | None = None,
    email: str | None = None,
    password: str | None = None,
    club_name: str | None = None,
    branch: str | None = None,
    is_active: bool = True,
    created_at: datetime | None = None,
) -> models_users.User:
    """
    Add a dummy user to the database
    User property will be randomly generated if not provided
    """

    user_id = user_id or str(uuid.uuid4())
    password_hash = (
        security.get_password_hash(password) if password else TEST_PASSWORD_HASH
    )

    user = models_users.User(
        id=user_id,
        username=username or get_random_string(10),
        email=email or (get_random_string(10) + "@kitsw.ac.in"),
        password_hash=password_hash,
        role=role,
        created_at=created_at or utc_now(),
        club_name=club_name,
        branch=branch,
        is_active=is_active,
        is_email_verified=True,
    )

    async with TestingSessionLocal() as db:
        try:
            await cruds_users.create_user(db=db, user=user)
            await db.commit()
        except Exception as error:
            await db.rollback()
            raise FailedToAddObjectToDB from error
        finally:
            await db.close()

    async with TestingSessionLocal() as db:
        user_db = await cruds_users.get_user_by_id(db=db, user_id=user_id)
        assert user_db is not None
        return user_db


def create_session_token(
    user: models_users.User,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed session token for `user`, as the one set in the `user` cookie on login
    """

    session_data = schemas_auth.SessionData(
        sub=user.id,
        role=user.role,
        username=user.username,
        club_name=user.club_name,
    )
    return security.create_session_token(
        settings=settings,
        data=session_data,
        expires_delta=expires_delta,
    )


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def add_object_to_db(db_object: Base) -> None:
    """
    Add an object to the database
    """
    async with TestingSessionLocal() as db:
        try:
            db.add(db_object)
            await db.commit()
        except Exception as error:
            await db.rollback()
            raise FailedToAddObjectToDB from error
        finally:
            await db.close()


async def create_booking_request(
    requester: models_users.User,
    hall_ids: list[str],
    start_date: date,
    end_date: date | None = None,
    start_time: time = time(10, 0),
    end_time: time = time(12, 0),
    status: RequestStatus = RequestStatus.pending,
    event_name: str | None = None,
    expected_attendees: int = 50,
    created_at: datetime | None = None,
    booking_request_id: str | None = None,
) -> str:
    """
    Add a booking request and its halls to the database, return its id
    """
    booking_request_id = booking_request_id or str(uuid.uuid4())
    now = created_at or utc_now()
    await add_object_to_db(
        models_booking.BookingRequest(
            id=booking_request_id,
            requester_id=requester.id,
            event_name=event_name or f"Event {get_random_string()}",
            event_description=None,
            start_date=start_date,
            end_date=end_date or start_date,
            start_time=start_time,
            end_time=end_time,
            expected_attendees=expected_attendees,
            reason_for_booking="Department event",
            status=status,
            rejection_reason=None,
            created_at=now,
            updated_at=now,
        ),
    )
    for hall_id in hall_ids:
        await add_object_to_db(
            models_booking.BookingRequestHall(
                booking_request_id=booking_request_id,
                hall_id=hall_id,
            ),
        )
    return booking_request_id
