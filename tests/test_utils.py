from datetime import time, timedelta

import pytest
from fastapi import BackgroundTasks
from pytest_mock import MockerFixture

from shms.core.auth import schemas_auth
from shms.core.users.types_users import Role
from shms.core.utils import security
from shms.core.utils.config import Settings
from shms.modules.booking.types_booking import RequestStatus
from shms.modules.booking.utils_booking import get_blocking_statuses
from shms.types.exceptions import (
    DotenvInvalidVariableError,
    DotenvMissingVariableError,
    InvalidSessionTokenError,
)
from shms.utils.communication.emails import EmailTool
from shms.utils.mail.mailworker import send_email
from shms.utils.tools import format_time, local_midnight
from tests.commons import settings

SECRET = "a-secret-key-long-enough-to-sign-session-tokens"


def test_password_hash() -> None:
    password_hash = security.get_password_hash("my-password")
    assert password_hash != "my-password"
    assert security.verify_password("my-password", password_hash)
    assert not security.verify_password("other-password", password_hash)


def test_verify_password_for_unknown_user() -> None:
    assert not security.verify_password("my-password", None)


def test_generate_verification_code() -> None:
    for _ in range(20):
        code = security.generate_verification_code()
        assert len(code) == 6
        assert code.isdigit()


def test_session_token() -> None:
    token = security.create_session_token(
        settings=settings,
        data=schemas_auth.SessionData(
            sub="user-id",
            role=Role.clubs,
            username="nss",
            club_name="NSS",
        ),
    )
    session = security.decode_session_token(settings=settings, token=token)
    assert session.sub == "user-id"
    assert session.role == Role.clubs
    assert session.club_name == "NSS"


def test_session_token_signed_with_another_key() -> None:
    other_settings = settings.model_copy(
        update={"ACCESS_TOKEN_SECRET_KEY": "another-secret-key-for-session-tokens"},
    )
    token = security.create_session_token(
        settings=other_settings,
        data=schemas_auth.SessionData(sub="user-id", role=Role.admin, username="a"),
    )
    with pytest.raises(InvalidSessionTokenError):
        security.decode_session_token(settings=settings, token=token)


def test_expired_session_token() -> None:
    token = security.create_session_token(
        settings=settings,
        data=schemas_auth.SessionData(sub="user-id", role=Role.admin, username="a"),
        expires_delta=timedelta(seconds=-10),
    )
    with pytest.raises(InvalidSessionTokenError):
        security.decode_session_token(settings=settings, token=token)


def test_session_token_with_unknown_role() -> None:
    token = security.create_session_token(
        settings=settings,
        data=schemas_auth.SessionData(sub="user-id", role=Role.admin, username="a"),
    )
    # Forge a token with a valid signature but an unknown role
    payload = security.jwt.decode(
        token,
        settings.ACCESS_TOKEN_SECRET_KEY,
        algorithms=[security.jwt_algorithm],
    )
    payload["role"] = "student"
    forged_token = security.jwt.encode(
        payload,
        settings.ACCESS_TOKEN_SECRET_KEY,
        algorithm=security.jwt_algorithm,
    )
    with pytest.raises(InvalidSessionTokenError):
        security.decode_session_token(settings=settings, token=forged_token)


def test_settings_require_client_url_trailing_slash() -> None:
    with pytest.raises(DotenvInvalidVariableError):
        Settings(
            _env_file=None,
            ACCESS_TOKEN_SECRET_KEY=SECRET,
            SQLITE_DB="test.db",
            CLIENT_URL="http://127.0.0.1:3000",
        )


def test_settings_require_a_database() -> None:
    with pytest.raises(DotenvMissingVariableError):
        Settings(
            _env_file=None,
            ACCESS_TOKEN_SECRET_KEY=SECRET,
            SQLITE_DB=None,
            POSTGRES_HOST="localhost",
        )


def test_settings_timezone() -> None:
    midnight = local_midnight(settings)
    assert midnight.tzinfo is not None
    assert midnight.time() == time.min
    assert midnight.utcoffset() == timedelta(hours=5, minutes=30)


def test_format_time() -> None:
    assert format_time(time(9, 5)) == "09:05"


def test_blocking_statuses() -> None:
    assert get_blocking_statuses(Role.faculty) == [RequestStatus.approved]
    assert get_blocking_statuses(Role.clubs) == [
        RequestStatus.approved,
        RequestStatus.pending,
    ]
    assert RequestStatus.pending in get_blocking_statuses(Role.admin)


def test_email_tool_render() -> None:
    email_tool = EmailTool(background_tasks=BackgroundTasks(), settings=settings)
    content = email_tool.render(
        "verification_code_mail.html",
        {
            "username": "<script>",
            "verification_code": "012345",
            "expire_minutes": 10,
        },
    )
    assert "012345" in content
    # Templates are autoescaped
    assert "<script>" not in content
    assert "&lt;script&gt;" in content


def test_email_tool_without_smtp(mocker: MockerFixture) -> None:
    mocked_send_email = mocker.patch("shms.utils.communication.emails.send_email")
    email_tool = EmailTool(background_tasks=BackgroundTasks(), settings=settings)

    assert not email_tool.deliver(
        recipient="faculty@kitsw.ac.in",
        subject="Approved: Seminar",
        content="<p>Approved</p>",
    )
    mocked_send_email.assert_not_called()


def test_email_tool_logs_smtp_failures(mocker: MockerFixture) -> None:
    mocked_send_email = mocker.patch(
        "shms.utils.communication.emails.send_email",
        side_effect=ConnectionRefusedError,
    )
    email_tool = EmailTool(
        background_tasks=BackgroundTasks(),
        settings=settings.model_copy(update={"SMTP_ACTIVE": True}),
    )

    assert not email_tool.send_template(
        recipient="faculty@kitsw.ac.in",
        subject="Verification Code: 012345",
        template_name="verification_code_mail.html",
        context={
            "username": "faculty",
            "verification_code": "012345",
            "expire_minutes": 10,
        },
    )
    mocked_send_email.assert_called_once()


def test_email_tool_sends_in_background(mocker: MockerFixture) -> None:
    mocked_send_email = mocker.patch("shms.utils.communication.emails.send_email")
    background_tasks = BackgroundTasks()
    email_tool = EmailTool(
        background_tasks=background_tasks,
        settings=settings.model_copy(update={"SMTP_ACTIVE": True}),
    )

    email_tool.send_template_in_background(
        recipient=["admin@kitsw.ac.in"],
        subject="New Request: Seminar",
        template_name="verification_code_mail.html",
        context={
            "username": "admin",
            "verification_code": "000000",
            "expire_minutes": 10,
        },
    )
    # Nothing is sent before the response is returned
    mocked_send_email.assert_not_called()
    assert len(background_tasks.tasks) == 1


def test_send_email(mocker: MockerFixture) -> None:
    mocked_smtp = mocker.patch("shms.utils.mail.mailworker.smtplib.SMTP")
    smtp_settings = settings.model_copy(
        update={
            "SMTP_ACTIVE": True,
            "SMTP_SERVER": "smtp.kitsw.ac.in",
            "SMTP_USERNAME": "shms",
            "SMTP_PASSWORD": "password",
            "SMTP_EMAIL": "shms@kitsw.ac.in",
        },
    )

    send_email(
        recipient=["faculty@kitsw.ac.in", ""],
        subject="Approved: Seminar",
        content="<p>Approved</p>",
        settings=smtp_settings,
    )

    mocked_smtp.assert_called_once_with("smtp.kitsw.ac.in", 587)
    server = mocked_smtp.return_value.__enter__.return_value
    server.login.assert_called_once_with("shms", "password")
    message, sender, recipients = server.send_message.call_args.args
    assert sender == "shms@kitsw.ac.in"
    assert recipients == ["faculty@kitsw.ac.in"]
    assert message["Subject"] == "Approved: Seminar"


def test_send_email_without_recipient(mocker: MockerFixture) -> None:
    mocked_smtp = mocker.patch("shms.utils.mail.mailworker.smtplib.SMTP")
    send_email(
        recipient="",
        subject="Approved: Seminar",
        content="<p>Approved</p>",
        settings=settings,
    )
    mocked_smtp.assert_not_called()
