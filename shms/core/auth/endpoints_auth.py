import logging
import secrets
import uuid
from datetime import timedelta

from fastapi import Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.auth import cruds_auth, models_auth, schemas_auth
from shms.core.users import cruds_users, models_users, schemas_users
from shms.core.utils import security
from shms.core.utils.config import Settings
from shms.dependencies import get_db, get_email_tool, get_request_id, get_settings
from shms.types.exceptions import NotAuthenticatedError, ValidationError
from shms.types.module import CoreModule
from shms.types.standard_responses import Result
from shms.utils.communication.emails import EmailTool
from shms.utils.tools import utc_now

core_module = CoreModule(
    root="auth",
    tag="Auth",
)

shms_security_logger = logging.getLogger("shms.security")


@core_module.router.post(
    "/api/auth/login",
    response_model=schemas_auth.LoginResponse,
    status_code=200,
)
async def login(
    login_request: schemas_auth.LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    email_tool: EmailTool = Depends(get_email_tool),
    request_id: str = Depends(get_request_id),
):
    """
    First login step: check the password and send a 6 digits verification code by email.

    `identifier` is matched against the email if it contains an `@`, against the username otherwise.
    The returned `sessionToken` must be sent back with the code to `/api/auth/verify`.
    """
    if not login_request.identifier or not login_request.password:
        raise ValidationError("Username/email and password are required")

    identifier = login_request.identifier.strip()
    user = await cruds_users.get_active_user_by_identifier(
        db=db,
        identifier=identifier,
    )
    # verify_password simulates a check when the user is unknown, to limit timing attacks
    password_is_valid = security.verify_password(
        login_request.password,
        user.password_hash if user is not None else None,
    )
    if user is None or not password_is_valid:
        shms_security_logger.warning(
            f"Login: failed login attempt for {identifier} ({request_id})",
        )
        raise NotAuthenticatedError("Invalid credentials")

    now = utc_now()
    verification_code = security.generate_verification_code()
    login_session = models_auth.LoginSession(
        id=str(uuid.uuid4()),
        user_id=user.id,
        session_token=security.generate_token(),
        verification_code=verification_code,
        expires_at=now + timedelta(minutes=settings.LOGIN_CODE_EXPIRE_MINUTES),
        created_at=now,
    )
    await cruds_auth.create_login_session(db=db, login_session=login_session)

    code_sent = send_verification_code(
        email_tool=email_tool,
        user=user,
        verification_code=verification_code,
        settings=settings,
    )
    shms_security_logger.info(
        f"Login: password checked for user {user.id}, verification code sent: {code_sent} ({request_id})",
    )

    return schemas_auth.LoginResponse(
        message="Verification code sent to your email"
        if code_sent
        else "Verification code generated",
        user=schemas_users.User.model_validate(user),
        sessionToken=login_session.session_token,
        codeSent=code_sent,
    )


@core_module.router.post(
    "/api/auth/verify",
    response_model=schemas_auth.VerifyResponse,
    status_code=200,
)
async def verify(
    verify_request: schemas_auth.VerifyRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    request_id: str = Depends(get_request_id),
):
    """
    Second login step: check the emailed code and set the session cookies.

    A code can only be used once and expires after `LOGIN_CODE_EXPIRE_MINUTES`.
    """
    if not verify_request.sessionToken or not verify_request.verificationCode:
        raise ValidationError("Session token and verification code are required")

    login_session = await cruds_auth.get_pending_login_session(
        db=db,
        session_token=verify_request.sessionToken,
        now=utc_now(),
    )
    if login_session is None or not secrets.compare_digest(
        login_session.verification_code,
        verify_request.verificationCode.strip(),
    ):
        shms_security_logger.warning(
            f"Verify: invalid or expired verification code ({request_id})",
        )
        raise NotAuthenticatedError("Invalid or expired verification code")

    if not await cruds_auth.mark_login_session_as_verified(
        db=db,
        login_session_id=login_session.id,
    ):
        raise NotAuthenticatedError("Invalid or expired verification code")

    user = await cruds_users.get_user_by_id(db=db, user_id=login_session.user_id)
    if user is None or not user.is_active:
        raise NotAuthenticatedError("Invalid or expired verification code")

    session_token = security.create_session_token(
        settings=settings,
        data=schemas_auth.SessionData(
            sub=user.id,
            role=user.role,
            username=user.username,
            club_name=user.club_name,
        ),
    )
    set_session_cookies(response=response, session_token=session_token, settings=settings)
    shms_security_logger.info(f"Verify: user {user.id} logged in ({request_id})")

    return schemas_auth.VerifyResponse(
        message="Login successful",
        user=schemas_users.User.model_validate(user),
    )


@core_module.router.post(
    "/api/auth/resend-code",
    response_model=Result,
    status_code=200,
)
async def resend_code(
    resend_request: schemas_auth.ResendCodeRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    email_tool: EmailTool = Depends(get_email_tool),
    request_id: str = Depends(get_request_id),
):
    """
    Replace the verification code of a pending login and extend its expiration
    """
    if not resend_request.sessionToken:
        raise ValidationError("Session token is required")

    now = utc_now()
    login_session = await cruds_auth.get_pending_login_session(
        db=db,
        session_token=resend_request.sessionToken,
        now=now,
    )
    user = (
        await cruds_users.get_user_by_id(db=db, user_id=login_session.user_id)
        if login_session is not None
        else None
    )
    if login_session is None or user is None or not user.is_active:
        raise NotAuthenticatedError("Invalid or expired session")

    verification_code = security.generate_verification_code()
    await cruds_auth.renew_verification_code(
        db=db,
        login_session_id=login_session.id,
        verification_code=verification_code,
        expires_at=now + timedelta(minutes=settings.LOGIN_CODE_EXPIRE_MINUTES),
    )
    send_verification_code(
        email_tool=email_tool,
        user=user,
        verification_code=verification_code,
        settings=settings,
    )
    shms_security_logger.info(
        f"Resend_code: new verification code for user {user.id} ({request_id})",
    )

    return Result(message="Verification code resent")


@core_module.router.post(
    "/api/auth/logout",
    response_model=Result,
    status_code=200,
)
async def logout(
    response: Response,
    settings: Settings = Depends(get_settings),
):
    """
    Clear the session cookies
    """
    for cookie in (security.AUTHENTICATED_COOKIE, security.SESSION_COOKIE):
        response.delete_cookie(
            key=cookie,
            path="/",
            httponly=True,
            samesite="lax",
            secure=settings.SECURE_COOKIES,
        )
    return Result(message="Logged out successfully")


def set_session_cookies(
    response: Response,
    session_token: str,
    settings: Settings,
) -> None:
    max_age = settings.SESSION_EXPIRE_HOURS * 3600
    response.set_cookie(
        key=security.AUTHENTICATED_COOKIE,
        value="true",
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.SECURE_COOKIES,
    )
    response.set_cookie(
        key=security.SESSION_COOKIE,
        value=session_token,
        max_age=max_age,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.SECURE_COOKIES,
    )


def send_verification_code(
    email_tool: EmailTool,
    user: models_users.User,
    verification_code: str,
    settings: Settings,
) -> bool:
    """
    Send the verification code now, as the user is waiting for it. Return True if the email was sent.

    When SMTP is disabled, the code is written to the security log instead.
    """
    if not settings.SMTP_ACTIVE:
        shms_security_logger.info(
            f"Login: verification code for {user.username} is {verification_code}",
        )
        return False
    return email_tool.send_template(
        recipient=user.email,
        subject=f"Verification Code: {verification_code}",
        template_name="verification_code_mail.html",
        context={
            "username": user.username,
            "verification_code": verification_code,
            "expire_minutes": settings.LOGIN_CODE_EXPIRE_MINUTES,
        },
    )
