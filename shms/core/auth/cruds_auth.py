from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.auth import models_auth


async def create_login_session(
    db: AsyncSession,
    login_session: models_auth.LoginSession,
) -> None:
    db.add(login_session)
    await db.flush()


async def get_pending_login_session(
    db: AsyncSession,
    session_token: str,
    now: datetime,
) -> models_auth.LoginSession | None:
    """
    Return the unverified and unexpired login session with the given token
    """
    result = await db.execute(
        select(models_auth.LoginSession).where(
            models_auth.LoginSession.session_token == session_token,
            models_auth.LoginSession.is_verified.is_(False),
            models_auth.LoginSession.expires_at > now,
        ),
    )
    return result.scalars().first()


async def mark_login_session_as_verified(
    db: AsyncSession,
    login_session_id: str,
) -> bool:
    """
    Mark a pending login session as verified.

    The update is conditional so a code can only be used once. Return False if the session was already verified.
    """
    result = await db.execute(
        update(models_auth.LoginSession)
        .where(
            models_auth.LoginSession.id == login_session_id,
            models_auth.LoginSession.is_verified.is_(False),
        )
        .values(is_verified=True),
    )
    return result.rowcount == 1


async def renew_verification_code(
    db: AsyncSession,
    login_session_id: str,
    verification_code: str,
    expires_at: datetime,
) -> None:
    await db.execute(
        update(models_auth.LoginSession)
        .where(models_auth.LoginSession.id == login_session_id)
        .values(verification_code=verification_code, expires_at=expires_at),
    )
