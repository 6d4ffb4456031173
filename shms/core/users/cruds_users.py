from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.users import models_users
from shms.core.users.types_users import Role


async def get_users(
    db: AsyncSession,
    role: Role | None = None,
    search: str | None = None,
) -> Sequence[models_users.User]:
    """
    Return users, newest first.

    `search` is matched case-insensitively against the username, the email and the club name.
    """
    query = select(models_users.User)
    if role is not None:
        query = query.where(models_users.User.role == role)
    if search:
        # % and _ in the search are literal characters
        escaped_search = (
            search.lower()
            .replace("\\", "\\\\")
            .replace("%", "\\%")
            .replace("_", "\\_")
        )
        pattern = f"%{escaped_search}%"
        query = query.where(
            or_(
                func.lower(models_users.User.username).like(pattern, escape="\\"),
                func.lower(models_users.User.email).like(pattern, escape="\\"),
                func.lower(models_users.User.club_name).like(pattern, escape="\\"),
            ),
        )
    result = await db.execute(query.order_by(models_users.User.created_at.desc()))
    return result.scalars().all()


async def get_user_by_id(
    db: AsyncSession,
    user_id: str,
) -> models_users.User | None:
    result = await db.execute(
        select(models_users.User).where(models_users.User.id == user_id),
    )
    return result.scalars().first()


async def get_active_user_by_identifier(
    db: AsyncSession,
    identifier: str,
) -> models_users.User | None:
    """
    Find an active user by email if `identifier` contains an `@`, by username otherwise
    """
    if "@" in identifier:
        condition = models_users.User.email == identifier
    else:
        condition = models_users.User.username == identifier
    result = await db.execute(
        select(models_users.User).where(
            condition,
            models_users.User.is_active.is_(True),
        ),
    )
    return result.scalars().first()


async def get_user_emails_by_role(
    db: AsyncSession,
    role: Role,
) -> Sequence[str]:
    result = await db.execute(
        select(models_users.User.email).where(
            models_users.User.role == role,
            models_users.User.is_active.is_(True),
        ),
    )
    return result.scalars().all()


async def count_users_by_role(
    db: AsyncSession,
) -> dict[Role, int]:
    result = await db.execute(
        select(models_users.User.role, func.count(models_users.User.id)).group_by(
            models_users.User.role,
        ),
    )
    return {role: count for role, count in result.all()}


async def create_user(
    db: AsyncSession,
    user: models_users.User,
) -> models_users.User:
    db.add(user)
    await db.flush()
    return user
