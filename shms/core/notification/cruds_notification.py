from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.notification import models_notification


async def create_notification(
    db: AsyncSession,
    notification: models_notification.Notification,
) -> None:
    db.add(notification)
    await db.flush()


async def get_notifications_by_user_id(
    db: AsyncSession,
    user_id: str,
    limit: int,
    is_read: bool | None = None,
) -> Sequence[models_notification.Notification]:
    query = select(models_notification.Notification).where(
        models_notification.Notification.user_id == user_id,
    )
    if is_read is not None:
        query = query.where(models_notification.Notification.is_read.is_(is_read))
    result = await db.execute(
        query.order_by(models_notification.Notification.created_at.desc()).limit(
            limit,
        ),
    )
    return result.scalars().all()


async def mark_notifications_as_read(
    db: AsyncSession,
    user_id: str,
    notification_ids: list[str],
) -> Sequence[models_notification.Notification]:
    """
    Mark the notifications of `user_id` whose id is in `notification_ids` as read and return them.

    Ids that do not exist or belong to another user are ignored.
    """
    await db.execute(
        update(models_notification.Notification)
        .where(
            models_notification.Notification.user_id == user_id,
            models_notification.Notification.id.in_(notification_ids),
        )
        .values(is_read=True),
    )
    result = await db.execute(
        select(models_notification.Notification)
        .where(
            models_notification.Notification.user_id == user_id,
            models_notification.Notification.id.in_(notification_ids),
        )
        .order_by(models_notification.Notification.created_at.desc())
        .execution_options(populate_existing=True),
    )
    return result.scalars().all()


async def detach_notifications_from_booking_request(
    db: AsyncSession,
    booking_request_id: str,
) -> None:
    """
    Keep the notifications of a deleted booking request, without the dangling reference
    """
    await db.execute(
        update(models_notification.Notification)
        .where(
            models_notification.Notification.related_booking_request_id
            == booking_request_id,
        )
        .values(related_booking_request_id=None),
    )
