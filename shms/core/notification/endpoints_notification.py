import logging

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.notification import cruds_notification, schemas_notification
from shms.core.users import models_users
from shms.core.users.types_users import Role
from shms.dependencies import get_db, get_request_id, is_user
from shms.types.exceptions import ForbiddenError, ValidationError
from shms.types.module import CoreModule

core_module = CoreModule(
    root="notifications",
    tag="Notifications",
)

shms_security_logger = logging.getLogger("shms.security")


@core_module.router.get(
    "/api/notifications",
    response_model=schemas_notification.NotificationList,
    status_code=200,
)
async def get_notifications(
    user_id: str | None = None,
    is_read: bool | None = None,
    limit: int = Query(default=50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user()),
    request_id: str = Depends(get_request_id),
):
    """
    Get the notifications of a user, newest first.

    A user can only read their own notifications. Administrators can read the notifications of any user.
    """
    if not user_id:
        raise ValidationError("User ID is required")

    if user_id != user.id and user.role != Role.admin:
        shms_security_logger.warning(
            f"Get_notifications: user {user.id} tried to read notifications of {user_id} ({request_id})",
        )
        raise ForbiddenError

    notifications = await cruds_notification.get_notifications_by_user_id(
        db=db,
        user_id=user_id,
        is_read=is_read,
        limit=limit,
    )
    return schemas_notification.NotificationList(
        data=[
            schemas_notification.Notification.model_validate(notification)
            for notification in notifications
        ],
    )


@core_module.router.patch(
    "/api/notifications",
    response_model=schemas_notification.MarkAsReadResult,
    status_code=200,
)
async def mark_notifications_as_read(
    mark_as_read: schemas_notification.MarkAsRead,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user()),
):
    """
    Mark some notifications of a user as read. Unknown ids and ids of other users' notifications are ignored.

    **A user can only acknowledge their own notifications**
    """
    if not mark_as_read.user_id or mark_as_read.notification_ids is None:
        raise ValidationError("User ID and notification IDs array are required")

    if mark_as_read.user_id != user.id:
        raise ForbiddenError

    notifications = await cruds_notification.mark_notifications_as_read(
        db=db,
        user_id=user.id,
        notification_ids=mark_as_read.notification_ids,
    )
    return schemas_notification.MarkAsReadResult(
        message="Notifications marked as read",
        data=[
            schemas_notification.Notification.model_validate(notification)
            for notification in notifications
        ],
    )
