from datetime import datetime

from pydantic import BaseModel, ConfigDict

from shms.core.notification.types_notification import NotificationType


class Notification(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    type: NotificationType
    is_read: bool
    related_booking_request_id: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    success: bool = True
    data: list[Notification]


class MarkAsRead(BaseModel):
    # Both fields are checked by the endpoint to return an explicit message
    user_id: str | None = None
    notification_ids: list[str] | None = None


class MarkAsReadResult(BaseModel):
    success: bool = True
    message: str
    data: list[Notification]
