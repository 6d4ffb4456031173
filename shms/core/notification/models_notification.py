from datetime import datetime

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from shms.core.notification.types_notification import NotificationType
from shms.types.sqlalchemy import Base


class Notification(Base):
    """
    An in-app message for a user. Notifications are only mutated when marked as read and are never deleted.
    """

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    title: Mapped[str]
    message: Mapped[str]
    type: Mapped[NotificationType]
    created_at: Mapped[datetime]
    is_read: Mapped[bool] = mapped_column(default=False)
    related_booking_request_id: Mapped[str | None] = mapped_column(
        ForeignKey("booking_requests.id", ondelete="SET NULL"),
        default=None,
    )
