import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.notification import cruds_notification, models_notification
from shms.core.notification.types_notification import NotificationType
from shms.core.users import models_users
from shms.core.users.types_users import Role
from shms.modules.booking import models_booking
from shms.modules.booking.types_booking import RequestStatus
from shms.utils.communication.emails import EmailTool
from shms.utils.tools import format_time, utc_now

shms_error_logger = logging.getLogger("shms.error")


def get_blocking_statuses(role: Role) -> list[RequestStatus]:
    """
    Return the statuses of existing requests that prevent a user with `role` from requesting the same hall and window.

    Faculty members are only blocked by approved requests, other users are also blocked by pending ones.
    """
    if role == Role.faculty:
        return [RequestStatus.approved]
    return [RequestStatus.approved, RequestStatus.pending]


def get_booking_email_context(
    booking_request: models_booking.BookingRequest,
    requester: models_users.User,
    hall_names: list[str],
) -> dict[str, Any]:
    return {
        "event_name": booking_request.event_name,
        "hall_names": hall_names,
        "start_date": booking_request.start_date.isoformat(),
        "end_date": booking_request.end_date.isoformat(),
        "start_time": format_time(booking_request.start_time),
        "end_time": format_time(booking_request.end_time),
        "expected_attendees": booking_request.expected_attendees,
        "reason_for_booking": booking_request.reason_for_booking,
        "requester_name": requester.display_name,
        "requester_role": requester.role.value,
    }


async def create_booking_notification(
    db: AsyncSession,
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType,
    booking_request_id: str | None,
) -> None:
    await cruds_notification.create_notification(
        db=db,
        notification=models_notification.Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            related_booking_request_id=booking_request_id,
            created_at=utc_now(),
        ),
    )


def send_status_email(
    email_tool: EmailTool,
    booking_request: models_booking.BookingRequest,
) -> None:
    """
    Let the requester know their request was approved or rejected.

    The email is sent after the response, a failure is only logged.
    """
    requester = booking_request.requester
    context = get_booking_email_context(
        booking_request=booking_request,
        requester=requester,
        hall_names=booking_request.hall_names,
    )
    if booking_request.status == RequestStatus.approved:
        email_tool.send_template_in_background(
            recipient=requester.email,
            subject=f"Approved: {booking_request.event_name}",
            template_name="booking_approved_mail.html",
            context=context,
        )
    elif booking_request.status == RequestStatus.rejected:
        email_tool.send_template_in_background(
            recipient=requester.email,
            subject=f"Update: {booking_request.event_name}",
            template_name="booking_rejected_mail.html",
            context={**context, "rejection_reason": booking_request.rejection_reason},
        )
    else:
        shms_error_logger.warning(
            f"Booking: no status email for request {booking_request.id} with status {booking_request.status}",
        )
