import logging
import uuid
from datetime import date

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.notification import cruds_notification
from shms.core.notification.types_notification import NotificationType
from shms.core.users import cruds_users, models_users
from shms.core.users.types_users import Role
from shms.core.utils.config import Settings
from shms.dependencies import (
    get_db,
    get_email_tool,
    get_request_id,
    get_settings,
    is_user,
    is_user_in,
)
from shms.modules.booking import cruds_booking, models_booking, schemas_booking
from shms.modules.booking.types_booking import RequestStatus
from shms.modules.booking.utils_booking import (
    create_booking_notification,
    get_blocking_statuses,
    get_booking_email_context,
    send_status_email,
)
from shms.modules.halls import cruds_halls
from shms.types.exceptions import (
    BookingConflictError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from shms.types.module import Module
from shms.types.standard_responses import Result
from shms.utils.communication.emails import EmailTool
from shms.utils.tools import utc_now

module = Module(
    root="booking",
    tag="Booking",
)

shms_error_logger = logging.getLogger("shms.error")
shms_security_logger = logging.getLogger("shms.security")


@module.router.post(
    "/api/booking-requests",
    response_model=schemas_booking.BookingRequestCreationResult,
    status_code=201,
)
async def create_booking_request(
    booking_request: schemas_booking.BookingRequestBase,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(
        is_user(included_roles=[Role.faculty, Role.clubs, Role.admin]),
    ),
    settings: Settings = Depends(get_settings),
    email_tool: EmailTool = Depends(get_email_tool),
):
    """
    Request one or more halls for an event. The requester is the user making the request.

    The request is refused if one of the halls is already booked during an overlapping time window.
    Requests from faculty members only conflict with approved requests, requests from other users also conflict with pending ones.
    """
    if booking_request.end_date < booking_request.start_date:
        raise ValidationError("End date must be on or after the start date")
    if booking_request.end_time <= booking_request.start_time:
        raise ValidationError("End time must be after the start time")

    hall_ids = list(dict.fromkeys(booking_request.hall_ids))
    halls = await cruds_halls.get_halls_by_ids(db=db, hall_ids=hall_ids)
    if len(halls) != len(hall_ids):
        raise NotFoundError("One or more halls not found")

    conflicting_requests = await cruds_booking.get_overlapping_booking_requests(
        db=db,
        hall_ids=hall_ids,
        start_date=booking_request.start_date,
        end_date=booking_request.end_date,
        start_time=booking_request.start_time,
        end_time=booking_request.end_time,
        statuses=get_blocking_statuses(user.role),
    )
    if conflicting_requests:
        raise BookingConflictError(
            "One or more halls are already booked for the selected dates",
        )

    now = utc_now()
    booking_request_db = models_booking.BookingRequest(
        id=str(uuid.uuid4()),
        requester_id=user.id,
        event_name=booking_request.event_name,
        event_description=booking_request.event_description,
        start_date=booking_request.start_date,
        end_date=booking_request.end_date,
        start_time=booking_request.start_time,
        end_time=booking_request.end_time,
        expected_attendees=booking_request.expected_attendees,
        reason_for_booking=booking_request.reason_for_booking,
        status=RequestStatus.pending,
        created_at=now,
        updated_at=now,
    )
    await cruds_booking.create_booking_request(
        db=db,
        booking_request=booking_request_db,
        hall_ids=hall_ids,
    )
    await create_booking_notification(
        db=db,
        user_id=user.id,
        title="Booking Request Submitted",
        message=f'Your booking request for "{booking_request_db.event_name}" has been submitted and is pending approval.',
        notification_type=NotificationType.info,
        booking_request_id=booking_request_db.id,
    )

    context = get_booking_email_context(
        booking_request=booking_request_db,
        requester=user,
        hall_names=sorted(hall.name for hall in halls),
    )
    admin_recipients: str | list[str] = settings.ADMIN_EMAIL or list(
        await cruds_users.get_user_emails_by_role(db=db, role=Role.admin),
    )
    email_tool.send_template_in_background(
        recipient=admin_recipients,
        subject=f"New Request: {booking_request_db.event_name}",
        template_name="admin_new_request_mail.html",
        context=context,
    )
    email_tool.send_template_in_background(
        recipient=user.email,
        subject=f"Request Received: {booking_request_db.event_name}",
        template_name="booking_received_mail.html",
        context=context,
    )

    return schemas_booking.BookingRequestCreationResult(
        message="Booking request created successfully",
        data=schemas_booking.BookingRequestCreated(
            id=booking_request_db.id,
            status=booking_request_db.status,
        ),
    )


@module.router.get(
    "/api/booking-requests",
    response_model=schemas_booking.BookingRequestList,
    status_code=200,
)
async def get_booking_requests(
    requester_id: str | None = None,
    requester_role: Role | None = None,
    status: RequestStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user()),
):
    """
    Get booking requests, newest first.

    Administrators can filter all requests. Other users only get their own requests, whatever `requester_id` they ask for.
    """
    if user.role != Role.admin:
        requester_id = user.id

    booking_requests = await cruds_booking.get_booking_requests(
        db=db,
        requester_id=requester_id,
        requester_role=requester_role,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return schemas_booking.BookingRequestList(
        data=[
            schemas_booking.BookingRequestComplete.model_validate(booking_request)
            for booking_request in booking_requests
        ],
    )


@module.router.get(
    "/api/booking-requests/{booking_request_id}",
    response_model=schemas_booking.BookingRequestResponse,
    status_code=200,
)
async def get_booking_request(
    booking_request_id: str,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user()),
):
    """
    Get a booking request with its requester and halls.

    **Only the requester and administrators can access a request**
    """
    booking_request = await cruds_booking.get_booking_request_by_id(
        db=db,
        booking_request_id=booking_request_id,
    )
    if booking_request is None or (
        booking_request.requester_id != user.id and user.role != Role.admin
    ):
        raise NotFoundError("Booking request not found")

    return schemas_booking.BookingRequestResponse(
        data=schemas_booking.BookingRequestComplete.model_validate(booking_request),
    )


@module.router.delete(
    "/api/booking-requests/{booking_request_id}",
    response_model=Result,
    status_code=200,
)
async def delete_booking_request(
    booking_request_id: str,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user()),
):
    """
    Withdraw a booking request. Only pending requests can be deleted.

    **Only the requester can delete their request**
    """
    booking_request = await cruds_booking.get_booking_request_by_id(
        db=db,
        booking_request_id=booking_request_id,
    )
    if booking_request is None or booking_request.requester_id != user.id:
        raise NotFoundError("Booking request not found or access denied")
    if booking_request.status != RequestStatus.pending:
        raise ForbiddenError("Only pending requests can be deleted")

    event_name = booking_request.event_name

    # Notifications are never deleted, they only lose their link to the request
    await cruds_notification.detach_notifications_from_booking_request(
        db=db,
        booking_request_id=booking_request_id,
    )
    await cruds_booking.delete_booking_request(
        db=db,
        booking_request_id=booking_request_id,
    )
    await create_booking_notification(
        db=db,
        user_id=user.id,
        title="Booking Request Deleted",
        message=f'Your booking request for "{event_name}" has been deleted.',
        notification_type=NotificationType.info,
        booking_request_id=None,
    )

    return Result(message="Booking request deleted successfully")


@module.router.patch(
    "/api/booking-requests/{booking_request_id}/approve",
    response_model=Result,
    status_code=200,
)
async def approve_booking_request(
    booking_request_id: str,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.admin)),
    email_tool: EmailTool = Depends(get_email_tool),
    request_id: str = Depends(get_request_id),
):
    """
    Approve a pending booking request and let the requester know by notification and email.

    The approval is refused if another approved request already holds one of the halls during an overlapping time window.

    **This endpoint is only usable by administrators**
    """
    booking_request = await cruds_booking.get_booking_request_by_id(
        db=db,
        booking_request_id=booking_request_id,
    )
    if booking_request is None:
        raise NotFoundError("Booking request not found")
    if booking_request.status != RequestStatus.pending:
        raise ConflictError("Request has already been processed")

    conflicting_requests = await cruds_booking.get_overlapping_booking_requests(
        db=db,
        hall_ids=[hall.id for hall in booking_request.halls],
        start_date=booking_request.start_date,
        end_date=booking_request.end_date,
        start_time=booking_request.start_time,
        end_time=booking_request.end_time,
        statuses=[RequestStatus.approved],
        excluded_booking_request_id=booking_request.id,
    )
    if conflicting_requests:
        raise BookingConflictError

    await update_status(
        db=db,
        booking_request=booking_request,
        status=RequestStatus.approved,
        failure_message="Failed to approve request",
        request_id=request_id,
    )
    shms_security_logger.info(
        f"Approve_booking_request: request {booking_request.id} approved by {user.id} ({request_id})",
    )

    await create_booking_notification(
        db=db,
        user_id=booking_request.requester_id,
        title="Booking Request Approved",
        message=f'Your booking request for "{booking_request.event_name}" has been approved.',
        notification_type=NotificationType.success,
        booking_request_id=booking_request.id,
    )
    send_status_email(email_tool=email_tool, booking_request=booking_request)

    return Result(message="Booking request approved successfully")


@module.router.patch(
    "/api/booking-requests/{booking_request_id}/reject",
    response_model=Result,
    status_code=200,
)
async def reject_booking_request(
    booking_request_id: str,
    rejection: schemas_booking.Rejection,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.admin)),
    email_tool: EmailTool = Depends(get_email_tool),
    request_id: str = Depends(get_request_id),
):
    """
    Reject a pending booking request. The reason is stored and sent to the requester.

    **This endpoint is only usable by administrators**
    """
    rejection_reason = (rejection.rejection_reason or "").strip()
    if not rejection_reason:
        raise ValidationError("Rejection reason is required")

    booking_request = await cruds_booking.get_booking_request_by_id(
        db=db,
        booking_request_id=booking_request_id,
    )
    if booking_request is None:
        raise NotFoundError("Booking request not found")
    if booking_request.status != RequestStatus.pending:
        raise ConflictError("Request has already been processed")

    await update_status(
        db=db,
        booking_request=booking_request,
        status=RequestStatus.rejected,
        failure_message="Failed to reject request",
        request_id=request_id,
        rejection_reason=rejection_reason,
    )
    shms_security_logger.info(
        f"Reject_booking_request: request {booking_request.id} rejected by {user.id} ({request_id})",
    )

    await create_booking_notification(
        db=db,
        user_id=booking_request.requester_id,
        title="Booking Request Rejected",
        message=f'Your booking request for "{booking_request.event_name}" has been rejected. Reason: {rejection_reason}',
        notification_type=NotificationType.error,
        booking_request_id=booking_request.id,
    )
    send_status_email(email_tool=email_tool, booking_request=booking_request)

    return Result(message="Booking request rejected successfully")


async def update_status(
    db: AsyncSession,
    booking_request: models_booking.BookingRequest,
    status: RequestStatus,
    failure_message: str,
    request_id: str,
    rejection_reason: str | None = None,
) -> None:
    """
    Move a pending request to `status`, inside a SAVEPOINT so a database failure leaves the transaction usable.

    Raise a `ConflictError` if another administrator processed the request in the meantime.
    """
    try:
        async with db.begin_nested():
            updated = await cruds_booking.update_booking_request_status(
                db=db,
                booking_request_id=booking_request.id,
                status=status,
                updated_at=utc_now(),
                rejection_reason=rejection_reason,
            )
    except SQLAlchemyError:
        shms_error_logger.exception(
            f"Booking: could not set request {booking_request.id} to {status} ({request_id})",
        )
        raise UpstreamError(failure_message) from None

    if not updated:
        raise ConflictError("Request has already been processed")
