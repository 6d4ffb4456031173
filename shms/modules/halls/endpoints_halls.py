import logging
from collections import Counter
from collections.abc import Sequence
from datetime import date

from fastapi import Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.users import models_users
from shms.core.users.types_users import Role
from shms.core.utils.config import Settings
from shms.dependencies import (
    get_db,
    get_request_id,
    get_settings,
    is_user,
    is_user_in,
)
from shms.modules.booking import cruds_booking, models_booking, schemas_booking
from shms.modules.booking.types_booking import RequestStatus
from shms.modules.halls import (
    coredata_halls,
    cruds_halls,
    schemas_halls,
)
from shms.modules.halls.types_halls import HallStatus
from shms.types.exceptions import NotFoundError, UpstreamError, ValidationError
from shms.types.module import Module
from shms.utils.tools import local_today

module = Module(
    root="halls",
    tag="Halls",
)

shms_error_logger = logging.getLogger("shms.error")

MONTHLY_USAGE_MONTHS = 6


@module.router.get(
    "/api/halls",
    response_model=schemas_halls.HallList,
    status_code=200,
)
async def get_halls(
    is_active: bool | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user()),
):
    """
    Get halls ordered by name, optionally filtered on their active flag.
    """
    halls = await cruds_halls.get_halls(db=db, is_active=is_active)
    return schemas_halls.HallList(
        data=[schemas_halls.Hall.model_validate(hall) for hall in halls],
    )


@module.router.post(
    "/api/setup-halls",
    response_model=schemas_halls.HallReset,
    status_code=200,
)
async def reset_halls(
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.admin)),
    request_id: str = Depends(get_request_id),
):
    """
    Restore the hall catalogue to the default set of five halls. Either every hall is replaced or none is.

    **This endpoint is only usable by administrators**
    """
    try:
        async with db.begin_nested():
            await cruds_halls.replace_halls(
                db=db,
                halls=coredata_halls.get_default_halls(),
            )
    except SQLAlchemyError:
        shms_error_logger.exception(
            f"Reset_halls: could not replace the hall catalogue ({request_id})",
        )
        raise UpstreamError("Failed to reset halls") from None

    halls = await cruds_halls.get_halls(db=db)
    return schemas_halls.HallReset(
        message="Halls reset successfully",
        data=[schemas_halls.Hall.model_validate(hall) for hall in halls],
    )


@module.router.get(
    "/api/halls/availability",
    response_model=schemas_halls.HallAvailabilityList,
    status_code=200,
)
async def get_halls_availability(
    day: date | None = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user()),
):
    """
    Get the status of every active hall on a given day.

    A hall is `booked` if an approved request covers the day, `pending` if only pending requests do, `available` otherwise.
    """
    if day is None:
        raise ValidationError("Date is required")

    halls = await cruds_halls.get_halls(db=db, is_active=True)
    booking_requests = await cruds_booking.get_booking_requests_covering_date(
        db=db,
        day=day,
        statuses=[RequestStatus.approved, RequestStatus.pending],
    )

    availabilities: list[schemas_halls.HallAvailability] = []
    for hall in halls:
        hall_requests = [
            booking_request
            for booking_request in booking_requests
            if hall.id in {request_hall.id for request_hall in booking_request.halls}
        ]
        # Approved requests take precedence over pending ones
        hall_requests.sort(
            key=lambda booking_request: booking_request.status
            != RequestStatus.approved,
        )
        if not hall_requests:
            availabilities.append(
                schemas_halls.HallAvailability(
                    id=hall.id,
                    name=hall.name,
                    capacity=hall.capacity,
                    status=HallStatus.available,
                ),
            )
            continue

        booking_request = hall_requests[0]
        availabilities.append(
            schemas_halls.HallAvailability(
                id=hall.id,
                name=hall.name,
                capacity=hall.capacity,
                status=HallStatus.booked
                if booking_request.status == RequestStatus.approved
                else HallStatus.pending,
                booking=schemas_halls.BookingSummary(
                    event_name=booking_request.event_name,
                    requester_name=booking_request.requester.display_name,
                    requester_role=booking_request.requester.role,
                    reason_for_booking=booking_request.reason_for_booking,
                    start_time=booking_request.start_time,
                    end_time=booking_request.end_time,
                    expected_attendees=booking_request.expected_attendees,
                ),
            ),
        )

    return schemas_halls.HallAvailabilityList(data=availabilities)


@module.router.get(
    "/api/halls/history",
    response_model=schemas_halls.HallHistoryResponse
    | schemas_halls.HallsHistoryResponse,
    status_code=200,
)
async def get_halls_history(
    hall_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.admin)),
    settings: Settings = Depends(get_settings),
):
    """
    Without `hall_id`, get every hall with a summary of its bookings.
    With `hall_id`, get the hall with all its bookings, detailed statistics and the number of approved bookings for each of the last six months.

    **This endpoint is only usable by administrators**
    """
    if hall_id is None:
        halls = await cruds_halls.get_halls(db=db)
        halls_with_summary: list[schemas_halls.HallWithSummary] = []
        for hall in halls:
            booking_requests = await cruds_booking.get_booking_requests_by_hall_id(
                db=db,
                hall_id=hall.id,
            )
            statuses = Counter(
                booking_request.status for booking_request in booking_requests
            )
            halls_with_summary.append(
                schemas_halls.HallWithSummary(
                    **schemas_halls.Hall.model_validate(hall).model_dump(),
                    stats=schemas_halls.HallSummaryStats(
                        totalBookings=len(booking_requests),
                        approved=statuses[RequestStatus.approved],
                        pending=statuses[RequestStatus.pending],
                    ),
                ),
            )
        return schemas_halls.HallsHistoryResponse(halls=halls_with_summary)

    hall = await cruds_halls.get_hall_by_id(db=db, hall_id=hall_id)
    if hall is None:
        raise NotFoundError("Hall not found")

    booking_requests = await cruds_booking.get_booking_requests_by_hall_id(
        db=db,
        hall_id=hall_id,
    )
    today = local_today(settings)

    return schemas_halls.HallHistoryResponse(
        hall=schemas_halls.HallHistory(
            **schemas_halls.Hall.model_validate(hall).model_dump(),
            bookings=[
                schemas_booking.BookingRequestComplete.model_validate(booking_request)
                for booking_request in booking_requests
            ],
            stats=get_hall_stats(booking_requests=booking_requests, today=today),
            monthlyUsage=get_monthly_usage(
                booking_requests=booking_requests,
                today=today,
            ),
        ),
    )


def get_hall_stats(
    booking_requests: Sequence[models_booking.BookingRequest],
    today: date,
) -> schemas_halls.HallStats:
    statuses = Counter(booking_request.status for booking_request in booking_requests)
    approved_requests = [
        booking_request
        for booking_request in booking_requests
        if booking_request.status == RequestStatus.approved
    ]
    roles = Counter(
        booking_request.requester.role for booking_request in booking_requests
    )
    return schemas_halls.HallStats(
        totalBookings=len(booking_requests),
        approved=statuses[RequestStatus.approved],
        pending=statuses[RequestStatus.pending],
        rejected=statuses[RequestStatus.rejected],
        totalAttendees=sum(
            booking_request.expected_attendees or 0
            for booking_request in approved_requests
        ),
        upcomingEvents=len(
            [
                booking_request
                for booking_request in approved_requests
                if booking_request.start_date >= today
            ],
        ),
        facultyBookings=roles[Role.faculty],
        clubBookings=roles[Role.clubs],
    )


def get_monthly_usage(
    booking_requests: Sequence[models_booking.BookingRequest],
    today: date,
) -> list[schemas_halls.MonthlyUsage]:
    """
    Count approved bookings per starting month, for the current month and the five previous ones, oldest first
    """
    months: list[tuple[int, int]] = []
    year, month = today.year, today.month
    for _ in range(MONTHLY_USAGE_MONTHS):
        months.append((year, month))
        year, month = (year - 1, 12) if month == 1 else (year, month - 1)
    months.reverse()

    usage = Counter(
        (booking_request.start_date.year, booking_request.start_date.month)
        for booking_request in booking_requests
        if booking_request.status == RequestStatus.approved
    )
    return [
        schemas_halls.MonthlyUsage(
            month=date(year, month, 1).strftime("%b %y"),
            count=usage[(year, month)],
        )
        for year, month in months
    ]
