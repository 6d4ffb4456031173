from collections.abc import Sequence
from datetime import date, datetime, time

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.users import models_users
from shms.core.users.types_users import Role
from shms.modules.booking import models_booking
from shms.modules.booking.types_booking import RequestStatus


def _booking_requests_of_halls(hall_ids: list[str]):
    return models_booking.BookingRequest.id.in_(
        select(models_booking.BookingRequestHall.booking_request_id).where(
            models_booking.BookingRequestHall.hall_id.in_(hall_ids),
        ),
    )


async def get_booking_request_by_id(
    db: AsyncSession,
    booking_request_id: str,
) -> models_booking.BookingRequest | None:
    result = await db.execute(
        select(models_booking.BookingRequest)
        .where(models_booking.BookingRequest.id == booking_request_id)
        .execution_options(populate_existing=True),
    )
    return result.scalars().first()


async def get_booking_requests(
    db: AsyncSession,
    requester_id: str | None = None,
    requester_role: Role | None = None,
    status: RequestStatus | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int | None = None,
) -> Sequence[models_booking.BookingRequest]:
    """
    Return booking requests with their requester and halls, newest first.

    `start_date` keeps requests starting on or after this date, `end_date` keeps requests ending on or before it.
    """
    query = select(models_booking.BookingRequest)
    if requester_id is not None:
        query = query.where(models_booking.BookingRequest.requester_id == requester_id)
    if requester_role is not None:
        query = query.where(
            models_booking.BookingRequest.requester.has(
                models_users.User.role == requester_role,
            ),
        )
    if status is not None:
        query = query.where(models_booking.BookingRequest.status == status)
    if start_date is not None:
        query = query.where(models_booking.BookingRequest.start_date >= start_date)
    if end_date is not None:
        query = query.where(models_booking.BookingRequest.end_date <= end_date)
    query = query.order_by(models_booking.BookingRequest.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return result.unique().scalars().all()


async def get_booking_requests_by_hall_id(
    db: AsyncSession,
    hall_id: str,
) -> Sequence[models_booking.BookingRequest]:
    result = await db.execute(
        select(models_booking.BookingRequest)
        .where(_booking_requests_of_halls([hall_id]))
        .order_by(models_booking.BookingRequest.created_at.desc()),
    )
    return result.unique().scalars().all()


async def get_booking_requests_covering_date(
    db: AsyncSession,
    day: date,
    statuses: list[RequestStatus],
) -> Sequence[models_booking.BookingRequest]:
    result = await db.execute(
        select(models_booking.BookingRequest)
        .where(
            models_booking.BookingRequest.status.in_(statuses),
            models_booking.BookingRequest.start_date <= day,
            models_booking.BookingRequest.end_date >= day,
        )
        .order_by(models_booking.BookingRequest.start_time),
    )
    return result.unique().scalars().all()


async def get_overlapping_booking_requests(
    db: AsyncSession,
    hall_ids: list[str],
    start_date: date,
    end_date: date,
    start_time: time,
    end_time: time,
    statuses: list[RequestStatus],
    excluded_booking_request_id: str | None = None,
) -> Sequence[models_booking.BookingRequest]:
    """
    Return the requests with one of `statuses` which reserve one of `hall_ids`
    and whose date range and daily time window both intersect the given ones.

    Touching windows (one ending at 10:00, the other starting at 10:00) do not overlap.
    """
    query = select(models_booking.BookingRequest).where(
        _booking_requests_of_halls(hall_ids),
        models_booking.BookingRequest.status.in_(statuses),
        models_booking.BookingRequest.start_date <= end_date,
        models_booking.BookingRequest.end_date >= start_date,
        models_booking.BookingRequest.start_time < end_time,
        models_booking.BookingRequest.end_time > start_time,
    )
    if excluded_booking_request_id is not None:
        query = query.where(
            models_booking.BookingRequest.id != excluded_booking_request_id,
        )
    result = await db.execute(query)
    return result.unique().scalars().all()


async def create_booking_request(
    db: AsyncSession,
    booking_request: models_booking.BookingRequest,
    hall_ids: list[str],
) -> None:
    db.add(booking_request)
    await db.flush()
    db.add_all(
        [
            models_booking.BookingRequestHall(
                booking_request_id=booking_request.id,
                hall_id=hall_id,
            )
            for hall_id in hall_ids
        ],
    )
    await db.flush()


async def update_booking_request_status(
    db: AsyncSession,
    booking_request_id: str,
    status: RequestStatus,
    updated_at: datetime,
    rejection_reason: str | None = None,
) -> bool:
    """
    Move a pending request to `status`.

    The update only applies if the request is still pending: when two administrators process the same request
    concurrently, only one of them succeeds. Return False if the request was no longer pending.
    """
    values: dict[str, object] = {"status": status, "updated_at": updated_at}
    if rejection_reason is not None:
        values["rejection_reason"] = rejection_reason
    result = await db.execute(
        update(models_booking.BookingRequest)
        .where(
            models_booking.BookingRequest.id == booking_request_id,
            models_booking.BookingRequest.status == RequestStatus.pending,
        )
        .values(**values),
    )
    return result.rowcount == 1


async def delete_booking_request(
    db: AsyncSession,
    booking_request_id: str,
) -> None:
    await db.execute(
        delete(models_booking.BookingRequestHall).where(
            models_booking.BookingRequestHall.booking_request_id == booking_request_id,
        ),
    )
    await db.execute(
        delete(models_booking.BookingRequest).where(
            models_booking.BookingRequest.id == booking_request_id,
        ),
    )
