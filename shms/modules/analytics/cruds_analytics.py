from collections.abc import Sequence
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from shms.modules.booking import models_booking
from shms.modules.booking.types_booking import RequestStatus


async def count_booking_requests(
    db: AsyncSession,
    status: RequestStatus | None = None,
    requester_id: str | None = None,
    created_since: datetime | None = None,
    starting_on: date | None = None,
    starting_from: date | None = None,
) -> int:
    """
    Count booking requests matching every provided filter.

    `starting_on` keeps requests starting on this exact day, `starting_from` keeps requests starting on this day or later.
    """
    query = select(func.count(models_booking.BookingRequest.id))
    if status is not None:
        query = query.where(models_booking.BookingRequest.status == status)
    if requester_id is not None:
        query = query.where(models_booking.BookingRequest.requester_id == requester_id)
    if created_since is not None:
        query = query.where(models_booking.BookingRequest.created_at >= created_since)
    if starting_on is not None:
        query = query.where(models_booking.BookingRequest.start_date == starting_on)
    if starting_from is not None:
        query = query.where(models_booking.BookingRequest.start_date >= starting_from)
    result = await db.execute(query)
    return result.scalar_one()


async def get_approved_events_starting_on(
    db: AsyncSession,
    day: date,
) -> Sequence[models_booking.BookingRequest]:
    result = await db.execute(
        select(models_booking.BookingRequest)
        .where(
            models_booking.BookingRequest.status == RequestStatus.approved,
            models_booking.BookingRequest.start_date == day,
        )
        .order_by(models_booking.BookingRequest.start_time),
    )
    return result.unique().scalars().all()
