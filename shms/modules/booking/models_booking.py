from datetime import date, datetime, time

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shms.core.users.models_users import User
from shms.modules.booking.types_booking import RequestStatus
from shms.modules.halls.models_halls import Hall
from shms.types.sqlalchemy import Base


class BookingRequestHall(Base):
    """Association between a booking request and one of the halls it reserves"""

    __tablename__ = "booking_request_halls"

    booking_request_id: Mapped[str] = mapped_column(
        ForeignKey("booking_requests.id", ondelete="CASCADE"),
        primary_key=True,
    )
    hall_id: Mapped[str] = mapped_column(
        ForeignKey("halls.id"),
        primary_key=True,
        index=True,
    )


class BookingRequest(Base):
    __tablename__ = "booking_requests"

    id: Mapped[str] = mapped_column(primary_key=True, index=True)
    requester_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    event_name: Mapped[str]
    start_date: Mapped[date]
    end_date: Mapped[date]
    start_time: Mapped[time]
    end_time: Mapped[time]
    reason_for_booking: Mapped[str] = mapped_column(Text)
    status: Mapped[RequestStatus]
    created_at: Mapped[datetime]
    updated_at: Mapped[datetime]
    event_description: Mapped[str | None] = mapped_column(Text, default=None)
    expected_attendees: Mapped[int | None] = mapped_column(default=None)
    rejection_reason: Mapped[str | None] = mapped_column(Text, default=None)

    requester: Mapped[User] = relationship("User", lazy="joined", init=False)
    # Association rows are written explicitly, see `cruds_booking.create_booking_request`
    halls: Mapped[list[Hall]] = relationship(
        "Hall",
        secondary="booking_request_halls",
        lazy="selectin",
        viewonly=True,
        order_by="Hall.name",
        init=False,
    )

    @property
    def hall_names(self) -> list[str]:
        return [hall.name for hall in self.halls]
