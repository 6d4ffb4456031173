from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field

from shms.core.users import schemas_users
from shms.modules.booking.types_booking import RequestStatus


class HallSimple(BaseModel):
    id: str
    name: str
    capacity: int

    model_config = ConfigDict(from_attributes=True)


class BookingRequestBase(BaseModel):
    event_name: str = Field(min_length=1)
    event_description: str | None = None
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    expected_attendees: int | None = Field(default=None, ge=1)
    reason_for_booking: str = Field(min_length=1)
    hall_ids: list[str] = Field(min_length=1)


class BookingRequest(BaseModel):
    id: str
    requester_id: str
    event_name: str
    event_description: str | None = None
    start_date: date
    end_date: date
    start_time: time
    end_time: time
    expected_attendees: int | None = None
    reason_for_booking: str
    status: RequestStatus
    rejection_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingRequestComplete(BookingRequest):
    requester: schemas_users.UserSimple
    halls: list[HallSimple]


class BookingRequestCreated(BaseModel):
    id: str
    status: RequestStatus


class BookingRequestCreationResult(BaseModel):
    success: bool = True
    message: str
    data: BookingRequestCreated


class BookingRequestResponse(BaseModel):
    success: bool = True
    data: BookingRequestComplete


class BookingRequestList(BaseModel):
    success: bool = True
    data: list[BookingRequestComplete]


class Rejection(BaseModel):
    # The reason is checked by the endpoint to return an explicit message
    rejection_reason: str | None = None


class UserDetail(schemas_users.User):
    bookings: list[BookingRequestComplete]
    stats: schemas_users.UserStats


class UserDetailResponse(BaseModel):
    success: bool = True
    user: UserDetail
