from datetime import time

from pydantic import BaseModel, ConfigDict

from shms.core.users.types_users import Role
from shms.modules.booking import schemas_booking
from shms.modules.halls.types_halls import HallStatus


class Hall(BaseModel):
    id: str
    name: str
    capacity: int
    description: str
    location: str
    amenities: list[str]
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class HallList(BaseModel):
    success: bool = True
    data: list[Hall]


class HallReset(BaseModel):
    success: bool = True
    message: str
    data: list[Hall]


class BookingSummary(BaseModel):
    event_name: str
    requester_name: str
    requester_role: Role
    reason_for_booking: str
    start_time: time
    end_time: time
    expected_attendees: int | None = None


class HallAvailability(BaseModel):
    id: str
    name: str
    capacity: int
    status: HallStatus
    booking: BookingSummary | None = None


class HallAvailabilityList(BaseModel):
    success: bool = True
    data: list[HallAvailability]


class HallSummaryStats(BaseModel):
    totalBookings: int
    approved: int
    pending: int


class HallStats(HallSummaryStats):
    rejected: int
    totalAttendees: int
    upcomingEvents: int
    facultyBookings: int
    clubBookings: int


class MonthlyUsage(BaseModel):
    month: str
    count: int


class HallWithSummary(Hall):
    stats: HallSummaryStats


class HallHistory(Hall):
    bookings: list[schemas_booking.BookingRequestComplete]
    stats: HallStats
    monthlyUsage: list[MonthlyUsage]


class HallHistoryResponse(BaseModel):
    success: bool = True
    hall: HallHistory


class HallsHistoryResponse(BaseModel):
    success: bool = True
    halls: list[HallWithSummary]
