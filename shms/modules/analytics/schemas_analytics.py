from pydantic import BaseModel

from shms.modules.booking import schemas_booking


class AdminStats(BaseModel):
    totalRequests: int
    pendingRequests: int
    approvedRequests: int
    totalHalls: int
    usersByRole: dict[str, int]


class AdminAnalytics(BaseModel):
    period: str
    stats: AdminStats
    todayEvents: list[schemas_booking.BookingRequestComplete]
    recentRequests: list[schemas_booking.BookingRequestComplete]


class AdminAnalyticsResponse(BaseModel):
    success: bool = True
    data: AdminAnalytics


class ClubAnalytics(BaseModel):
    totalRequests: int
    approvedRequests: int
    pendingRequests: int
    upcomingEvents: int
