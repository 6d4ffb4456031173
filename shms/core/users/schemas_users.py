from datetime import datetime

from pydantic import BaseModel, ConfigDict

from shms.core.users.types_users import Role


class UserSimple(BaseModel):
    """Requester information embedded in booking requests"""

    id: str
    username: str
    email: str
    role: Role
    club_name: str | None = None

    model_config = ConfigDict(from_attributes=True)


class User(UserSimple):
    branch: str | None = None
    is_active: bool
    is_email_verified: bool
    created_at: datetime


class UserStats(BaseModel):
    totalBookings: int
    approved: int
    pending: int
    rejected: int
    upcomingEvents: int


class UserResponse(BaseModel):
    success: bool = True
    data: User


class UserListResponse(BaseModel):
    success: bool = True
    data: list[User]
