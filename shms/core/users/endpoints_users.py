from collections import Counter

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.users import cruds_users, models_users, schemas_users
from shms.core.users.types_users import Role
from shms.core.utils.config import Settings
from shms.dependencies import get_db, get_settings, is_user, is_user_in
from shms.modules.booking import cruds_booking, schemas_booking
from shms.modules.booking.types_booking import RequestStatus
from shms.types.exceptions import NotFoundError
from shms.types.module import CoreModule
from shms.utils.tools import local_today

core_module = CoreModule(
    root="users",
    tag="Users",
)


@core_module.router.get(
    "/api/users",
    response_model=schemas_users.UserListResponse,
    status_code=200,
)
async def get_users(
    role: Role | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.admin)),
):
    """
    Get users, newest first. `search` is matched against the username, the email and the club name.

    **This endpoint is only usable by administrators**
    """
    users = await cruds_users.get_users(db=db, role=role, search=search)
    return schemas_users.UserListResponse(
        data=[schemas_users.User.model_validate(db_user) for db_user in users],
    )


@core_module.router.get(
    "/api/users/me",
    response_model=schemas_users.UserResponse,
    status_code=200,
)
async def read_current_user(
    user: models_users.User = Depends(is_user()),
):
    """
    Return the profile of the user making the request
    """
    return schemas_users.UserResponse(data=schemas_users.User.model_validate(user))


@core_module.router.get(
    "/api/users/{user_id}",
    response_model=schemas_booking.UserDetailResponse,
    status_code=200,
)
async def read_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.admin)),
    settings: Settings = Depends(get_settings),
):
    """
    Get a user with their booking requests and booking statistics.

    **This endpoint is only usable by administrators**
    """
    db_user = await cruds_users.get_user_by_id(db=db, user_id=user_id)
    if db_user is None:
        raise NotFoundError("User not found")

    booking_requests = await cruds_booking.get_booking_requests(
        db=db,
        requester_id=user_id,
    )
    statuses = Counter(booking_request.status for booking_request in booking_requests)
    today = local_today(settings)

    return schemas_booking.UserDetailResponse(
        user=schemas_booking.UserDetail(
            **schemas_users.User.model_validate(db_user).model_dump(),
            bookings=[
                schemas_booking.BookingRequestComplete.model_validate(booking_request)
                for booking_request in booking_requests
            ],
            stats=schemas_users.UserStats(
                totalBookings=len(booking_requests),
                approved=statuses[RequestStatus.approved],
                pending=statuses[RequestStatus.pending],
                rejected=statuses[RequestStatus.rejected],
                upcomingEvents=len(
                    [
                        booking_request
                        for booking_request in booking_requests
                        if booking_request.status == RequestStatus.approved
                        and booking_request.start_date >= today
                    ],
                ),
            ),
        ),
    )
