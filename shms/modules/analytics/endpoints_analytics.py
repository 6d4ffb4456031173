from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.users import cruds_users, models_users
from shms.core.users.types_users import Role
from shms.core.utils.config import Settings
from shms.dependencies import get_db, get_settings, is_user_in
from shms.modules.analytics import cruds_analytics, schemas_analytics
from shms.modules.booking import cruds_booking, schemas_booking
from shms.modules.booking.types_booking import RequestStatus
from shms.modules.halls import cruds_halls
from shms.types.module import Module
from shms.utils.tools import local_midnight, local_today

module = Module(
    root="analytics",
    tag="Analytics",
)

RECENT_REQUESTS_LIMIT = 5


@module.router.get(
    "/api/admin/analytics",
    response_model=schemas_analytics.AdminAnalyticsResponse,
    status_code=200,
)
async def get_admin_analytics(
    period: str = "today",
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.admin)),
    settings: Settings = Depends(get_settings),
):
    """
    Get a snapshot for the administrator dashboard:
     * `totalRequests`: requests created since local midnight
     * `pendingRequests`: all requests waiting for a decision
     * `approvedRequests`: approved requests starting today
     * `todayEvents`: approved requests starting today, by start time
     * `recentRequests`: the last created requests

    Each figure is computed by its own query, they may be slightly inconsistent under concurrent writes.
    Only the `today` period is computed, other values are echoed back.

    **This endpoint is only usable by administrators**
    """
    today = local_today(settings)

    total_requests = await cruds_analytics.count_booking_requests(
        db=db,
        created_since=local_midnight(settings),
    )
    pending_requests = await cruds_analytics.count_booking_requests(
        db=db,
        status=RequestStatus.pending,
    )
    approved_requests = await cruds_analytics.count_booking_requests(
        db=db,
        status=RequestStatus.approved,
        starting_on=today,
    )
    total_halls = await cruds_halls.count_halls(db=db)
    users_by_role = await cruds_users.count_users_by_role(db=db)

    today_events = await cruds_analytics.get_approved_events_starting_on(
        db=db,
        day=today,
    )
    recent_requests = await cruds_booking.get_booking_requests(
        db=db,
        limit=RECENT_REQUESTS_LIMIT,
    )

    return schemas_analytics.AdminAnalyticsResponse(
        data=schemas_analytics.AdminAnalytics(
            period=period,
            stats=schemas_analytics.AdminStats(
                totalRequests=total_requests,
                pendingRequests=pending_requests,
                approvedRequests=approved_requests,
                totalHalls=total_halls,
                usersByRole={
                    role.value: users_by_role.get(role, 0) for role in Role
                },
            ),
            todayEvents=[
                schemas_booking.BookingRequestComplete.model_validate(event)
                for event in today_events
            ],
            recentRequests=[
                schemas_booking.BookingRequestComplete.model_validate(booking_request)
                for booking_request in recent_requests
            ],
        ),
    )


@module.router.get(
    "/api/club/analytics",
    response_model=schemas_analytics.ClubAnalytics,
    status_code=200,
)
async def get_club_analytics(
    db: AsyncSession = Depends(get_db),
    user: models_users.User = Depends(is_user_in(Role.clubs)),
    settings: Settings = Depends(get_settings),
):
    """
    Get the booking figures of the club making the request.
    `upcomingEvents` counts approved requests starting today or later.

    **This endpoint is only usable by clubs**
    """
    return schemas_analytics.ClubAnalytics(
        totalRequests=await cruds_analytics.count_booking_requests(
            db=db,
            requester_id=user.id,
        ),
        approvedRequests=await cruds_analytics.count_booking_requests(
            db=db,
            requester_id=user.id,
            status=RequestStatus.approved,
        ),
        pendingRequests=await cruds_analytics.count_booking_requests(
            db=db,
            requester_id=user.id,
            status=RequestStatus.pending,
        ),
        upcomingEvents=await cruds_analytics.count_booking_requests(
            db=db,
            requester_id=user.id,
            status=RequestStatus.approved,
            starting_from=local_today(settings),
        ),
    )
