"""
Session and role guard for page routes.

Every request that is not an API call nor a public page must carry the `isAuthenticated` and `user` cookies.
The `user` cookie contains a signed session token, its role decides which dashboard section can be visited.
"""

import logging
from typing import NamedTuple

from shms.core.auth import schemas_auth
from shms.core.users.types_users import Role
from shms.core.utils import security
from shms.core.utils.config import Settings
from shms.types.exceptions import InvalidSessionTokenError

shms_security_logger = logging.getLogger("shms.security")

LOGIN_PATH = "/login"

PUBLIC_PATHS = {LOGIN_PATH, "/", "/docs", "/redoc", "/openapi.json"}
PUBLIC_PREFIXES = ("/api/", "/docs/")

# Checked in order, the first matching prefix wins
PROTECTED_PREFIXES: list[tuple[str, set[Role]]] = [
    ("/admin", {Role.admin}),
    ("/faculty", {Role.faculty}),
    ("/club", {Role.clubs}),
]

DASHBOARDS: dict[Role, str] = {
    Role.admin: "/admin/dashboard",
    Role.faculty: "/faculty/dashboard",
    Role.clubs: "/club/dashboard",
}


class GuardDecision(NamedTuple):
    """
    `redirect_to` is None when the request may proceed
    """

    redirect_to: str | None = None
    session: schemas_auth.SessionData | None = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def get_dashboard(role: Role | str | None) -> str:
    """
    Return the dashboard of a role. Unknown roles are sent back to the login page
    """
    try:
        return DASHBOARDS[Role(role)]
    except ValueError:
        return LOGIN_PATH


def get_allowed_roles(path: str) -> set[Role] | None:
    """
    Return the roles allowed on the first protected prefix matching `path`, or None if the path is not protected
    """
    for prefix, roles in PROTECTED_PREFIXES:
        if path.startswith(prefix):
            return roles
    return None


def check_route_access(
    path: str,
    is_authenticated_cookie: str | None,
    user_cookie: str | None,
    settings: Settings,
) -> GuardDecision:
    if is_public_path(path):
        return GuardDecision()

    if is_authenticated_cookie != "true" or not user_cookie:
        return GuardDecision(redirect_to=LOGIN_PATH)

    try:
        session = security.decode_session_token(settings=settings, token=user_cookie)
    except InvalidSessionTokenError:
        shms_security_logger.warning(
            f"Guard: rejected an invalid session token for {path}",
        )
        return GuardDecision(redirect_to=LOGIN_PATH)

    allowed_roles = get_allowed_roles(path)
    if allowed_roles is not None and session.role not in allowed_roles:
        shms_security_logger.info(
            f"Guard: user {session.sub} with role {session.role} is not allowed on {path}",
        )
        return GuardDecision(redirect_to=get_dashboard(session.role), session=session)

    return GuardDecision(session=session)
