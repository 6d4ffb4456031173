"""
Various FastAPI [dependencies](https://fastapi.tiangolo.com/tutorial/dependencies/)

They are used in endpoints function signatures. For example:
```python
async def get_halls(db: AsyncSession = Depends(get_db)):
```
"""

import logging
from collections.abc import AsyncGenerator, Callable, Coroutine
from functools import lru_cache
from typing import Annotated, Any, cast

import starlette
import starlette.datastructures
from fastapi import BackgroundTasks, Cookie, Depends, FastAPI, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from shms.core.auth import schemas_auth
from shms.core.users import cruds_users, models_users
from shms.core.users.types_users import Role
from shms.core.utils import security
from shms.core.utils.config import Settings, construct_prod_settings
from shms.types.exceptions import (
    ForbiddenError,
    InvalidAppStateTypeError,
    InvalidSessionTokenError,
    NotAuthenticatedError,
)
from shms.utils.communication.emails import EmailTool
from shms.utils.state import (
    LifespanState,
    RuntimeLifespanState,
    init_engine,
    init_SessionLocal,
)

shms_access_logger = logging.getLogger("shms.access")
shms_security_logger = logging.getLogger("shms.security")


async def init_app_state(
    app: FastAPI,
    settings: Settings,
    shms_error_logger: logging.Logger,
) -> LifespanState:
    """
    Initialize the state of the application. This dependency should be used at the start of the application lifespan.

    This method should be called as a dependency, and test may override it to provide their own state.
    ```python
    state = await app.dependency_overrides.get(
        init_app_state,
        init_app_state,
    )(
        app=app,
        settings=settings,
        shms_error_logger=shms_error_logger,
    )
    ```
    """
    engine = init_engine(settings=settings)

    SessionLocal = init_SessionLocal(engine)

    return LifespanState(
        engine=engine,
        SessionLocal=SessionLocal,
    )


async def disconnect_state(
    state: LifespanState,
    shms_error_logger: logging.Logger,
) -> None:
    """
    Disconnect items requiring it. This dependency should be used at the end of the application lifespan.
    """
    await state["engine"].dispose()

    shms_error_logger.info("Application state disconnected successfully.")


def get_app_state(request: Request) -> RuntimeLifespanState:
    """
    Get the application state from the request. The state is injected by our middleware.
    """
    # `request.state` may be a TypedDict or a starlette State object
    # depending if it is accessed in an endpoint or the lifespan

    if isinstance(request.state, dict):
        return cast("RuntimeLifespanState", request.state)
    if isinstance(request.state, starlette.datastructures.State):
        return cast("RuntimeLifespanState", request.state.__dict__["_state"])
    raise InvalidAppStateTypeError


AppState = Annotated[RuntimeLifespanState, Depends(get_app_state)]


async def get_request_id(state: AppState) -> str:
    """
    The request identifier is a unique UUID which is used to associate logs saved during the same request
    """

    return state["request_id"]


@lru_cache
def get_settings() -> Settings:
    """
    Return a settings object, based on `.env` dotenv
    """
    # `lru_cache()` decorator is here to prevent the class to be instantiated multiple times.
    # See https://fastapi.tiangolo.com/advanced/settings/#lru_cache-technical-details
    return construct_prod_settings()


async def get_db(state: AppState) -> AsyncGenerator[AsyncSession, None]:
    """
    Return a database session that will be automatically committed and closed after usage.

    If an HTTPException is raised during the request, we consider that the error was expected and managed by the endpoint. We commit the session.
    If an other exception is raised, we rollback the session.

    Cruds and endpoints should never call `db.commit()` directly.
    After adding an object to the session, calling `await db.flush()` will integrate the changes in the transaction without committing them.

    An endpoint that needs to undo part of its changes, without losing the whole transaction, should use a SAVEPOINT:
    ```python
    async with db.begin_nested():
        # Add objects that may be rolled back in case of an error here
    ```
    """
    async with state["SessionLocal"]() as db:
        try:
            yield db
        except HTTPException:
            await db.commit()
            raise
        except Exception:
            await db.rollback()
            raise
        else:
            await db.commit()
        finally:
            await db.close()


def get_email_tool(
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
) -> EmailTool:
    """
    Dependency that returns an email tool, allowing to send emails as background tasks.
    """

    return EmailTool(
        background_tasks=background_tasks,
        settings=settings,
    )


def get_session_data(
    settings: Settings = Depends(get_settings),
    credentials: HTTPAuthorizationCredentials | None = Depends(
        security.session_bearer_scheme,
    ),
    user_cookie: str | None = Cookie(default=None, alias=security.SESSION_COOKIE),
    request_id: str = Depends(get_request_id),
) -> schemas_auth.SessionData:
    """
    Dependency that returns the payload of the session token.

    The token is read from the `Authorization: Bearer` header, or from the session cookie set on login.
    """
    token = credentials.credentials if credentials is not None else user_cookie
    if not token:
        raise NotAuthenticatedError
    try:
        session_data = security.decode_session_token(settings=settings, token=token)
    except InvalidSessionTokenError:
        shms_access_logger.info(
            f"Get_session_data: Failed to decode a session token ({request_id})",
        )
        raise NotAuthenticatedError from None
    return session_data


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    session_data: schemas_auth.SessionData = Depends(get_session_data),
    request_id: str = Depends(get_request_id),
) -> models_users.User:
    """
    Dependency that makes sure the session token is valid and returns the corresponding active user.
    """
    user = await cruds_users.get_user_by_id(db=db, user_id=session_data.sub)
    if user is None or not user.is_active:
        shms_security_logger.warning(
            f"Get_current_user: session token for unknown or inactive user {session_data.sub} ({request_id})",
        )
        raise NotAuthenticatedError
    return user


def is_user(
    included_roles: list[Role] | None = None,
) -> Callable[
    [models_users.User, str],
    Coroutine[Any, Any, models_users.User],
]:
    """
    Generate a dependency which will:
        * check if the request contains a valid session token
        * make sure the user making the request exists and is active
        * make sure the user has one of `included_roles`, if provided
        * return the corresponding user `models_users.User` object
    """

    async def is_user(
        user: models_users.User = Depends(get_current_user),
        request_id: str = Depends(get_request_id),
    ) -> models_users.User:
        if included_roles is not None and user.role not in included_roles:
            shms_security_logger.info(
                f"Is_user: user {user.id} with role {user.role} was denied access ({request_id})",
            )
            raise ForbiddenError
        return user

    return is_user


def is_user_in(
    role: Role,
) -> Callable[
    [models_users.User, str],
    Coroutine[Any, Any, models_users.User],
]:
    """
    Generate a dependency which will make sure the user making the request has the given role, see `is_user`
    """

    return is_user(included_roles=[role])
