"""File defining the Metadata. And the basic functions creating the database tables and calling the router"""

import logging
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.routing import APIRoute
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException as StarletteHTTPException

from shms import api
from shms.core.auth import guard_auth
from shms.core.utils import security
from shms.core.utils.config import Settings
from shms.core.utils.log import LogConfig
from shms.dependencies import disconnect_state, init_app_state
from shms.modules.halls import coredata_halls, cruds_halls
from shms.types.exceptions import ContentHTTPException
from shms.types.sqlalchemy import Base, SessionLocalType
from shms.utils.state import LifespanState

# NOTE: We can not get loggers at the top of this file like we do in other files
# as the loggers are not yet initialized


async def update_db_tables(
    engine: AsyncEngine,
    shms_error_logger: logging.Logger,
    drop_db: bool = False,
) -> None:
    """
    Create the missing tables.

    if drop_db is True, we will drop all tables before creating them again
    """
    try:
        async with engine.begin() as conn:
            if drop_db:
                shms_error_logger.warning("Startup: Dropping all database tables")
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        shms_error_logger.info("Startup: Database tables updated")
    except SQLAlchemyError as error:
        shms_error_logger.fatal(
            f"Startup: Could not create tables in the database: {error}",
        )
        raise


async def initialize_halls(
    SessionLocal: SessionLocalType,
    shms_error_logger: logging.Logger,
) -> None:
    """Add the default halls if the catalogue is empty"""

    async with SessionLocal() as db:
        if await cruds_halls.count_halls(db=db) > 0:
            shms_error_logger.info("Startup: Halls already initialized")
            return
        try:
            await cruds_halls.create_halls(
                db=db,
                halls=coredata_halls.get_default_halls(),
            )
            await db.commit()
        except SQLAlchemyError as error:
            await db.rollback()
            shms_error_logger.fatal(
                f"Startup: Could not add the default halls in the database: {error}",
            )
            raise
        shms_error_logger.info("Startup: Default halls added to the database")


def use_route_path_as_operation_ids(app: FastAPI) -> None:
    """
    Simplify operation IDs so that generated API clients have simpler function names.

    The operation_id will have the format "method_path", like "get_api_users_me".

    See https://fastapi.tiangolo.com/advanced/path-operation-advanced-configuration/
    """
    for route in app.routes:
        if isinstance(route, APIRoute):
            method = "_".join(route.methods)
            route.operation_id = method.lower() + route.path.replace("/", "_")


async def init_lifespan(
    app: FastAPI,
    settings: Settings,
    shms_error_logger: logging.Logger,
    drop_db: bool,
) -> LifespanState:
    shms_error_logger.info("Startup: Initializing application")

    state = await app.dependency_overrides.get(
        init_app_state,
        init_app_state,
    )(
        app=app,
        settings=settings,
        shms_error_logger=shms_error_logger,
    )

    await update_db_tables(
        engine=state["engine"],
        shms_error_logger=shms_error_logger,
        drop_db=drop_db,
    )
    await initialize_halls(
        SessionLocal=state["SessionLocal"],
        shms_error_logger=shms_error_logger,
    )

    return state


# We wrap the application in a function to be able to pass the settings and drop_db parameters
# The drop_db parameter is used to drop the database tables before creating them again
def get_application(settings: Settings, drop_db: bool = False) -> FastAPI:
    # Initialize loggers
    LogConfig().initialize_loggers(settings=settings)

    shms_access_logger = logging.getLogger("shms.access")
    shms_security_logger = logging.getLogger("shms.security")
    shms_error_logger = logging.getLogger("shms.error")

    if not settings.SMTP_ACTIVE:
        shms_error_logger.warning(
            "SMTP is not configured, emails will be written to the security log",
        )

    # Creating a lifespan which will be called when the application starts then shuts down
    # https://fastapi.tiangolo.com/advanced/events/
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[LifespanState, None]:
        state = await init_lifespan(
            app=app,
            settings=settings,
            shms_error_logger=shms_error_logger,
            drop_db=drop_db,
        )

        # Starlette copies the yielded state in each request state
        yield state

        shms_error_logger.info("Shutting down")
        await app.dependency_overrides.get(
            disconnect_state,
            disconnect_state,
        )(
            state=state,
            shms_error_logger=shms_error_logger,
        )

    # Initialize app
    app = FastAPI(
        title="SHMS",
        version=settings.SHMS_VERSION,
        lifespan=lifespan,
    )
    app.include_router(api.api_router)
    use_route_path_as_operation_ids(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Middlewares declared last are called first: the guard runs inside the logging middleware
    @app.middleware("http")
    async def guard_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """
        Redirect page requests to the login page or to the user's dashboard when the session cookies do not allow them.
        API routes are not concerned, they check the session token themselves.
        """
        decision = guard_auth.check_route_access(
            path=request.url.path,
            is_authenticated_cookie=request.cookies.get(security.AUTHENTICATED_COOKIE),
            user_cookie=request.cookies.get(security.SESSION_COOKIE),
            settings=settings,
        )
        if decision.redirect_to is not None:
            return RedirectResponse(
                url=decision.redirect_to,
                status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            )
        return await call_next(request)

    @app.middleware("http")
    async def logging_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """
        This middleware is called around each request.
        It logs the request and inject a unique identifier in the request that should be used to associate logs saved during the request.
        """
        # This identifier will allow combining logs associated with the same request
        # https://www.starlette.io/requests/#other-state
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        if request.client is None:
            shms_security_logger.warning(
                f"Client information not available for {request.url.path} ({request_id})",
            )
            client_address = "unknown"
        else:
            client_address = f"{request.client.host}:{request.client.port}"

        response = await call_next(request)

        shms_access_logger.info(
            f'{client_address} - "{request.method} {request.url.path}" {response.status_code} ({request_id})',
        )
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ):
        # We use a Debug logger to log the error as personal data may be present in the request
        shms_error_logger.debug(
            f"Validation error: {exc.errors()} ({request.state.request_id})",
        )

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder(
                {
                    "success": False,
                    "message": "Invalid request",
                    "errors": exc.errors(),
                },
            ),
        )

    @app.exception_handler(ContentHTTPException)
    async def content_exception_handler(
        request: Request,
        exc: ContentHTTPException,
    ):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(exc.content),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request,
        exc: StarletteHTTPException,
    ):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=exc.headers,
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(
        request: Request,
        exc: SQLAlchemyError,
    ):
        shms_error_logger.error(
            f"Database error on {request.method} {request.url.path} ({request.state.request_id})",
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal server error"},
        )

    return app
