from typing import Any

from fastapi import HTTPException


class ContentHTTPException(HTTPException):
    """
    A custom HTTPException allowing to return custom content.

    Instead of returning `{detail: <content>}`, this exception can return a json serialized `<content>`.

    The application registers an exception handler for it:
    ```python
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
    ```
    """

    def __init__(
        self,
        status_code: int,
        content: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=content, headers=headers)
        self.content = content


class EnvelopeHTTPException(ContentHTTPException):
    """
    An error returned to the client as `{"success": false, "message": <message>}`.

    Subclasses only fix the status code, endpoints choose the message.
    """

    status_code_value: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(
            status_code=self.status_code_value,
            content={"success": False, "message": self.message},
            headers=headers,
        )


class ValidationError(EnvelopeHTTPException):
    status_code_value = 400
    default_message = "Invalid request"


class ConflictError(EnvelopeHTTPException):
    """The entity is not in a state allowing the requested transition"""

    status_code_value = 400
    default_message = "Request has already been processed"


class NotAuthenticatedError(EnvelopeHTTPException):
    status_code_value = 401
    default_message = "Not authenticated"


class ForbiddenError(EnvelopeHTTPException):
    status_code_value = 403
    default_message = "You are not allowed to access this resource"


class NotFoundError(EnvelopeHTTPException):
    status_code_value = 404
    default_message = "Not found"


class BookingConflictError(EnvelopeHTTPException):
    status_code_value = 409
    default_message = (
        "One or more halls are already booked for the selected time window"
    )


class UpstreamError(EnvelopeHTTPException):
    """The database or another backing service failed. Details must be logged, not returned"""

    status_code_value = 500
    default_message = "Internal server error"


class MissingTZInfoInDatetimeError(TypeError):
    def __init__(self):
        super().__init__("tzinfo info is required for datetime objects")


class DotenvMissingVariableError(Exception):
    def __init__(self, variable_name: str):
        super().__init__(f"{variable_name} should be configured in the dotenv")


class DotenvInvalidVariableError(Exception):
    pass


class InvalidAppStateTypeError(Exception):
    def __init__(self):
        super().__init__(
            "The type of the app state is not supported. It should be a dict or a starlette State object.",
        )


class InvalidSessionTokenError(Exception):
    def __init__(self):
        super().__init__("The session token could not be verified")
