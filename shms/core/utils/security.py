import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import bcrypt
import jwt
from fastapi.security import HTTPBearer

from shms.core.auth import schemas_auth
from shms.types.exceptions import InvalidSessionTokenError

if TYPE_CHECKING:
    from shms.core.utils.config import Settings


"""
In order to salt and hash password, we the bcrypt hashing function (see https://en.wikipedia.org/wiki/Bcrypt).

A different salt will be added automatically for each password.
It is important to use enough rounds while accounting for the hash computation time. Default is 12. 13 allows for a 0.5 seconds computing delay.
"""

session_bearer_scheme = HTTPBearer(auto_error=False)
"""
API clients may send the session token in an `Authorization: Bearer` header instead of the session cookie.
The scheme does not raise by itself, missing credentials are handled by the `get_session_data` dependency.
"""

jwt_algorithm = "HS256"
"""
The algorithm used to sign session tokens
"""

SESSION_COOKIE = "user"
AUTHENTICATED_COOKIE = "isAuthenticated"


def generate_token(nbytes=32) -> str:
    """
    Generate a `nbytes` bytes cryptographically strong random urlsafe token using the *secrets* library.

    By default, a 32 bytes token is generated.
    """
    return secrets.token_urlsafe(nbytes)


def generate_verification_code() -> str:
    """
    Generate a 6 digits one time code using the *secrets* library
    """
    return f"{secrets.randbelow(1_000_000):06d}"


def get_password_hash(password: str) -> str:
    """
    Return a salted hash computed from password.
    Both the salt and the algorithm identifier are included in the hash.
    """
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=13))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """
    Compare `plain_password` against its salted hash representation `hashed_password`.

    We generate a fake_hash for the case where hashed_password=None (ie the identifier isn't valid) to simulate the delay a real verification would have taken.
    This is useful to limit timing attacks that could be used to guess valid usernames or emails.
    """
    if hashed_password is None:
        fake_hash = bcrypt.hashpw(
            generate_token(12).encode("utf-8"),
            bcrypt.gensalt(13),
        )
        bcrypt.checkpw(plain_password.encode("utf-8"), fake_hash)
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        hashed_password.encode("utf-8"),
    )


def create_session_token(
    settings: "Settings",
    data: schemas_auth.SessionData,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create the signed session token stored in the `user` cookie. The token is signed using ACCESS_TOKEN_SECRET_KEY secret.
    """
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.SESSION_EXPIRE_HOURS)
    to_encode = data.model_dump(mode="json", exclude_none=True)
    iat = datetime.now(UTC)
    expire_on = iat + expires_delta
    to_encode.update({"exp": expire_on, "iat": iat})
    return jwt.encode(
        to_encode,
        settings.ACCESS_TOKEN_SECRET_KEY,
        algorithm=jwt_algorithm,
    )


def decode_session_token(
    settings: "Settings",
    token: str,
) -> schemas_auth.SessionData:
    """
    Verify the signature and the expiration of a session token and return its payload.

    Raise `InvalidSessionTokenError` for an unsigned, tampered, expired or malformed token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.ACCESS_TOKEN_SECRET_KEY,
            algorithms=[jwt_algorithm],
        )
        return schemas_auth.SessionData.model_validate(payload)
    except (jwt.InvalidTokenError, ValueError) as error:
        raise InvalidSessionTokenError from error
