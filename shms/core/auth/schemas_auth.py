"""Schemas file for endpoint /api/auth"""

from pydantic import BaseModel

from shms.core.users import schemas_users
from shms.core.users.types_users import Role


class SessionData(BaseModel):
    """
    Payload of the signed session token stored in the `user` cookie
    """

    sub: str  # Subject of the JWT, this is the user id
    role: Role
    username: str
    club_name: str | None = None


# Body fields are optional so the endpoints can answer missing fields with an explicit message
class LoginRequest(BaseModel):
    identifier: str | None = None
    password: str | None = None


class VerifyRequest(BaseModel):
    sessionToken: str | None = None
    verificationCode: str | None = None


class ResendCodeRequest(BaseModel):
    sessionToken: str | None = None


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    user: schemas_users.User
    sessionToken: str
    requiresVerification: bool = True
    codeSent: bool


class VerifyResponse(BaseModel):
    success: bool = True
    message: str
    user: schemas_users.User
