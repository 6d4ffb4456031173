from datetime import datetime

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from shms.types.sqlalchemy import Base


class LoginSession(Base):
    """
    A pending or completed two-step login.

    The session is created when the password is checked and becomes verified once the emailed code is submitted.
    """

    __tablename__ = "login_sessions"

    id: Mapped[str] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    session_token: Mapped[str] = mapped_column(unique=True, index=True)
    verification_code: Mapped[str]
    expires_at: Mapped[datetime]
    created_at: Mapped[datetime]
    is_verified: Mapped[bool] = mapped_column(default=False)
