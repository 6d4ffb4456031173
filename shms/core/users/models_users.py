from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from shms.core.users.types_users import Role
from shms.types.sqlalchemy import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(primary_key=True, index=True)
    username: Mapped[str] = mapped_column(unique=True, index=True)
    email: Mapped[str] = mapped_column(unique=True, index=True)
    password_hash: Mapped[str]
    role: Mapped[Role]
    created_at: Mapped[datetime]
    # Only club accounts carry a club name. It is displayed instead of the username in emails
    club_name: Mapped[str | None] = mapped_column(default=None)
    branch: Mapped[str | None] = mapped_column(default=None)
    is_active: Mapped[bool] = mapped_column(default=True)
    is_email_verified: Mapped[bool] = mapped_column(default=False)

    @property
    def display_name(self) -> str:
        """
        Return the name used to address the user: the club name for club accounts, the username otherwise
        """
        return self.club_name or self.username
