from sqlalchemy import JSON
from sqlalchemy.orm import Mapped, mapped_column

from shms.types.sqlalchemy import Base


class Hall(Base):
    __tablename__ = "halls"

    id: Mapped[str] = mapped_column(primary_key=True, index=True)
    name: Mapped[str]
    capacity: Mapped[int]
    description: Mapped[str]
    location: Mapped[str]
    amenities: Mapped[list[str]] = mapped_column(JSON, default_factory=list)
    is_active: Mapped[bool] = mapped_column(default=True)
