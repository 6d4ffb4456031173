import datetime

from sqlalchemy import DateTime, types
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, MappedAsDataclass
from sqlalchemy.types import TypeDecorator

from shms.types.exceptions import MissingTZInfoInDatetimeError


class TZDateTime(TypeDecorator):
    """
    Custom SQLAlchemy type for storing timezone-aware timestamps as timezone-naive UTC timestamps.
    We use this custom type because sqlite doesn't support datetime with timezone
    See https://docs.sqlalchemy.org/en/20/core/custom_types.html#store-timezone-aware-timestamps-as-timezone-naive-utc
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            if not value.tzinfo or value.tzinfo.utcoffset(value) is None:
                raise MissingTZInfoInDatetimeError()
            value = value.astimezone(datetime.UTC).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            value = value.replace(tzinfo=datetime.UTC)
        return value


SessionLocalType = async_sessionmaker[AsyncSession]


class Base(MappedAsDataclass, DeclarativeBase):
    """Base class for all models.

    The type map is overriden to use our custom datetime type (see https://docs.sqlalchemy.org/en/20/orm/declarative_tables.html#customizing-the-type-map)"""

    type_annotation_map = {
        bool: types.Boolean(),
        datetime.date: types.Date(),
        datetime.time: types.Time(),
        datetime.datetime: TZDateTime(),
        str: types.String(),
    }
