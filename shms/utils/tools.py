from datetime import UTC, date, datetime, time

from fastapi.templating import Jinja2Templates

from shms.core.utils.config import Settings

templates = Jinja2Templates(directory="assets/templates")


def utc_now() -> datetime:
    return datetime.now(UTC)


def local_today(settings: Settings) -> date:
    """
    Return the current date in the configured timezone
    """
    return datetime.now(settings.TZ).date()


def local_midnight(settings: Settings) -> datetime:
    """
    Return the start of the current day in the configured timezone, as an aware datetime
    """
    return datetime.combine(local_today(settings), time.min, tzinfo=settings.TZ)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")
