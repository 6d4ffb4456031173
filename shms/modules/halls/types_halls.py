from enum import Enum


class HallStatus(str, Enum):
    """Status of a hall on a given date"""

    booked = "booked"
    pending = "pending"
    available = "available"
