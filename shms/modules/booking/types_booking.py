from enum import Enum


class RequestStatus(str, Enum):
    """
    A booking request starts pending and is either approved or rejected by an administrator.
    A processed request is never re-opened.
    """

    pending = "pending"
    approved = "approved"
    rejected = "rejected"

    def __str__(self) -> str:
        return f"{self.name}<{self.value}>"
