from enum import Enum


class NotificationType(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"

    def __str__(self) -> str:
        return f"{self.name}<{self.value}>"
