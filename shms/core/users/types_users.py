from enum import Enum


class Role(str, Enum):
    """
    The role of a user decides which dashboard and which endpoints they can access.
    A user's role is set when the account is provisioned and does not change afterwards.
    """

    admin = "admin"
    faculty = "faculty"
    clubs = "clubs"

    def __str__(self) -> str:
        return f"{self.name}<{self.value}>"
