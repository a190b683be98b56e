"""Principal roles and the acting actor."""

from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    """Closed set of roles a principal can hold."""

    OWNER = "owner"
    BACKEND = "backend"
    FRONTEND = "frontend"
    QA = "qa"
    DESIGNER = "designer"
    PM = "pm"

    @classmethod
    def default(cls) -> "Role":
        """Role assigned to principals without an explicit one."""
        return cls.BACKEND

    @property
    def label(self) -> str:
        """Human readable role name."""
        return _ROLE_LABELS[self]

    def is_elevated(self) -> bool:
        """Return True for the administrative role."""
        return self is Role.OWNER


_ROLE_LABELS = {
    Role.OWNER: "Owner",
    Role.BACKEND: "Backend Developer",
    Role.FRONTEND: "Frontend Developer",
    Role.QA: "QA Engineer",
    Role.DESIGNER: "Designer",
    Role.PM: "Product Manager",
}


@dataclass(frozen=True)
class Actor:
    """Authenticated principal performing an operation."""

    id: int
    name: str
    role: Role

    def is_elevated(self) -> bool:
        return self.role.is_elevated()
