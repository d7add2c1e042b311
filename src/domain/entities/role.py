from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


# Role reported for an identity that has no assignment yet
DEFAULT_ROLE = Role.USER


@dataclass(frozen=True)
class RoleAssignmentEntity:
    user_id: str  # one assignment per identity
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN
