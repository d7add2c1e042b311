from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ProfileEntity:
    id: str  # identity id from the auth provider
    email: str | None
    created_at: datetime | None = None
    display_name: str | None = None

    @property
    def display_identity(self) -> str | None:
        return self.email or self.display_name
