from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class HolderDetails:
    """Profile fields an admin binds to a tag."""

    holder_name: str
    holder_email: str | None = None
    holder_phone: str | None = None
    department: str | None = None
    position: str | None = None
    employee_id: str | None = None
    photo_url: str | None = None


@dataclass(frozen=True)
class CardEntity:
    id: str
    tag_id: str  # unique for all time, never released by deactivation
    holder: HolderDetails
    assigned_by: str  # identity of the admin who created the record
    assigned_at: datetime
    is_active: bool = True  # only ever flips True -> False

    def to_profile(self) -> CardProfile:
        return CardProfile(holder=self.holder, assigned_at=self.assigned_at)


@dataclass(frozen=True)
class CardProfile:
    """Public view of a card: what a scanner gets to see."""

    holder: HolderDetails
    assigned_at: datetime


@dataclass(frozen=True)
class CardWithAssigner:
    card: CardEntity
    assigned_by_email: str | None
