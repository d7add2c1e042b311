from __future__ import annotations

import logging
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable

from src.domain.entities.card import CardProfile, CardWithAssigner, HolderDetails
from src.domain.errors import AlreadyBound, ConcurrentModification, InvalidInput, NotFound
from src.domain.services.role_registry import RoleRegistry
from src.domain.services.tag_acquisition import TagSource, acquire_tag_id, normalize_tag_id
from src.infrastructure.database.repositories.card_repository import CardRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository

logger = logging.getLogger("nfccards.cards")


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class CardDirectory:
    """Binds tag identifiers to holder profiles.

    A card moves ``nonexistent -> active -> inactive`` and never back. Its tag
    id stays taken after deactivation, so there is no reassignment path.
    """

    cards: CardRepository
    registry: RoleRegistry
    profiles: ProfileRepository
    transaction: Callable[[], AbstractContextManager] = nullcontext
    clock: Callable[[], datetime] = _utcnow

    def assign(self, requester: str | None, tag_id: str, holder: HolderDetails) -> str:
        """Create an active card for ``tag_id`` and return its record id.

        Raises:
            NotAuthenticated / Unauthorized: Requester is not an admin.
            AlreadyBound: A card for ``tag_id`` exists, active or not.
            InvalidInput: Blank tag id or holder name.
        """
        tag_id = normalize_tag_id(tag_id)
        if not holder.holder_name or not holder.holder_name.strip():
            raise InvalidInput("Holder name is required")

        try:
            with self.transaction():
                admin = self.registry.require_admin(requester, "assign cards")
                if self.cards.get_by_tag(tag_id) is not None:
                    logger.info("Rejected assignment of already bound tag %s", tag_id)
                    raise AlreadyBound()
                card = self.cards.create(tag_id, holder, assigned_by=admin, assigned_at=self.clock())
        except ConcurrentModification:
            # a concurrent assign of the same tag committed first
            if self.cards.get_by_tag(tag_id) is not None:
                logger.info("Lost assignment race for tag %s", tag_id)
                raise AlreadyBound() from None
            raise
        logger.info("Tag %s assigned as card %s by %s", tag_id, card.id, admin)
        return card.id

    def assign_from(self, requester: str | None, source: TagSource, holder: HolderDetails) -> str:
        return self.assign(requester, acquire_tag_id(source), holder)

    def lookup(self, tag_id: str) -> CardProfile | None:
        """Profile bound to ``tag_id``, or None when unknown or deactivated.

        The two cases are deliberately indistinguishable to callers.
        """
        card = self.cards.get_by_tag(normalize_tag_id(tag_id))
        if card is None or not card.is_active:
            return None
        return card.to_profile()

    def lookup_from(self, source: TagSource) -> CardProfile | None:
        return self.lookup(acquire_tag_id(source))

    def deactivate(self, requester: str | None, card_id: str) -> None:
        try:
            with self.transaction():
                admin = self.registry.require_admin(requester, "deactivate cards")
                card = self.cards.get(card_id)
                if card is None:
                    raise NotFound("Card not found")
                if not card.is_active:
                    return
                self.cards.set_inactive(card_id)
        except ConcurrentModification:
            # another admin deactivated it first; deactivation is idempotent
            current = self.cards.get(card_id)
            if current is not None and not current.is_active:
                return
            raise
        logger.info("Card %s (tag %s) deactivated by %s", card_id, card.tag_id, admin)

    def list_all(self, requester: str | None) -> list[CardWithAssigner]:
        self.registry.require_admin(requester, "view all cards")
        cards = self.cards.list_active()
        assigners = self.profiles.get_many(c.assigned_by for c in cards)
        out = []
        for card in cards:
            profile = assigners.get(card.assigned_by)
            out.append(CardWithAssigner(card=card, assigned_by_email=profile.display_identity if profile else None))
        return out
