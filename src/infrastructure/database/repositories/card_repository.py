from __future__ import annotations

from datetime import datetime

from psycopg2 import errors as pg_errors
from postgrest.exceptions import APIError
from supabase import Client

from src.domain.entities.card import CardEntity, HolderDetails
from src.domain.errors import AlreadyBound
from src.infrastructure.config import get_settings
from src.infrastructure.database.postgres_client import get_postgres_client

# module-level in-memory store for disabled mode
_MEM_CARDS: dict[str, CardEntity] = {}

_UNIQUE_VIOLATION = "23505"

_HOLDER_COLUMNS = (
    "holder_name",
    "holder_email",
    "holder_phone",
    "department",
    "position",
    "employee_id",
    "photo_url",
)


class CardRepository:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        settings = get_settings()
        self.disabled = settings.supabase_disabled
        self.use_local_db = settings.use_local_db
        self.pg_client = get_postgres_client() if self.use_local_db else None

    def _row_to_entity(self, row: dict) -> CardEntity:
        """Convert database row to CardEntity."""
        assigned_at = row["assigned_at"]
        if isinstance(assigned_at, str):
            assigned_at = datetime.fromisoformat(assigned_at)

        return CardEntity(
            id=str(row["id"]),
            tag_id=row["tag_id"],
            holder=HolderDetails(**{col: row.get(col) for col in _HOLDER_COLUMNS}),
            assigned_by=row["assigned_by"],
            assigned_at=assigned_at,
            is_active=bool(row.get("is_active", True)),
        )

    def create(self, tag_id: str, holder: HolderDetails, assigned_by: str, assigned_at: datetime) -> CardEntity:
        """Insert a new active card.

        Raises:
            AlreadyBound: If any card, active or not, already holds ``tag_id``.
        """
        values = {col: getattr(holder, col) for col in _HOLDER_COLUMNS}

        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = """
                INSERT INTO nfc_cards (
                    tag_id, holder_name, holder_email, holder_phone, department,
                    position, employee_id, photo_url, assigned_by, is_active, assigned_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, TRUE, %s)
                RETURNING *
            """
            try:
                row = self.pg_client.execute_insert(
                    query,
                    (tag_id, *values.values(), assigned_by, assigned_at),
                )
            except pg_errors.UniqueViolation as exc:
                raise AlreadyBound() from exc
            except pg_errors.SerializationFailure:
                raise
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL insert card failed: {exc}") from exc
            return self._row_to_entity(row)

        # In-memory mode
        if self.disabled or self.client is None:
            if any(c.tag_id == tag_id for c in _MEM_CARDS.values()):
                raise AlreadyBound()
            card_id = f"card_{len(_MEM_CARDS)+1}"
            entity = CardEntity(
                id=card_id,
                tag_id=tag_id,
                holder=holder,
                assigned_by=assigned_by,
                assigned_at=assigned_at,
                is_active=True,
            )
            _MEM_CARDS[card_id] = entity
            return entity

        # Supabase mode
        data = {
            "tag_id": tag_id,
            **{k: v for k, v in values.items() if v is not None},
            "assigned_by": assigned_by,
            "is_active": True,
            "assigned_at": assigned_at.isoformat(),
        }
        try:  # pragma: no cover - network
            res = self.client.table("nfc_cards").insert(data).execute()
            return self._row_to_entity(res.data[0])
        except APIError as exc:  # pragma: no cover - network
            if exc.code == _UNIQUE_VIOLATION:
                raise AlreadyBound() from exc
            raise RuntimeError(f"DB insert card failed: {exc}") from exc

    def get(self, card_id: str) -> CardEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            row = self.pg_client.execute_one("SELECT * FROM nfc_cards WHERE id = %s", (card_id,))
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self.disabled or self.client is None:
            return _MEM_CARDS.get(card_id)

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("nfc_cards").select("*").eq("id", card_id).limit(1).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB get card failed: {exc}") from exc

    def get_by_tag(self, tag_id: str) -> CardEntity | None:
        """Return the card bound to ``tag_id`` regardless of its active flag."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            row = self.pg_client.execute_one("SELECT * FROM nfc_cards WHERE tag_id = %s", (tag_id,))
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self.disabled or self.client is None:
            return next((c for c in _MEM_CARDS.values() if c.tag_id == tag_id), None)

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("nfc_cards").select("*").eq("tag_id", tag_id).limit(1).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB get card by tag failed: {exc}") from exc

    def list_active(self) -> list[CardEntity]:
        """Active cards, newest assignment first."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = """
                SELECT * FROM nfc_cards
                WHERE is_active = TRUE
                ORDER BY assigned_at DESC
            """
            rows = self.pg_client.execute_many(query)
            return [self._row_to_entity(row) for row in rows]

        # In-memory mode
        if self.disabled or self.client is None:
            active = [c for c in _MEM_CARDS.values() if c.is_active]
            return sorted(active, key=lambda c: c.assigned_at, reverse=True)

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("nfc_cards")
                .select("*")
                .eq("is_active", True)
                .order("assigned_at", desc=True)
                .execute()
            )
            rows = res.data or []
            return [self._row_to_entity(row) for row in rows]
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB list cards failed: {exc}") from exc

    def set_inactive(self, card_id: str) -> bool:
        """Flip ``is_active`` to False. Returns False when no such card exists."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = "UPDATE nfc_cards SET is_active = FALSE WHERE id = %s"
            return self.pg_client.execute_update(query, (card_id,)) > 0

        # In-memory mode
        if self.disabled or self.client is None:
            current = _MEM_CARDS.get(card_id)
            if current is None:
                return False
            _MEM_CARDS[card_id] = CardEntity(
                id=current.id,
                tag_id=current.tag_id,
                holder=current.holder,
                assigned_by=current.assigned_by,
                assigned_at=current.assigned_at,
                is_active=False,
            )
            return True

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("nfc_cards").update({"is_active": False}).eq("id", card_id).execute()
            return bool(res.data)
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB deactivate card failed: {exc}") from exc
