from __future__ import annotations

from datetime import UTC, datetime
from typing import Iterable

from postgrest.exceptions import APIError
from supabase import Client

from src.domain.entities.profile import ProfileEntity
from src.infrastructure.config import get_settings
from src.infrastructure.database.postgres_client import get_postgres_client

# module-level in-memory store for disabled mode
_MEM_PROFILES: dict[str, ProfileEntity] = {}


class ProfileRepository:
    """Identity profiles: the display side of authenticated users."""

    def __init__(self, client: Client | None) -> None:
        self.client = client
        settings = get_settings()
        self.disabled = settings.supabase_disabled
        self.use_local_db = settings.use_local_db
        self.pg_client = get_postgres_client() if self.use_local_db else None

    def _row_to_entity(self, row: dict) -> ProfileEntity:
        """Convert database row to ProfileEntity."""
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        return ProfileEntity(
            id=row["id"],
            email=row.get("email"),
            created_at=created_at,
            display_name=row.get("display_name"),
        )

    def upsert(self, user_id: str, email: str | None) -> ProfileEntity:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                query = """
                    INSERT INTO profiles (id, email, created_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (id) DO UPDATE SET email = COALESCE(EXCLUDED.email, profiles.email)
                    RETURNING *
                """
                row = self.pg_client.execute_insert(query, (user_id, email))
                return self._row_to_entity(row)
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL upsert profile failed: {exc}") from exc

        # In-memory mode
        if self.disabled or self.client is None:
            current = _MEM_PROFILES.get(user_id)
            entity = ProfileEntity(
                id=user_id,
                email=email or (current.email if current else None),
                created_at=current.created_at if current else datetime.now(UTC),
                display_name=current.display_name if current else None,
            )
            _MEM_PROFILES[user_id] = entity
            return entity

        # Supabase mode
        try:  # pragma: no cover - network
            data = {"id": user_id}
            if email:
                data["email"] = email
            self.client.table("profiles").upsert(data, on_conflict="id").execute()
            res = self.client.table("profiles").select("*").eq("id", user_id).single().execute()
            return self._row_to_entity(res.data)
        except APIError as exc:
            raise RuntimeError(f"DB upsert profile failed: {exc}") from exc

    def get_many(self, user_ids: Iterable[str]) -> dict[str, ProfileEntity]:
        """Profiles for ``user_ids`` keyed by id; unknown ids are left out."""
        ids = sorted(set(user_ids))
        if not ids:
            return {}

        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            rows = self.pg_client.execute_many("SELECT * FROM profiles WHERE id = ANY(%s)", (ids,))
            return {row["id"]: self._row_to_entity(row) for row in rows}

        # In-memory mode
        if self.disabled or self.client is None:
            return {i: _MEM_PROFILES[i] for i in ids if i in _MEM_PROFILES}

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("profiles").select("*").in_("id", ids).execute()
            rows = res.data or []
            return {row["id"]: self._row_to_entity(row) for row in rows}
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB list profiles failed: {exc}") from exc
