from __future__ import annotations

from postgrest.exceptions import APIError
from supabase import Client

from src.domain.entities.role import Role, RoleAssignmentEntity
from src.infrastructure.config import get_settings
from src.infrastructure.database.postgres_client import get_postgres_client

# module-level in-memory store for disabled mode
_MEM_ROLES: dict[str, RoleAssignmentEntity] = {}


class RoleRepository:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        settings = get_settings()
        self.disabled = settings.supabase_disabled
        self.use_local_db = settings.use_local_db
        self.pg_client = get_postgres_client() if self.use_local_db else None

    def _row_to_entity(self, row: dict) -> RoleAssignmentEntity:
        return RoleAssignmentEntity(user_id=row["user_id"], role=Role(row["role"]))

    def get(self, user_id: str) -> RoleAssignmentEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            row = self.pg_client.execute_one("SELECT * FROM user_roles WHERE user_id = %s", (user_id,))
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self.disabled or self.client is None:
            return _MEM_ROLES.get(user_id)

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("user_roles").select("*").eq("user_id", user_id).limit(1).execute()
            rows = res.data or []
            return self._row_to_entity(rows[0]) if rows else None
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB get role failed: {exc}") from exc

    def admin_exists(self) -> bool:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            row = self.pg_client.execute_one(
                "SELECT EXISTS (SELECT 1 FROM user_roles WHERE role = %s) AS present",
                (Role.ADMIN.value,),
            )
            return bool(row and row["present"])

        # In-memory mode
        if self.disabled or self.client is None:
            return any(a.is_admin for a in _MEM_ROLES.values())

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("user_roles")
                .select("user_id")
                .eq("role", Role.ADMIN.value)
                .limit(1)
                .execute()
            )
            return bool(res.data)
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB count admins failed: {exc}") from exc

    def upsert(self, user_id: str, role: Role) -> RoleAssignmentEntity:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = """
                INSERT INTO user_roles (user_id, role)
                VALUES (%s, %s)
                ON CONFLICT (user_id) DO UPDATE SET role = EXCLUDED.role
                RETURNING *
            """
            try:
                row = self.pg_client.execute_insert(query, (user_id, role.value))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL upsert role failed: {exc}") from exc
            return self._row_to_entity(row)

        # In-memory mode
        if self.disabled or self.client is None:
            entity = RoleAssignmentEntity(user_id=user_id, role=role)
            _MEM_ROLES[user_id] = entity
            return entity

        # Supabase mode
        try:  # pragma: no cover - network
            data = {"user_id": user_id, "role": role.value}
            res = self.client.table("user_roles").upsert(data, on_conflict="user_id").execute()
            return self._row_to_entity(res.data[0])
        except APIError as exc:  # pragma: no cover - network
            raise RuntimeError(f"DB upsert role failed: {exc}") from exc
