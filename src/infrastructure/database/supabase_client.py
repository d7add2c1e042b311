from __future__ import annotations

import hashlib
from dataclasses import dataclass

from supabase import Client, create_client

from src.infrastructure.config import get_settings


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None


class SupabaseAuthAdapter:
    """Small wrapper to validate Supabase access tokens.

    When SUPABASE_DISABLED=1, every token maps to a stable fake identity. A token
    that looks like an email address doubles as that identity's email, which is
    how local runs get a display identity for card assigners.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self.disabled = settings.supabase_disabled
        self.url = settings.supabase_url
        self.key = settings.supabase_anon_key
        self._client: Client | None = None
        if not self.disabled and self.url and self.key:
            self._client = create_client(self.url, self.key)

    def validate_token(self, token: str) -> UserInfo:
        if not token:
            raise ValueError("Missing access token")
        if self.disabled or not self._client:
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
            return UserInfo(id=f"fake-{digest}", email=token if "@" in token else None)
        # Real validation via Supabase Auth API
        try:
            res = self._client.auth.get_user(token)  # type: ignore[attr-defined]
            user = res.user  # type: ignore[assignment]
            if not user:
                raise ValueError("Invalid access token")
            return UserInfo(id=user.id, email=user.email)  # type: ignore[attr-defined]
        except Exception as exc:  # pragma: no cover - network path
            raise ValueError(f"Invalid access token: {exc}") from exc


# Simple reusable singleton client getter for repositories
_CLIENT_SINGLETON: Client | None = None


def get_supabase_client() -> Client | None:
    global _CLIENT_SINGLETON
    settings = get_settings()
    if settings.supabase_disabled or not settings.supabase_url or not settings.supabase_anon_key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(settings.supabase_url, settings.supabase_anon_key)
    return _CLIENT_SINGLETON
