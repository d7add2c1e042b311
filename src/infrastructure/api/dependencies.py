from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.domain.services.card_directory import CardDirectory
from src.domain.services.role_registry import RoleRegistry
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.database.repositories.card_repository import CardRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.repositories.role_repository import RoleRepository
from src.infrastructure.database.supabase_client import (
    SupabaseAuthAdapter,
    UserInfo,
    get_supabase_client,
)
from src.infrastructure.database.transactions import store_transaction

_bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_adapter() -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter()


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)] = None,
) -> UserInfo | None:
    """Identity of the caller, or None when no bearer token was sent.

    A token that is present but invalid is still rejected with 401.
    """
    if not credentials or not credentials.credentials:
        return None
    if not credentials.scheme or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return auth.validate_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


def get_current_user(
    user: Annotated[UserInfo | None, Depends(get_optional_user)] = None,
) -> UserInfo:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return user


def get_app_settings() -> Settings:
    return get_settings()


def get_card_repo() -> CardRepository:
    return CardRepository(get_supabase_client())


def get_role_repo() -> RoleRepository:
    return RoleRepository(get_supabase_client())


def get_profile_repo() -> ProfileRepository:
    return ProfileRepository(get_supabase_client())


def get_role_registry(
    roles: Annotated[RoleRepository, Depends(get_role_repo)],
) -> RoleRegistry:
    return RoleRegistry(roles=roles, transaction=store_transaction)


def get_card_directory(
    cards: Annotated[CardRepository, Depends(get_card_repo)],
    registry: Annotated[RoleRegistry, Depends(get_role_registry)],
    profiles: Annotated[ProfileRepository, Depends(get_profile_repo)],
) -> CardDirectory:
    return CardDirectory(cards=cards, registry=registry, profiles=profiles, transaction=store_transaction)
