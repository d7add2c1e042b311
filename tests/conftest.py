import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ["SUPABASE_DISABLED"] = "1"
os.environ["USE_LOCAL_DB"] = "0"
os.environ.setdefault("PUBLIC_BASE_URL", "https://cards.example.com")


@pytest.fixture(autouse=True)
def _empty_stores():
    from src.infrastructure.database.repositories import (
        card_repository,
        profile_repository,
        role_repository,
    )

    card_repository._MEM_CARDS.clear()
    role_repository._MEM_ROLES.clear()
    profile_repository._MEM_PROFILES.clear()
    yield


@pytest.fixture(scope="session")
def client() -> TestClient:
    # lazy import after env configured
    from src.main import create_app

    app = create_app()
    return TestClient(app)


def _bearer(token: str) -> dict[str, str]:
    # any token is accepted in disabled mode; email-like tokens carry that email
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def bearer():
    return _bearer


@pytest.fixture()
def admin_header() -> dict[str, str]:
    return _bearer("admin@example.com")


@pytest.fixture()
def user_header() -> dict[str, str]:
    return _bearer("visitor@example.com")


@pytest.fixture()
def registry():
    from src.domain.services.role_registry import RoleRegistry
    from src.infrastructure.database.repositories.role_repository import RoleRepository

    return RoleRegistry(roles=RoleRepository(None))


@pytest.fixture()
def directory(registry):
    from src.domain.services.card_directory import CardDirectory
    from src.infrastructure.database.repositories.card_repository import CardRepository
    from src.infrastructure.database.repositories.profile_repository import ProfileRepository

    return CardDirectory(cards=CardRepository(None), registry=registry, profiles=ProfileRepository(None))
