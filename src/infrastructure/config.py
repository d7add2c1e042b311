"""Runtime configuration for the NFC card directory.

Settings come from environment variables. A ``.env`` file in the working
directory is loaded first outside of test runs, so local development needs no
exported variables.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

_DEV_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",  # Vite default
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
)


def _flag(name: str) -> bool:
    return os.getenv(name, "0") == "1"


def _should_load_dotenv() -> bool:
    # pytest sets PYTEST_CURRENT_TEST per test; never let a developer .env leak into runs
    return "PYTEST_CURRENT_TEST" not in os.environ and not _flag("NFCCARDS_SKIP_DOTENV")


@dataclass(frozen=True)
class Settings:
    env: str = "development"
    log_level: str = "INFO"
    supabase_disabled: bool = False
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    use_local_db: bool = False
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "nfccards"
    postgres_user: str = "nfccards"
    postgres_password: str = "nfccards_dev_password"
    public_base_url: str = "http://localhost:5173"
    cors_origins: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.getenv("ENV", "development")
        raw_origins = os.getenv("CORS_ORIGINS", "")
        origins = tuple(o.strip() for o in raw_origins.split(",") if o.strip())
        if not origins and env in ("development", "staging"):
            origins = _DEV_ORIGINS
        return cls(
            env=env,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            supabase_disabled=_flag("SUPABASE_DISABLED"),
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or None,
            use_local_db=_flag("USE_LOCAL_DB"),
            postgres_host=os.getenv("POSTGRES_HOST", "localhost"),
            postgres_port=int(os.getenv("POSTGRES_PORT", "5432")),
            postgres_db=os.getenv("POSTGRES_DB", "nfccards"),
            postgres_user=os.getenv("POSTGRES_USER", "nfccards"),
            postgres_password=os.getenv("POSTGRES_PASSWORD", "nfccards_dev_password"),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:5173").rstrip("/"),
            cors_origins=origins,
        )


def load_settings() -> Settings:
    """Read settings from the environment, loading ``.env`` when appropriate."""
    if _should_load_dotenv():
        load_dotenv()
    return Settings.from_env()


def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("nfccards").setLevel(level)
