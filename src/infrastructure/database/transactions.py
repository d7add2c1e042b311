from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator

from src.infrastructure.database.postgres_client import get_postgres_client

# Serializes mutations against the module-level in-memory stores
_MEMORY_LOCK = threading.RLock()


@contextmanager
def store_transaction() -> Generator[None, None, None]:
    """Run the enclosed reads and writes as one atomic unit.

    PostgreSQL mode opens a SERIALIZABLE transaction that every repository call
    in the block joins. In-memory and Supabase modes hold a process-wide lock;
    in Supabase mode the database's unique constraints remain the final word.
    """
    pg_client = get_postgres_client()
    if pg_client is not None:
        with pg_client.transaction():
            yield
        return
    with _MEMORY_LOCK:
        yield
