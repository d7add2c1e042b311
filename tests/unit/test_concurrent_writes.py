"""Concurrent assign/deactivate through the real transaction paths."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from psycopg2 import errors as pg_errors

from src.domain.entities.card import CardEntity, HolderDetails
from src.domain.entities.role import Role
from src.domain.errors import AlreadyBound, ConcurrentModification
from src.domain.services.card_directory import CardDirectory
from src.infrastructure.config import Settings
from src.infrastructure.database.postgres_client import PostgresClient
from src.infrastructure.database.repositories.card_repository import CardRepository
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.transactions import store_transaction

ALICE = HolderDetails(holder_name="Alice")

ACTIVE_CARD = CardEntity(
    id="card_1",
    tag_id="T1",
    holder=ALICE,
    assigned_by="admin-1",
    assigned_at=datetime(2026, 1, 1, tzinfo=UTC),
)


def _conflicting_postgres_client():
    """Client whose commit fails the way a SERIALIZABLE conflict does."""
    conn = MagicMock()
    conn.commit.side_effect = pg_errors.SerializationFailure("could not serialize access")
    pool = MagicMock()
    pool.getconn.return_value = conn
    client = PostgresClient(Settings(use_local_db=False))
    client.enabled = True
    client._pool = pool
    return client, conn, pool


def _admin_registry():
    registry = MagicMock()
    registry.require_admin.return_value = "admin-2"
    return registry


def test_only_one_of_many_concurrent_assigns_wins(registry):
    registry.set_role("admin-1", "admin-1", Role.ADMIN)
    directory = CardDirectory(
        cards=CardRepository(None),
        registry=registry,
        profiles=ProfileRepository(None),
        transaction=store_transaction,
    )
    workers = 20
    barrier = threading.Barrier(workers)
    winners: list[str] = []
    losers: list[Exception] = []
    results_lock = threading.Lock()

    def attempt(n: int) -> None:
        barrier.wait()
        try:
            card_id = directory.assign("admin-1", "T1", HolderDetails(holder_name=f"Holder {n}"))
        except Exception as exc:
            with results_lock:
                losers.append(exc)
        else:
            with results_lock:
                winners.append(card_id)

    threads = [threading.Thread(target=attempt, args=(n,)) for n in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(winners) == 1
    assert len(losers) == workers - 1
    assert all(isinstance(exc, AlreadyBound) for exc in losers)
    assert directory.lookup("T1") is not None


def test_serialization_failure_becomes_concurrent_modification():
    client, conn, pool = _conflicting_postgres_client()
    with pytest.raises(ConcurrentModification):
        with client.transaction():
            pass
    conn.rollback.assert_called_once()
    pool.putconn.assert_called_once_with(conn)


def test_assign_race_loser_sees_already_bound():
    client, conn, _ = _conflicting_postgres_client()
    cards = MagicMock()
    # empty inside the losing transaction, bound once the winner committed
    cards.get_by_tag.side_effect = [None, ACTIVE_CARD]
    cards.create.return_value = replace(ACTIVE_CARD, id="card_2")

    directory = CardDirectory(
        cards=cards, registry=_admin_registry(), profiles=MagicMock(), transaction=client.transaction
    )
    with pytest.raises(AlreadyBound):
        directory.assign("admin-2", "T1", ALICE)
    conn.rollback.assert_called_once()


def test_assign_conflict_without_a_bound_card_is_reported():
    client, _, _ = _conflicting_postgres_client()
    cards = MagicMock()
    cards.get_by_tag.return_value = None
    cards.create.return_value = ACTIVE_CARD

    directory = CardDirectory(
        cards=cards, registry=_admin_registry(), profiles=MagicMock(), transaction=client.transaction
    )
    with pytest.raises(ConcurrentModification):
        directory.assign("admin-2", "T1", ALICE)


def test_concurrent_deactivate_succeeds_silently():
    client, _, _ = _conflicting_postgres_client()
    cards = MagicMock()
    # active when read inside the transaction, inactive after the other admin committed
    cards.get.side_effect = [ACTIVE_CARD, replace(ACTIVE_CARD, is_active=False)]

    directory = CardDirectory(
        cards=cards, registry=_admin_registry(), profiles=MagicMock(), transaction=client.transaction
    )
    directory.deactivate("admin-2", "card_1")
    cards.set_inactive.assert_called_once_with("card_1")


def test_deactivate_conflict_on_still_active_card_is_reported():
    client, _, _ = _conflicting_postgres_client()
    cards = MagicMock()
    cards.get.return_value = ACTIVE_CARD

    directory = CardDirectory(
        cards=cards, registry=_admin_registry(), profiles=MagicMock(), transaction=client.transaction
    )
    with pytest.raises(ConcurrentModification):
        directory.deactivate("admin-2", "card_1")
