import os
import sys
import threading
from pathlib import Path

import pytest

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from models import UserRecord
from verbosity import advance
from user_store import (
    InvalidUserIdError,
    StoreUnavailableError,
    UserStateStore,
    normalize_user_id,
)


@pytest.fixture(name="store")
def _store(tmp_path: Path):
    store = UserStateStore.open(tmp_path / "users.json")
    yield store
    store.close()


# ── normalize_user_id ─────────────────────────────────────────────────────────

def test_normalize_keeps_fourth_component():
    assert normalize_user_id("amzn1.ask.account.AGX7Q2") == "AGX7Q2"


def test_normalize_ignores_trailing_components():
    assert normalize_user_id("amzn1.ask.account.AGX7Q2.extra") == "AGX7Q2"


@pytest.mark.parametrize("raw", ["", "amzn1", "amzn1.ask.account", "amzn1.ask.account."])
def test_normalize_rejects_short_ids(raw):
    with pytest.raises(InvalidUserIdError):
        normalize_user_id(raw)


# ── get / put ─────────────────────────────────────────────────────────────────

def test_missing_user_returns_none(store):
    assert store.get("nobody") is None


def test_replace_creates_full_record(store):
    store.put("u1", UserRecord(count=1, length=3), merge=False)
    assert store.get("u1") == UserRecord(count=1, length=3)


def test_merge_updates_only_given_fields(store):
    store.put("u1", UserRecord(count=1, length=3), merge=False)
    store.put("u1", {"count": 2}, merge=True)
    assert store.get("u1") == UserRecord(count=2, length=3)


def test_merge_with_full_record_updates_both_fields(store):
    store.put("u1", UserRecord(count=3, length=2), merge=False)
    store.put("u1", UserRecord(count=4, length=1), merge=True)
    assert store.get("u1") == UserRecord(count=4, length=1)


@pytest.mark.parametrize("fields", [{"length": 9}, {"length": 0}, {"count": 0}, {"color": "blue"}])
def test_merge_rejects_out_of_range_fields(store, fields):
    store.put("u1", UserRecord(count=2, length=2), merge=False)
    with pytest.raises(ValueError):
        store.put("u1", fields, merge=True)
    assert store.get("u1") == UserRecord(count=2, length=2)


def test_replace_rejects_partial_record(store):
    with pytest.raises(ValueError):
        store.put("u1", {"count": 2}, merge=False)


def test_users_are_isolated(store):
    store.put("u1", UserRecord(count=5, length=1), merge=False)
    store.put("u2", UserRecord(count=1, length=3), merge=False)
    assert store.get("u1") == UserRecord(count=5, length=1)
    assert store.get("u2") == UserRecord(count=1, length=3)


def test_replace_keeps_a_single_document(store):
    store.put("u1", UserRecord(count=1, length=3), merge=False)
    store.put("u1", UserRecord(count=2, length=2), merge=False)
    assert len(store._table) == 1


def test_records_survive_reopen(tmp_path):
    path = tmp_path / "users.json"
    store = UserStateStore.open(path)
    store.put("u1", UserRecord(count=2, length=2), merge=False)
    store.close()

    reopened = UserStateStore.open(path)
    try:
        assert reopened.get("u1") == UserRecord(count=2, length=2)
    finally:
        reopened.close()


def test_in_memory_store_roundtrip():
    store = UserStateStore.in_memory()
    store.put("u1", UserRecord(count=1, length=3), merge=False)
    with store.transaction() as tx:
        assert tx.get("u1") == UserRecord(count=1, length=3)


# ── Failure modes ─────────────────────────────────────────────────────────────

def test_corrupt_file_is_unavailable_not_missing(tmp_path):
    path = tmp_path / "users.json"
    path.write_text("{not json")
    store = UserStateStore.open(path)
    try:
        with pytest.raises(StoreUnavailableError):
            store.get("u1")
    finally:
        store.close()


def test_invalid_stored_record_is_unavailable(store):
    store._table.insert({"user_id": "u1", "count": 2, "length": 9})
    with pytest.raises(StoreUnavailableError):
        store.get("u1")


# ── Concurrency ───────────────────────────────────────────────────────────────

def test_transaction_keeps_threads_from_losing_increments(store):
    def use_skill():
        for _ in range(25):
            with store.transaction() as tx:
                previous = tx.get("u1")
                _, next_state = advance(previous)
                tx.put("u1", next_state, merge=previous is not None)

    threads = [threading.Thread(target=use_skill) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.get("u1") == UserRecord(count=100, length=1)
