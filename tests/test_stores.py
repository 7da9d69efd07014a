"""Behavior shared by the memory and SQLite stores."""

import pytest

from scoreboard.ranking import sort_key
from scoreboard.storage.base import StoreError, default_entries
from scoreboard.storage.memory import MemoryStore
from scoreboard.storage.sqlite import SqliteStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        s = MemoryStore(retain=100)
    else:
        s = SqliteStore(str(tmp_path / "scores.sqlite3"))
    s.init()
    yield s
    s.close()


def _names(entries):
    return [e.player_name for e in entries]


def test_empty_store_lists_nothing(store):
    assert store.list(10) == []
    assert store.best("NOBODY") is None


def test_first_submission_is_inserted(store):
    res = store.upsert("ACE", 500, 3)
    assert res.accepted
    assert res.rank == 1
    assert res.best_score == 500
    [entry] = store.list(10)
    assert (entry.player_name, entry.score, entry.level_reached) == ("ACE", 500, 3)


def test_lower_or_equal_score_is_rejected(store):
    store.upsert("ZZ", 100, 2)
    for score in (50, 100):
        res = store.upsert("ZZ", score, 1)
        assert not res.accepted
        assert res.best_score == 100
    [entry] = store.list(10)
    assert entry.score == 100
    assert entry.level_reached == 2


def test_better_score_replaces_previous_entry(store):
    store.upsert("ZZ", 100, 2)
    res = store.upsert("ZZ", 150, 3)
    assert res.accepted
    entries = store.list(10)
    assert [(e.player_name, e.score) for e in entries] == [("ZZ", 150)]
    assert store.best("ZZ") == 150


def test_list_is_sorted_after_every_mutation(store):
    for i, score in enumerate([40, 10, 90, 30, 90, 70, 5]):
        store.upsert(f"P{i}", score, 1)
        entries = store.list(100)
        assert entries == sorted(entries, key=sort_key)
        assert [e.score for e in entries] == sorted((e.score for e in entries), reverse=True)


def test_list_truncates_to_limit(store):
    for i in range(15):
        store.upsert(f"P{i}", i * 10, 1)
    top = store.list(10)
    assert len(top) == 10
    assert top[0].score == 140
    assert top[-1].score == 50


def test_rank_reports_position(store):
    store.upsert("A", 300, 1)
    store.upsert("B", 100, 1)
    assert store.upsert("C", 200, 1).rank == 2
    # A tie ranks behind the earlier holder of that score.
    assert store.upsert("D", 200, 1).rank == 3


def test_keys_keep_colliding_names_apart(store):
    store.upsert("AB__C", 10, 1, key="ab!!c")
    res = store.upsert("AB__C", 5, 1, key="AB__C")
    assert res.accepted
    assert _names(store.list(10)) == ["AB__C", "AB__C"]


def test_seed_only_fills_empty_store(store):
    store.seed(default_entries())
    entries = store.list(10)
    assert len(entries) == 10
    assert entries[0].player_name == "ROBOT_RON"
    assert entries[-1].player_name == "PLAYER_1"

    store.seed(default_entries())
    assert len(store.list(100)) == 10


def test_seeded_store_keeps_one_entry_per_player(store):
    store.seed(default_entries())
    assert not store.upsert("ROBOT_RON", 1, 1).accepted
    assert store.upsert("ROBOT_RON", 80000, 21).accepted
    names = _names(store.list(100))
    assert names.count("ROBOT_RON") == 1
    assert names[0] == "ROBOT_RON"


def test_memory_store_evicts_beyond_retain():
    store = MemoryStore(retain=3)
    for i in range(5):
        store.upsert(f"P{i}", i, 1)
    assert _names(store.list(10)) == ["P4", "P3", "P2"]
    # Evicted players start over.
    assert store.best("P0") is None


def test_memory_store_load_replaces_contents():
    store = MemoryStore(retain=5)
    store.upsert("OLD", 1, 1)
    other = MemoryStore()
    other.upsert("NEW", 2, 1)
    store.load(other.list(10))
    assert _names(store.list(10)) == ["NEW"]


def test_sqlite_store_persists_across_reopen(tmp_path):
    path = str(tmp_path / "scores.sqlite3")
    first = SqliteStore(path)
    first.init()
    first.upsert("ACE", 900, 5)
    first.close()

    second = SqliteStore(path)
    second.init()
    try:
        [entry] = second.list(10)
        assert (entry.player_name, entry.score) == ("ACE", 900)
        assert entry.date_achieved.tzinfo is not None
    finally:
        second.close()


def test_sqlite_store_requires_init(tmp_path):
    store = SqliteStore(str(tmp_path / "never-opened.sqlite3"))
    with pytest.raises(StoreError):
        store.list(10)
    with pytest.raises(StoreError):
        store.upsert("ACE", 1, 1)


def test_sqlite_store_unopenable_path(tmp_path):
    store = SqliteStore(str(tmp_path / "missing-dir" / "scores.sqlite3"))
    with pytest.raises(StoreError):
        store.init()


@pytest.mark.parametrize("limit", [0, -1, -50])
def test_list_with_non_positive_limit_is_empty(store, limit):
    for i in range(5):
        store.upsert(f"P{i}", i * 10, 1)
    assert store.list(limit) == []
