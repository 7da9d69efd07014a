import pytest

from scoreboard.config import DEFAULT_ORIGINS, ServerConfig
from scoreboard.service import build_store
from scoreboard.storage.fallback import FallbackStore
from scoreboard.storage.memory import MemoryStore
from scoreboard.storage.postgres import PostgresStore
from scoreboard.storage.sqlite import SqliteStore


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    import os

    for k in list(os.environ):
        if k.startswith("SCOREBOARD_") or k in ("PORT", "DATABASE_URL"):
            monkeypatch.delenv(k)


def test_defaults():
    cfg = ServerConfig.from_env()
    assert cfg.port == 3000
    assert cfg.storage == "memory"
    assert cfg.capacity == 10
    assert cfg.max_limit == 100
    assert cfg.retain == 100
    assert cfg.name_max_length == 20
    assert cfg.collision_policy == "merge"
    assert cfg.cors_allowed_origins == DEFAULT_ORIGINS
    assert cfg.cors_allowed_origins is not DEFAULT_ORIGINS


def test_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "8081")
    monkeypatch.setenv("SCOREBOARD_STORAGE", "Postgres")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@localhost/scores")
    monkeypatch.setenv("SCOREBOARD_FALLBACK", "off")
    monkeypatch.setenv("SCOREBOARD_CAPACITY", "25")
    monkeypatch.setenv("SCOREBOARD_NAME_CHARSET", "wide")
    monkeypatch.setenv("SCOREBOARD_COLLISIONS", "coexist")
    monkeypatch.setenv("SCOREBOARD_CORS_ORIGINS", "https://game.example, ,https://b.example")
    monkeypatch.setenv("SCOREBOARD_LOG_LEVEL", "debug")

    cfg = ServerConfig.from_env()
    assert cfg.port == 8081
    assert cfg.storage == "postgres"
    assert cfg.database_url == "postgresql://u:p@localhost/scores"
    assert cfg.fallback_enabled is False
    assert cfg.capacity == 25
    assert cfg.name_charset == "wide"
    assert cfg.collision_policy == "coexist"
    assert cfg.cors_allowed_origins[-2:] == ["https://game.example", "https://b.example"]
    assert cfg.log_level == "DEBUG"


def test_prefixed_port_wins(monkeypatch):
    monkeypatch.setenv("PORT", "8081")
    monkeypatch.setenv("SCOREBOARD_PORT", "9000")
    assert ServerConfig.from_env().port == 9000


def test_bad_values_keep_defaults(monkeypatch):
    monkeypatch.setenv("SCOREBOARD_PORT", "eighty")
    monkeypatch.setenv("SCOREBOARD_STORAGE", "redis")
    monkeypatch.setenv("SCOREBOARD_COLLISIONS", "maybe")
    monkeypatch.setenv("SCOREBOARD_CAPACITY", "0")
    cfg = ServerConfig.from_env()
    assert cfg.port == 3000
    assert cfg.storage == "memory"
    assert cfg.collision_policy == "merge"
    assert cfg.capacity == 1


def test_build_store_per_mode(tmp_path):
    assert isinstance(build_store(ServerConfig()), MemoryStore)

    store = build_store(ServerConfig(storage="sqlite", sqlite_path=str(tmp_path / "x.sqlite3")))
    assert isinstance(store, FallbackStore)
    assert isinstance(store.primary, SqliteStore)

    store = build_store(ServerConfig(storage="postgres", database_url="postgresql://x", fallback_enabled=False))
    assert isinstance(store, PostgresStore)

    with pytest.raises(ValueError):
        build_store(ServerConfig(storage="csv"))


def test_db_pool_size_reaches_postgres_store(monkeypatch):
    monkeypatch.setenv("SCOREBOARD_DB_POOL_SIZE", "12")
    cfg = ServerConfig.from_env()
    assert cfg.db_pool_size == 12
    cfg.storage, cfg.database_url, cfg.fallback_enabled = "postgres", "postgresql://x", False
    assert build_store(cfg).pool_size == 12

    monkeypatch.setenv("SCOREBOARD_DB_POOL_SIZE", "0")
    assert ServerConfig.from_env().db_pool_size == 1
