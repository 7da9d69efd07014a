"""Ports, storage backends, leaderboard caps, CORS."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from scoreboard.log import get_logger

log = get_logger(__name__)

STORAGE_MODES = ("memory", "sqlite", "postgres")
NAME_CHARSETS = ("strict", "wide")
COLLISION_POLICIES = ("merge", "coexist")

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8000",
    "http://127.0.0.1:8080",
    "https://itch.io",
    "https://*.itch.io",
]


@dataclass
class ServerConfig:
    server_version: str = "0.1.0"

    # Network
    host: str = "0.0.0.0"
    port: int = 3000
    cors_allow_all: bool = True
    cors_allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))

    # Storage
    storage: str = "memory"
    fallback_enabled: bool = True
    sqlite_path: str = "high_scores.sqlite3"
    database_url: str | None = None
    db_connect_timeout: int = 5
    db_pool_size: int = 5
    seed_defaults: bool = True

    # Leaderboard
    capacity: int = 10
    max_limit: int = 100

    # Names
    name_max_length: int = 20
    name_charset: str = "strict"
    collision_policy: str = "merge"

    log_level: str = "INFO"

    @property
    def retain(self) -> int:
        """How many entries the memory store keeps around."""
        return max(self.capacity, self.max_limit)

    @staticmethod
    def _parse_bool(v: str | None, default: bool) -> bool:
        if v is None:
            return default
        return v.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_int(v: str | None, default: int) -> int:
        if not v:
            return default
        try:
            return int(v)
        except ValueError:
            log.warning("ignoring non-integer setting %r", v)
            return default

    @staticmethod
    def _parse_choice(v: str | None, choices: tuple[str, ...], default: str) -> str:
        if not v:
            return default
        v = v.strip().lower()
        if v not in choices:
            log.warning("unknown setting %r (expected one of %s), using %r", v, ", ".join(choices), default)
            return default
        return v

    @classmethod
    def from_env(cls) -> "ServerConfig":
        env = os.environ
        cfg = cls()
        cfg.host = env.get("SCOREBOARD_HOST", cfg.host)
        cfg.port = cls._parse_int(env.get("SCOREBOARD_PORT") or env.get("PORT"), cfg.port)
        cfg.cors_allow_all = cls._parse_bool(env.get("SCOREBOARD_CORS_ALLOW_ALL"), cfg.cors_allow_all)
        origins = env.get("SCOREBOARD_CORS_ORIGINS")
        if origins:
            cfg.cors_allowed_origins.extend(o.strip() for o in origins.split(",") if o.strip())

        cfg.storage = cls._parse_choice(env.get("SCOREBOARD_STORAGE"), STORAGE_MODES, cfg.storage)
        cfg.fallback_enabled = cls._parse_bool(env.get("SCOREBOARD_FALLBACK"), cfg.fallback_enabled)
        cfg.sqlite_path = env.get("SCOREBOARD_SQLITE_PATH", cfg.sqlite_path)
        cfg.database_url = env.get("SCOREBOARD_DATABASE_URL") or env.get("DATABASE_URL") or cfg.database_url
        cfg.db_connect_timeout = cls._parse_int(env.get("SCOREBOARD_DB_TIMEOUT"), cfg.db_connect_timeout)
        cfg.db_pool_size = max(1, cls._parse_int(env.get("SCOREBOARD_DB_POOL_SIZE"), cfg.db_pool_size))
        cfg.seed_defaults = cls._parse_bool(env.get("SCOREBOARD_SEED"), cfg.seed_defaults)

        cfg.capacity = max(1, cls._parse_int(env.get("SCOREBOARD_CAPACITY"), cfg.capacity))
        cfg.max_limit = max(1, cls._parse_int(env.get("SCOREBOARD_MAX_LIMIT"), cfg.max_limit))

        cfg.name_max_length = max(1, cls._parse_int(env.get("SCOREBOARD_NAME_MAX"), cfg.name_max_length))
        cfg.name_charset = cls._parse_choice(env.get("SCOREBOARD_NAME_CHARSET"), NAME_CHARSETS, cfg.name_charset)
        cfg.collision_policy = cls._parse_choice(
            env.get("SCOREBOARD_COLLISIONS"), COLLISION_POLICIES, cfg.collision_policy
        )

        cfg.log_level = env.get("SCOREBOARD_LOG_LEVEL", cfg.log_level).upper()
        return cfg
