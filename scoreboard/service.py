"""Leaderboard rules: validation, naming, best-score-per-player admission."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

from scoreboard.config import ServerConfig
from scoreboard.log import get_logger
from scoreboard.names import player_key, sanitize_name
from scoreboard.protocol import SubmitScore, parse_limit
from scoreboard.ranking import made_board, rank_entries
from scoreboard.storage.base import default_entries
from scoreboard.storage.fallback import FallbackStore
from scoreboard.storage.memory import MemoryStore

log = get_logger(__name__)


class NotImproved(Exception):
    """Submitted score does not beat the player's existing best."""

    def __init__(self, player_name: str, existing_score: int):
        super().__init__(f"{player_name} already has {existing_score}; submit a higher score to replace it")
        self.player_name = player_name
        self.existing_score = existing_score


def build_store(config: ServerConfig):
    """Pick the store for the configured storage mode."""
    memory = MemoryStore(retain=config.retain)
    if config.storage == "memory":
        return memory

    if config.storage == "sqlite":
        from scoreboard.storage.sqlite import SqliteStore

        backend = SqliteStore(config.sqlite_path)
    elif config.storage == "postgres":
        from scoreboard.storage.postgres import PostgresStore

        backend = PostgresStore(
            config.database_url,
            connect_timeout=config.db_connect_timeout,
            pool_size=config.db_pool_size,
        )
    else:
        raise ValueError(f"unknown storage mode: {config.storage}")

    if config.fallback_enabled:
        return FallbackStore(backend, memory)
    return backend


class LeaderboardService:
    def __init__(self, config: ServerConfig, store=None):
        self.config = config
        self.store = store if store is not None else build_store(config)
        self.start_time = time.time()

    @property
    def storage_mode(self) -> str:
        return self.store.mode

    @property
    def degraded(self) -> bool:
        return bool(getattr(self.store, "degraded", False))

    def start(self) -> None:
        self.store.init()
        if self.config.seed_defaults:
            self.store.seed(default_entries())
        log.info("leaderboard ready (storage=%s)", self.storage_mode)

    def stop(self) -> None:
        self.store.close()

    def health(self) -> dict[str, Any]:
        return {
            "status": "OK",
            "message": "Server is running",
            "mode": self.storage_mode,
            "degraded": self.degraded,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    def high_scores(self) -> list[dict[str, Any]]:
        return [e.to_dict() for e in self.store.list(self.config.capacity)]

    def top(self, raw_limit: str) -> list[dict[str, Any]]:
        limit = parse_limit(raw_limit, self.config.max_limit)
        return rank_entries(self.store.list(limit))

    def submit(self, data: Any) -> dict[str, Any]:
        req = SubmitScore.parse(data)
        name = sanitize_name(req.playerName, self.config.name_max_length, self.config.name_charset)
        key = player_key(req.playerName, name, self.config.collision_policy, self.config.name_max_length)

        result = self.store.upsert(name, req.score, req.levelReached, key)
        if not result.accepted:
            raise NotImproved(name, result.best_score)

        top = self.store.list(self.config.capacity)
        made_top = made_board(top, key, req.score, self.config.capacity)
        log.info("score accepted: %s %d (rank %s)", name, req.score, result.rank)
        return {
            "success": True,
            "madeTopTen": made_top,
            "rank": result.rank,
            "message": (
                f"Congratulations! You made the top {self.config.capacity}!" if made_top else "Score recorded!"
            ),
            "storageMode": self.storage_mode,
        }
