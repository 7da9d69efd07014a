"""Backend store with a one-way switch to local memory.

States:
  connected -> every call goes to the backend; accepted scores are mirrored
               into memory so a later switch starts from recent data.
  degraded  -> the backend failed once; memory serves everything from then on.

There is no way back from ``degraded`` within a process.
"""

from __future__ import annotations

import threading
from typing import Any

from scoreboard.log import get_logger
from scoreboard.storage.base import ScoreEntry, StoreError, UpsertResult
from scoreboard.storage.memory import MemoryStore

log = get_logger(__name__)

CONNECTED = "connected"
DEGRADED = "degraded"


class FallbackStore:
    def __init__(self, primary, fallback: MemoryStore):
        self.primary = primary
        self.fallback = fallback
        self.state = CONNECTED
        self._switch = threading.Lock()

    @property
    def mode(self) -> str:
        return self.primary.mode if self.state == CONNECTED else self.fallback.mode

    @property
    def degraded(self) -> bool:
        return self.state == DEGRADED

    def _degrade(self, err: Exception) -> None:
        # Calls run on worker threads; only the first failure does the switch.
        with self._switch:
            if self.state == DEGRADED:
                return
            self.state = DEGRADED
        log.warning("%s store failed, falling back to in-memory storage: %s", self.primary.mode, err)
        try:
            self.primary.close()
        except Exception:
            log.exception("error closing %s store", self.primary.mode)

    def _call(self, op: str, *args: Any) -> Any:
        if self.state == CONNECTED:
            try:
                return getattr(self.primary, op)(*args)
            except StoreError as e:
                self._degrade(e)
        return getattr(self.fallback, op)(*args)

    def init(self) -> None:
        self.fallback.init()
        try:
            self.primary.init()
            self.fallback.load(self.primary.list(self.fallback.retain))
        except StoreError as e:
            self._degrade(e)
            return
        log.info("connected to %s store", self.primary.mode)

    def close(self) -> None:
        if self.state == CONNECTED:
            self.primary.close()
        self.fallback.close()

    def seed(self, entries: list[ScoreEntry]) -> None:
        self._call("seed", entries)
        if self.state == CONNECTED:
            self.fallback.seed(entries)

    def best(self, key: str) -> int | None:
        return self._call("best", key)

    def list(self, limit: int = 10) -> list[ScoreEntry]:
        return self._call("list", limit)

    def upsert(self, name: str, score: int, level: int, key: str | None = None) -> UpsertResult:
        if self.state == CONNECTED:
            try:
                result = self.primary.upsert(name, score, level, key)
            except StoreError as e:
                self._degrade(e)
            else:
                if result.accepted:
                    self.fallback.upsert(name, score, level, key)
                return result
        return self.fallback.upsert(name, score, level, key)
