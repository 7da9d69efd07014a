"""In-memory score table."""

from __future__ import annotations

import threading

from scoreboard.ranking import placement, top_n
from scoreboard.storage.base import ScoreEntry, UpsertResult, utcnow


class MemoryStore:
    mode = "memory"

    def __init__(self, retain: int = 100):
        self.retain = int(retain)
        self._entries: list[ScoreEntry] = []
        self._lock = threading.Lock()

    def init(self) -> None:
        pass

    def close(self) -> None:
        pass

    def seed(self, entries: list[ScoreEntry]) -> None:
        with self._lock:
            if not self._entries:
                self._entries = top_n(entries, self.retain)

    def load(self, entries: list[ScoreEntry]) -> None:
        """Replace the contents wholesale (used to mirror a backend)."""
        with self._lock:
            self._entries = top_n(entries, self.retain)

    def best(self, key: str) -> int | None:
        with self._lock:
            return self._best(key)

    def _best(self, key: str) -> int | None:
        scores = [e.score for e in self._entries if e.player_key == key]
        return max(scores) if scores else None

    def list(self, limit: int = 10) -> list[ScoreEntry]:
        with self._lock:
            return list(self._entries[: max(0, int(limit))])

    def upsert(self, name: str, score: int, level: int, key: str | None = None) -> UpsertResult:
        key = key or name
        with self._lock:
            best = self._best(key)
            if best is not None and score <= best:
                return UpsertResult(accepted=False, best_score=best)

            entry = ScoreEntry(name, int(score), int(level), utcnow(), key)
            kept = [e for e in self._entries if e.player_key != key]
            kept.append(entry)
            # Build the new list first; only swap once it's complete.
            self._entries = top_n(kept, self.retain)
            return UpsertResult(
                accepted=True,
                rank=placement(self._entries, key, entry.score),
                best_score=entry.score,
            )
