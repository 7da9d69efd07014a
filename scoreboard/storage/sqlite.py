"""SQLite persistence for high scores."""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime

from scoreboard.log import get_logger
from scoreboard.storage.base import ScoreEntry, StoreError, UpsertResult, utcnow

log = get_logger(__name__)

_COLUMNS = "player_key, player_name, score, level_reached, date_achieved"


def _ts(dt: datetime) -> str:
    # Fixed width so text ordering matches time ordering.
    return dt.isoformat(timespec="microseconds")


def _row_to_entry(row) -> ScoreEntry:
    return ScoreEntry(
        player_name=row[1],
        score=row[2],
        level_reached=row[3],
        date_achieved=datetime.fromisoformat(row[4]),
        player_key=row[0],
    )


class SqliteStore:
    mode = "sqlite"

    def __init__(self, path: str):
        self.path = path
        self.conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def init(self) -> None:
        try:
            # Autocommit mode; transactions are opened explicitly in _tx().
            self.conn = sqlite3.connect(self.path, check_same_thread=False, isolation_level=None)
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS high_scores (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  player_key TEXT NOT NULL,
                  player_name TEXT NOT NULL,
                  score INTEGER NOT NULL,
                  level_reached INTEGER NOT NULL,
                  date_achieved TEXT NOT NULL
                )
                """
            )
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_high_scores_score ON high_scores (score DESC)")
            self.conn.execute("CREATE INDEX IF NOT EXISTS idx_high_scores_key ON high_scores (player_key)")
        except sqlite3.Error as e:
            self.close()
            raise StoreError(f"sqlite init failed: {e}") from e
        log.info("sqlite store ready at %s", self.path)

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def _require(self) -> sqlite3.Connection:
        if not self.conn:
            raise StoreError("sqlite store is not initialized")
        return self.conn

    def _insert(self, conn: sqlite3.Connection, e: ScoreEntry) -> int:
        cur = conn.execute(
            f"INSERT INTO high_scores ({_COLUMNS}) VALUES (?, ?, ?, ?, ?)",
            (e.player_key, e.player_name, int(e.score), int(e.level_reached), _ts(e.date_achieved)),
        )
        return cur.lastrowid

    def seed(self, entries: list[ScoreEntry]) -> None:
        with self._lock:
            conn = self._require()
            try:
                conn.execute("BEGIN IMMEDIATE")
                (count,) = conn.execute("SELECT COUNT(*) FROM high_scores").fetchone()
                if count == 0:
                    for e in entries:
                        self._insert(conn, e)
                    log.info("seeded sqlite store with %d default scores", len(entries))
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise StoreError(f"sqlite seed failed: {e}") from e

    def best(self, key: str) -> int | None:
        with self._lock:
            conn = self._require()
            try:
                (best,) = conn.execute("SELECT MAX(score) FROM high_scores WHERE player_key = ?", (key,)).fetchone()
            except sqlite3.Error as e:
                raise StoreError(f"sqlite read failed: {e}") from e
            return best

    def list(self, limit: int = 10) -> list[ScoreEntry]:
        with self._lock:
            conn = self._require()
            try:
                cur = conn.execute(
                    f"SELECT {_COLUMNS} FROM high_scores ORDER BY score DESC, date_achieved ASC, id ASC LIMIT ?",
                    (max(0, int(limit)),),
                )
                rows = cur.fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"sqlite read failed: {e}") from e
            return [_row_to_entry(r) for r in rows]

    def upsert(self, name: str, score: int, level: int, key: str | None = None) -> UpsertResult:
        key = key or name
        entry = ScoreEntry(name, int(score), int(level), utcnow(), key)
        with self._lock:
            conn = self._require()
            try:
                # Lookup, delete and insert happen under one write lock.
                conn.execute("BEGIN IMMEDIATE")
                (best,) = conn.execute("SELECT MAX(score) FROM high_scores WHERE player_key = ?", (key,)).fetchone()
                if best is not None and entry.score <= best:
                    conn.execute("ROLLBACK")
                    return UpsertResult(accepted=False, best_score=best)

                conn.execute("DELETE FROM high_scores WHERE player_key = ?", (key,))
                row_id = self._insert(conn, entry)
                ts = _ts(entry.date_achieved)
                (ahead,) = conn.execute(
                    """
                    SELECT COUNT(*) FROM high_scores
                    WHERE score > ?
                       OR (score = ? AND (date_achieved < ? OR (date_achieved = ? AND id < ?)))
                    """,
                    (entry.score, entry.score, ts, ts, row_id),
                ).fetchone()
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(conn)
                raise StoreError(f"sqlite upsert failed: {e}") from e
            return UpsertResult(accepted=True, rank=ahead + 1, best_score=entry.score)

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            try:
                conn.execute("ROLLBACK")
            except sqlite3.Error:
                log.exception("sqlite rollback failed")
