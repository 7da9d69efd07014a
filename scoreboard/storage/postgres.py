"""Postgres persistence (Supabase or any managed Postgres)."""

from __future__ import annotations

import threading
from contextlib import contextmanager

import psycopg2
import psycopg2.extras
import psycopg2.pool

from scoreboard.log import get_logger
from scoreboard.storage.base import ScoreEntry, StoreError, UpsertResult, utcnow

log = get_logger(__name__)

_COLUMNS = "player_key, player_name, score, level_reached, date_achieved"


def _row_to_entry(row) -> ScoreEntry:
    return ScoreEntry(
        player_name=row["player_name"],
        score=row["score"],
        level_reached=row["level_reached"],
        date_achieved=row["date_achieved"],
        player_key=row["player_key"],
    )


class PostgresStore:
    mode = "postgres"

    def __init__(self, dsn: str | None, connect_timeout: int = 5, pool_size: int = 5):
        self.dsn = dsn
        self.connect_timeout = int(connect_timeout)
        self.pool_size = max(1, int(pool_size))
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None
        self._pool_lock = threading.Lock()
        # ThreadedConnectionPool raises instead of waiting when it runs dry.
        self._slots = threading.BoundedSemaphore(self.pool_size)

    def _get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        if not self.dsn:
            raise StoreError("database url not set")
        with self._pool_lock:
            if self._pool is None:
                try:
                    self._pool = psycopg2.pool.ThreadedConnectionPool(
                        1, self.pool_size, self.dsn, connect_timeout=self.connect_timeout
                    )
                except psycopg2.Error as e:
                    raise StoreError(f"postgres connect failed: {e}") from e
            return self._pool

    @contextmanager
    def _conn(self):
        """Borrow a pooled connection; commits on success, rolls back on error."""
        pool = self._get_pool()
        with self._slots:
            try:
                conn = pool.getconn()
            except psycopg2.Error as e:
                raise StoreError(f"postgres connect failed: {e}") from e
            broken = False
            try:
                with conn:
                    with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                        yield cur
            except psycopg2.Error as e:
                # Don't hand a possibly dead connection to the next caller.
                broken = True
                raise StoreError(f"postgres query failed: {e}") from e
            finally:
                try:
                    pool.putconn(conn, close=broken)
                except psycopg2.pool.PoolError:
                    # Pool was closed under us (shutdown or fallback switch).
                    conn.close()

    def init(self) -> None:
        with self._conn() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS high_scores (
                    id BIGSERIAL PRIMARY KEY,
                    player_key TEXT NOT NULL,
                    player_name TEXT NOT NULL,
                    score INTEGER NOT NULL CHECK (score >= 0),
                    level_reached INTEGER NOT NULL,
                    date_achieved TIMESTAMPTZ NOT NULL DEFAULT NOW()
                );
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_high_scores_score ON high_scores (score DESC);")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_high_scores_key ON high_scores (player_key);")
        log.info("postgres store ready")

    def close(self) -> None:
        with self._pool_lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None

    def seed(self, entries: list[ScoreEntry]) -> None:
        with self._conn() as cur:
            # Serialize concurrent seeders on the table itself.
            cur.execute("LOCK TABLE high_scores IN SHARE ROW EXCLUSIVE MODE;")
            cur.execute("SELECT COUNT(*) AS n FROM high_scores;")
            if cur.fetchone()["n"] > 0:
                return
            for e in entries:
                cur.execute(
                    f"INSERT INTO high_scores ({_COLUMNS}) VALUES (%s, %s, %s, %s, %s);",
                    (e.player_key, e.player_name, e.score, e.level_reached, e.date_achieved),
                )
        log.info("seeded postgres store with %d default scores", len(entries))

    def best(self, key: str) -> int | None:
        with self._conn() as cur:
            cur.execute("SELECT MAX(score) AS best FROM high_scores WHERE player_key = %s;", (key,))
            return cur.fetchone()["best"]

    def list(self, limit: int = 10) -> list[ScoreEntry]:
        with self._conn() as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM high_scores
                ORDER BY score DESC, date_achieved ASC, id ASC
                LIMIT %s;
                """,
                (max(0, int(limit)),),
            )
            return [_row_to_entry(r) for r in cur.fetchall()]

    def upsert(self, name: str, score: int, level: int, key: str | None = None) -> UpsertResult:
        key = key or name
        entry = ScoreEntry(name, int(score), int(level), utcnow(), key)
        with self._conn() as cur:
            # Held until commit; concurrent submissions for one player queue up here.
            cur.execute("SELECT pg_advisory_xact_lock(hashtext(%s));", (key,))
            cur.execute("SELECT MAX(score) AS best FROM high_scores WHERE player_key = %s;", (key,))
            best = cur.fetchone()["best"]
            if best is not None and entry.score <= best:
                return UpsertResult(accepted=False, best_score=best)

            cur.execute("DELETE FROM high_scores WHERE player_key = %s;", (key,))
            cur.execute(
                f"INSERT INTO high_scores ({_COLUMNS}) VALUES (%s, %s, %s, %s, %s) RETURNING id;",
                (key, name, entry.score, entry.level_reached, entry.date_achieved),
            )
            row_id = cur.fetchone()["id"]
            cur.execute(
                """
                SELECT COUNT(*) AS ahead FROM high_scores
                WHERE score > %s
                   OR (score = %s AND (date_achieved < %s OR (date_achieved = %s AND id < %s)));
                """,
                (entry.score, entry.score, entry.date_achieved, entry.date_achieved, row_id),
            )
            ahead = cur.fetchone()["ahead"]
        return UpsertResult(accepted=True, rank=ahead + 1, best_score=entry.score)
