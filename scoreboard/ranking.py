"""Top-N ordering and placement."""

from __future__ import annotations

from typing import Iterable

from scoreboard.storage.base import ScoreEntry


def sort_key(entry: ScoreEntry):
    # Higher score first; on ties the earlier achiever keeps the spot.
    return (-entry.score, entry.date_achieved)


def top_n(entries: Iterable[ScoreEntry], n: int) -> list[ScoreEntry]:
    # sorted() is stable, so equal (score, date) pairs keep insertion order.
    return sorted(entries, key=sort_key)[: max(0, int(n))]


def placement(entries: list[ScoreEntry], key: str, score: int) -> int | None:
    """1-based position of the entry for ``key`` with exactly ``score``."""
    for i, e in enumerate(entries, start=1):
        if e.player_key == key and e.score == score:
            return i
    return None


def made_board(entries: list[ScoreEntry], key: str, score: int, capacity: int) -> bool:
    rank = placement(entries[:capacity], key, score)
    return rank is not None


def rank_entries(entries: list[ScoreEntry], start: int = 1) -> list[dict]:
    return [{"rank": i, **e.to_dict()} for i, e in enumerate(entries, start=start)]
