"""Shared store types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class StoreError(Exception):
    """Backend I/O failed; the store's state is unchanged."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ScoreEntry:
    player_name: str
    score: int
    level_reached: int
    date_achieved: datetime = field(default_factory=utcnow)
    # De-duplication key; same as player_name unless names are kept apart.
    player_key: str = ""

    def __post_init__(self):
        if not self.player_key:
            self.player_key = self.player_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_name": self.player_name,
            "score": self.score,
            "level_reached": self.level_reached,
            "date_achieved": self.date_achieved.isoformat(),
        }


@dataclass
class UpsertResult:
    accepted: bool
    rank: int | None = None
    best_score: int | None = None


# Placeholder board used when a store starts empty.
DEFAULT_SCORES = [
    ("ROBOT_RON", 75000, 20),
    ("CYBER_ACE", 62500, 18),
    ("NEON_KING", 49250, 16),
    ("PIXEL_WAR", 43600, 15),
    ("CODE_HERO", 38400, 14),
    ("RETRO_BOT", 32700, 13),
    ("ARCADE_X", 27150, 12),
    ("TECH_NOVA", 21600, 11),
    ("GAME_OVER", 16050, 10),
    ("PLAYER_1", 10500, 9),
]


def default_entries() -> list[ScoreEntry]:
    now = utcnow()
    return [ScoreEntry(name, score, level, now) for name, score, level in DEFAULT_SCORES]
