"""Request schemas + validation.

Submit body:
  {"playerName": "ACE", "score": 1200, "levelReached": 4}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ValidationError(Exception):
    pass


# Largest value an SQL INTEGER column holds.
MAX_INT = 2**31 - 1


def _int(v: Any, field: str, *, minimum: int, maximum: int = MAX_INT) -> int:
    # bool is an int subclass; a JSON true is not a score.
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValidationError(f"{field} must be a number")
    if isinstance(v, float):
        if not v.is_integer():
            raise ValidationError(f"{field} must be a whole number")
        v = int(v)
    if v < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if v > maximum:
        raise ValidationError(f"{field} must be <= {maximum}")
    return v


@dataclass
class SubmitScore:
    playerName: str
    score: int
    levelReached: int

    @classmethod
    def parse(cls, data: Any) -> "SubmitScore":
        if not isinstance(data, dict):
            raise ValidationError("body must be a JSON object")
        name = data.get("playerName")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("playerName required")
        if "score" not in data or "levelReached" not in data:
            raise ValidationError("score and levelReached required")
        return cls(
            playerName=name,
            score=_int(data.get("score"), "score", minimum=0),
            levelReached=_int(data.get("levelReached"), "levelReached", minimum=1),
        )


def parse_limit(raw: str, maximum: int) -> int:
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    return max(1, min(maximum, limit))
