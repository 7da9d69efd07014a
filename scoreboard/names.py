"""Player name normalization."""

from __future__ import annotations

import re

from scoreboard.protocol import ValidationError

_DISALLOWED = {
    "strict": re.compile(r"[^A-Z0-9_]"),
    "wide": re.compile(r"[^A-Z0-9_ .\-]"),
}


def sanitize_name(raw: str, max_length: int = 20, charset: str = "strict") -> str:
    """Truncate, uppercase and filter a player name.

    Anything outside the charset becomes ``_``. The result is stable under a
    second pass, so it can be used directly as a lookup key.
    """
    pattern = _DISALLOWED.get(charset)
    if pattern is None:
        raise ValueError(f"unknown name charset: {charset}")

    name = raw.strip()[:max_length].upper()
    # upper() can expand characters ("ß" -> "SS"), so cut again afterwards.
    name = pattern.sub("_", name)[:max_length].strip()
    if not name:
        raise ValidationError("playerName is empty")
    return name


def player_key(raw: str, normalized: str, policy: str = "merge", max_length: int = 20) -> str:
    """De-duplication key for a submission.

    ``merge`` treats every raw name that normalizes the same as one player.
    ``coexist`` keeps them apart by keying on the raw (trimmed) name, cut to
    four times the display length.
    """
    if policy == "merge":
        return normalized
    if policy == "coexist":
        return raw.strip()[: 4 * max_length]
    raise ValueError(f"unknown collision policy: {policy}")
