from __future__ import annotations

import re
from enum import Enum

_WEEK_PATTERN = re.compile(r"(?:week|semaine)\s*(\d+)", re.IGNORECASE)
_TIME_PATTERN = re.compile(r"(?:(\d{1,2}):)?(\d{1,2}):(\d{2})")
_NUMBER_PATTERN = re.compile(r"\d[\d,. ]*")
_ORDINAL_PREFIX = re.compile(r"^\d+\.\s*")
_WHITESPACE = re.compile(r"\s+")


class RunMode(str, Enum):
    SCORE = "Score"
    TIME = "Time"
    UNKNOWN = "Unknown"


def interpret_mode(text: str | None) -> RunMode:
    if not text or not text.strip():
        return RunMode.UNKNOWN
    lower = text.lower()
    if "score" in lower:
        return RunMode.SCORE
    if "time" in lower:
        return RunMode.TIME
    return RunMode.UNKNOWN


def parse_week(text: str | None) -> int | None:
    if not text:
        return None
    match = _WEEK_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(1))


def parse_score(text: str | None) -> int | None:
    """Return the first digit group of ``text`` as an integer.

    Thousands separators (comma, period, space) inside the group are
    dropped, so ``"12,345"`` and ``"12 345"`` both read as 12345.
    """
    if text is None:
        return None
    compact = _WHITESPACE.sub("", text)
    match = _NUMBER_PATTERN.search(compact)
    if not match:
        return None
    digits = re.sub(r"\D", "", match.group(0))
    if not digits:
        return None
    return int(digits)


def parse_time(text: str | None) -> int | None:
    """Return a ``[hh:]mm:ss`` duration in seconds."""
    if text is None:
        return None
    match = _TIME_PATTERN.search(text.strip())
    if not match:
        return None
    hours = int(match.group(1)) if match.group(1) else 0
    minutes = int(match.group(2))
    seconds = int(match.group(3))
    return hours * 3600 + minutes * 60 + seconds


def format_duration(seconds: int | None) -> str | None:
    if seconds is None or seconds <= 0:
        return None
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def strip_ordinal(text: str) -> str:
    return _ORDINAL_PREFIX.sub("", text)


def parse_player_lines(text: str | None) -> list[str]:
    if not text:
        return []
    lines: list[str] = []
    for raw in text.splitlines():
        line = strip_ordinal(raw.strip()).strip()
        if line:
            lines.append(line)
    return lines
