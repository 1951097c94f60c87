from __future__ import annotations

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name, "").strip()
    return raw or default


# Screenshots are rendered by the game client at a fixed resolution; uploads
# at any other size are rejected before extraction.
EXPECTED_IMAGE_WIDTH = _env_int("LEADERBOARD_IMAGE_WIDTH", 2560)
EXPECTED_IMAGE_HEIGHT = _env_int("LEADERBOARD_IMAGE_HEIGHT", 1440)
MAX_UPLOADS = max(1, _env_int("LEADERBOARD_MAX_UPLOADS", 6))

TABLE_ROW_COUNT = max(1, _env_int("LEADERBOARD_TABLE_ROWS", 5))
DUNGEON_MATCH_THRESHOLD = _env_float("LEADERBOARD_DUNGEON_THRESHOLD", 0.75)
EXTRACT_MAX_WORKERS = max(1, _env_int("LEADERBOARD_EXTRACT_WORKERS", 1))
# Review records carry a PNG of every region read unless disabled.
EXTRACT_KEEP_CROPS = _env_int("LEADERBOARD_KEEP_CROPS", 1) != 0

OCR_LANGUAGE = _env_str("OCR_LANGUAGE", "eng")
OCR_ENGINE_MODE = _env_int("OCR_ENGINE_MODE", 1)
OCR_USER_DPI = _env_int("OCR_USER_DPI", 300)
TIME_VALUE_WHITELIST = "0123456789:"

TESSDATA_CANDIDATES = (
    "/usr/share/tesseract-ocr/5/tessdata",
    "/usr/share/tesseract-ocr/4.00/tessdata",
    "/usr/share/tesseract-ocr/tessdata",
    "/usr/share/tessdata",
)


def resolve_tessdata_dir() -> str | None:
    candidates: list[str] = []
    env = os.getenv("TESSDATA_PREFIX", "").strip()
    if env:
        candidates.append(env)
    candidates.extend(TESSDATA_CANDIDATES)
    for candidate in candidates:
        path = Path(candidate)
        if path.is_dir():
            return str(path.resolve())
    return None


# Region geometry as (x, y, width, height) fractions of the screenshot size.
DUNGEON_BANNER_FRACTIONS = (0.2734, 0.1597, 0.4043, 0.0347)
MODE_BANNER_FRACTIONS = (0.2734, 0.2083, 0.1328, 0.0278)
WEEK_BANNER_FRACTIONS = (0.7930, 0.5486, 0.1016, 0.0208)
TABLE_FRACTIONS = (0.0, 0.2847, 1.0, 0.4653)

# Column spans inside a row band as (x, width) fractions of the image width.
PLAYER_COLUMN_FRACTIONS = (0.32, 0.38)
VALUE_COLUMN_FRACTIONS = (0.74, 0.14)
