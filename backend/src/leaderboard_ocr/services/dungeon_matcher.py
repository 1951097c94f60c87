from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from rapidfuzz.distance import JaroWinkler

from ..config import DUNGEON_MATCH_THRESHOLD
from .catalogs import DungeonCandidate

logger = logging.getLogger("leaderboard_ocr.dungeons")

_NON_WORD = re.compile(r"[\W_]+")


@dataclass(frozen=True)
class DungeonMatch:
    dungeon_id: int
    display_name: str | None
    score: float


def normalize_dungeon_name(value: str | None) -> str:
    if not value:
        return ""
    return _NON_WORD.sub(" ", value).strip().upper()


def best_dungeon_match(
    text: str | None,
    candidates: list[DungeonCandidate],
    threshold: float = DUNGEON_MATCH_THRESHOLD,
) -> DungeonMatch | None:
    """Resolve OCR'd banner text to the most similar known dungeon.

    Every localized name of every candidate is scored with Jaro-Winkler
    against the normalized text. The best pair wins only when its score
    reaches ``threshold``. On equal scores the first candidate seen is kept.
    """
    needle = normalize_dungeon_name(text)
    if not needle or not candidates:
        return None

    best: DungeonCandidate | None = None
    best_score = 0.0
    for candidate in candidates:
        for variant in candidate.name_variants:
            normalized = normalize_dungeon_name(variant)
            if not normalized:
                continue
            score = JaroWinkler.similarity(needle, normalized)
            if score > best_score:
                best_score = score
                best = candidate

    if best is None or best_score < threshold:
        logger.debug("dungeon unmatched text=%r best_score=%.3f", needle, best_score)
        return None

    return DungeonMatch(
        dungeon_id=best.id,
        display_name=best.display_name,
        score=best_score,
    )


def match_dungeon(
    text: str | None,
    candidates: list[DungeonCandidate],
    threshold: float = DUNGEON_MATCH_THRESHOLD,
) -> int | None:
    match = best_dungeon_match(text, candidates, threshold=threshold)
    return match.dungeon_id if match is not None else None
