from __future__ import annotations

from rapidfuzz.distance import JaroWinkler

from leaderboard_ocr.services.catalogs import DungeonCandidate  # type: ignore[import-not-found]
from leaderboard_ocr.services.dungeon_matcher import (  # type: ignore[import-not-found]
    best_dungeon_match,
    match_dungeon,
    normalize_dungeon_name,
)


def _dungeons() -> list[DungeonCandidate]:
    return [
        DungeonCandidate(id=1, names={"en": "Amrine Excavation", "fr": "Fouilles d'Amrine"}),
        DungeonCandidate(id=2, names={"en": "Starstone Barrows", "fr": "Tumulus de Pierrétoile"}),
        DungeonCandidate(id=3, names={"en": "The Depths", "de": "Die Tiefen"}),
    ]


def test_normalize_collapses_punctuation_and_uppercases() -> None:
    assert normalize_dungeon_name("  Fouilles d'Amrine!! ") == "FOUILLES D AMRINE"
    assert normalize_dungeon_name("Tumulus de\nPierrétoile") == "TUMULUS DE PIERRÉTOILE"
    assert normalize_dungeon_name(None) == ""


def test_exact_english_name_matches() -> None:
    assert match_dungeon("STARSTONE BARROWS", _dungeons()) == 2


def test_localized_variant_matches() -> None:
    match = best_dungeon_match("Tumulus de Pierretoile", _dungeons())
    assert match is not None
    assert match.dungeon_id == 2
    assert match.display_name == "Starstone Barrows"
    assert match.score >= 0.75


def test_noisy_ocr_still_matches() -> None:
    assert match_dungeon("Amrlne Excavatlon", _dungeons()) == 1


def test_below_threshold_returns_none() -> None:
    candidates = _dungeons()
    text = "QQQ"
    best = max(
        JaroWinkler.similarity(normalize_dungeon_name(text), normalize_dungeon_name(name))
        for candidate in candidates
        for name in candidate.name_variants
    )
    assert best < 0.75
    assert match_dungeon(text, candidates) is None


def test_threshold_is_configurable() -> None:
    assert match_dungeon("Starstone Barrows", _dungeons(), threshold=1.01) is None


def test_empty_inputs_return_none() -> None:
    assert match_dungeon("", _dungeons()) is None
    assert match_dungeon("!!!", _dungeons()) is None
    assert match_dungeon("The Depths", []) is None


def test_equal_scores_keep_first_candidate() -> None:
    candidates = [
        DungeonCandidate(id=10, names={"en": "Garden of Genesis"}),
        DungeonCandidate(id=11, names={"en": "Garden of Genesis"}),
    ]
    assert match_dungeon("Garden of Genesis", candidates) == 10
