from __future__ import annotations

import json
from pathlib import Path

import pytest

from leaderboard_ocr.services.catalogs import load_catalog_file  # type: ignore[import-not-found]
from leaderboard_ocr.services.errors import (  # type: ignore[import-not-found]
    OcrDependencyError,
    OcrEngineUnavailableError,
)
from leaderboard_ocr.services.images import decode_image  # type: ignore[import-not-found]
from leaderboard_ocr.services.ocr_engine import TesseractOcr, require_ocr_runtime  # type: ignore[import-not-found]
from leaderboard_ocr.services.run_assembler import RunAssembler  # type: ignore[import-not-found]


ASSET_DIR = Path(__file__).resolve().parent / "assets" / "leaderboard_samples"
MANIFEST_PATH = ASSET_DIR / "manifest.json"


def _load_manifest() -> list[dict[str, object]]:
    if not MANIFEST_PATH.exists():
        return []
    payload = json.loads(MANIFEST_PATH.read_text(encoding="utf-8"))
    samples = payload.get("samples")
    if not isinstance(samples, list):
        return []
    return [item for item in samples if isinstance(item, dict)]


SAMPLES = _load_manifest()


@pytest.mark.skipif(not SAMPLES, reason=f"missing leaderboard sample manifest: {MANIFEST_PATH}")
@pytest.mark.parametrize("sample", SAMPLES, ids=lambda x: str(x.get("file")))
def test_sample_matches_expected_runs(sample: dict[str, object]) -> None:
    rel_path = sample.get("file")
    expected = sample.get("expected")
    if not isinstance(rel_path, str) or not rel_path.strip():
        pytest.fail("invalid sample entry: missing file")
    if not isinstance(expected, dict):
        pytest.fail("invalid sample entry: missing expected")

    try:
        require_ocr_runtime()
        ocr = TesseractOcr()
    except (OcrDependencyError, OcrEngineUnavailableError) as exc:
        pytest.skip(f"OCR backend unavailable: {exc}")

    dungeons, players = load_catalog_file(ASSET_DIR / "catalog.json")
    image = decode_image((ASSET_DIR / rel_path).read_bytes(), name=rel_path)
    runs = RunAssembler(ocr, dungeons, players).extract(image)

    assert len(runs) == expected.get("runs"), f"{rel_path}: {[run.to_dict() for run in runs]}"
    for run in runs:
        assert (run.score is None) != (run.time is None)
        assert run.players
        if "week" in expected:
            assert run.week == expected["week"]
        if "dungeonId" in expected:
            assert run.dungeon_id == expected["dungeonId"]
