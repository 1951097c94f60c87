from __future__ import annotations

import numpy as np
import pytest

from leaderboard_ocr.services import ocr_engine  # type: ignore[import-not-found]
from leaderboard_ocr.services.errors import OcrEngineUnavailableError  # type: ignore[import-not-found]
from leaderboard_ocr.services.layout import Rect  # type: ignore[import-not-found]
from leaderboard_ocr.services.ocr_engine import (  # type: ignore[import-not-found]
    PageSegMode,
    TesseractOcr,
    build_tesseract_config,
    check_ocr_runtime,
    crop,
    encode_png,
    preprocess_region,
    require_ocr_runtime,
)


def _banner() -> np.ndarray:
    image = np.full((40, 200, 3), 30, dtype=np.uint8)
    image[10:30, 20:180] = 220
    return image


def _engine() -> TesseractOcr:
    pytest.importorskip("cv2")
    pytest.importorskip("pytesseract")
    return TesseractOcr(language="eng", tessdata_dir="")


def test_build_config_with_whitelist() -> None:
    config = build_tesseract_config(PageSegMode.SINGLE_LINE, "0123456789:", "/opt/tessdata")

    assert "--psm 7" in config
    assert "--oem 1" in config
    assert '--tessdata-dir "/opt/tessdata"' in config
    assert '-c "tessedit_char_whitelist=0123456789:"' in config


def test_build_config_without_whitelist() -> None:
    config = build_tesseract_config(PageSegMode.SINGLE_BLOCK, None)

    assert "--psm 6" in config
    assert "tessedit_char_whitelist" not in config
    assert "--tessdata-dir" not in config


def test_crop_clamps_and_rejects_empty_regions() -> None:
    image = _banner()

    region = crop(image, Rect(190, 30, 50, 50))
    assert region is not None
    assert region.shape == (10, 10, 3)
    assert crop(image, Rect(300, 0, 10, 10)) is None


def test_preprocess_produces_dark_text_on_light_background() -> None:
    pytest.importorskip("cv2")

    processed = preprocess_region(_banner())

    assert processed.ndim == 2
    assert processed.shape == (120, 600)
    assert np.mean(processed) >= 127


def test_recognize_returns_stripped_text(monkeypatch: pytest.MonkeyPatch) -> None:
    engine = _engine()
    seen: dict[str, object] = {}

    def fake_image_to_string(image: object, lang: str, config: str) -> str:
        seen["lang"] = lang
        seen["config"] = config
        return "  Week 7\n\x0c"

    monkeypatch.setattr(engine._pytesseract, "image_to_string", fake_image_to_string)

    text = engine.recognize(_banner(), Rect(0, 0, 200, 40), PageSegMode.SINGLE_LINE)

    assert text == "Week 7"
    assert seen["lang"] == "eng"
    assert "--psm 7" in str(seen["config"])


def test_recognize_maps_blank_output_to_none(monkeypatch: pytest.MonkeyPatch) -> None:
    engine = _engine()
    monkeypatch.setattr(engine._pytesseract, "image_to_string", lambda *a, **k: " \n")

    assert engine.recognize(_banner(), Rect(0, 0, 200, 40), PageSegMode.SINGLE_BLOCK) is None


def test_recognize_swallows_engine_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    engine = _engine()

    def boom(*args: object, **kwargs: object) -> str:
        raise engine._pytesseract.TesseractError(1, "engine crashed")

    monkeypatch.setattr(engine._pytesseract, "image_to_string", boom)

    assert engine.recognize(_banner(), Rect(0, 0, 200, 40), PageSegMode.SINGLE_LINE) is None


def test_recognize_skips_engine_for_empty_region(monkeypatch: pytest.MonkeyPatch) -> None:
    engine = _engine()

    def fail(*args: object, **kwargs: object) -> str:
        raise AssertionError("engine must not run on an empty region")

    monkeypatch.setattr(engine._pytesseract, "image_to_string", fail)

    assert engine.recognize(_banner(), Rect(500, 500, 10, 10), PageSegMode.SINGLE_LINE) is None


def test_encode_png_writes_png_bytes() -> None:
    pytest.importorskip("cv2")

    data = encode_png(_banner())

    assert data is not None
    assert data.startswith(b"\x89PNG\r\n\x1a\n")
    assert encode_png(np.zeros((0, 10, 3), dtype=np.uint8)) is None


def test_runtime_check_without_tesseract_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    pytest.importorskip("pytesseract")
    monkeypatch.setattr(ocr_engine.shutil, "which", lambda cmd: None)

    status = check_ocr_runtime()

    assert not status.ready
    assert status.tesseract_cmd == ""
    assert status.errors == ["tesseract binary not found in PATH"]
    with pytest.raises(OcrEngineUnavailableError):
        require_ocr_runtime()


def test_runtime_check_reports_missing_language(monkeypatch: pytest.MonkeyPatch) -> None:
    pytesseract = pytest.importorskip("pytesseract")
    monkeypatch.setattr(ocr_engine.shutil, "which", lambda cmd: "/usr/bin/tesseract")
    monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")
    monkeypatch.setattr(pytesseract, "get_languages", lambda config="": ["eng", "osd"])

    status = check_ocr_runtime("eng+fra")

    assert status.tesseract_version == "5.3.0"
    assert status.languages == ["eng", "osd"]
    assert status.errors == ["language data missing: fra"]
    assert not status.ready
    assert require_ocr_runtime("eng").ready
