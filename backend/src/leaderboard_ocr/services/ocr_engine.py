from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Protocol

import numpy as np

from ..config import OCR_ENGINE_MODE, OCR_LANGUAGE, OCR_USER_DPI, resolve_tessdata_dir
from .errors import OcrDependencyError, OcrEngineUnavailableError
from .layout import Rect

logger = logging.getLogger("leaderboard_ocr.ocr")

UPSCALE_FACTOR = 3.0
CLAHE_CLIP_LIMIT = 2.0
CLAHE_TILE_GRID = (8, 8)
BILATERAL_DIAMETER = 5
BILATERAL_SIGMA = 15.0
ADAPTIVE_BLOCK_SIZE = 31
ADAPTIVE_C = 5


class PageSegMode(IntEnum):
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7


class OcrPort(Protocol):
    def recognize(
        self,
        image: np.ndarray,
        rect: Rect,
        mode: PageSegMode,
        char_whitelist: str | None = None,
    ) -> str | None:
        ...


def require_cv2() -> Any:
    try:
        import cv2  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise OcrDependencyError("opencv-python-headless is required") from exc
    return cv2


def _require_pytesseract() -> Any:
    try:
        import pytesseract  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise OcrDependencyError("pytesseract is required") from exc
    return pytesseract


def crop(image: np.ndarray, rect: Rect) -> np.ndarray | None:
    h, w = image.shape[:2]
    bounded = rect.clamp(w, h)
    if bounded.is_empty:
        return None
    return image[bounded.y : bounded.y + bounded.height, bounded.x : bounded.x + bounded.width].copy()


def preprocess_region(region: np.ndarray) -> np.ndarray:
    cv2 = require_cv2()
    if region.ndim == 3:
        gray = cv2.cvtColor(region, cv2.COLOR_BGR2GRAY)
    else:
        gray = region
    upscaled = cv2.resize(
        gray,
        None,
        fx=UPSCALE_FACTOR,
        fy=UPSCALE_FACTOR,
        interpolation=cv2.INTER_CUBIC,
    )
    clahe = cv2.createCLAHE(clipLimit=CLAHE_CLIP_LIMIT, tileGridSize=CLAHE_TILE_GRID)
    contrasted = clahe.apply(upscaled)
    smooth = cv2.bilateralFilter(contrasted, BILATERAL_DIAMETER, BILATERAL_SIGMA, BILATERAL_SIGMA)
    binary = cv2.adaptiveThreshold(
        smooth,
        255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY,
        ADAPTIVE_BLOCK_SIZE,
        ADAPTIVE_C,
    )
    # Dark text on a light background reads best in Tesseract.
    if np.mean(binary) < 127:
        binary = 255 - binary
    return binary


def build_tesseract_config(
    mode: PageSegMode,
    char_whitelist: str | None,
    tessdata_dir: str | None = None,
) -> str:
    parts = [f"--oem {OCR_ENGINE_MODE}", f"--psm {int(mode)}"]
    if tessdata_dir:
        parts.append(f'--tessdata-dir "{tessdata_dir}"')
    parts.append(f"-c user_defined_dpi={OCR_USER_DPI}")
    parts.append("-c load_system_dawg=0")
    parts.append("-c load_freq_dawg=0")
    if char_whitelist:
        parts.append(f'-c "tessedit_char_whitelist={char_whitelist}"')
    return " ".join(parts)


class TesseractOcr:
    """``OcrPort`` backed by the Tesseract CLI through pytesseract.

    Every call spawns its own Tesseract process with a config string built
    for that call only, so instances hold no engine state and may be shared.
    Engine failures are logged and reported as ``None``.
    """

    def __init__(self, language: str = OCR_LANGUAGE, tessdata_dir: str | None = None) -> None:
        self._pytesseract = _require_pytesseract()
        require_cv2()
        self.language = language
        self.tessdata_dir = tessdata_dir if tessdata_dir is not None else resolve_tessdata_dir()

    def recognize(
        self,
        image: np.ndarray,
        rect: Rect,
        mode: PageSegMode,
        char_whitelist: str | None = None,
    ) -> str | None:
        region = crop(image, rect)
        if region is None:
            logger.debug("ocr skipped empty region rect=%s", rect)
            return None

        processed = preprocess_region(region)
        config = build_tesseract_config(mode, char_whitelist, self.tessdata_dir)
        pytesseract = self._pytesseract
        try:
            text = pytesseract.image_to_string(processed, lang=self.language, config=config)
        except (pytesseract.TesseractError, RuntimeError, OSError) as exc:
            logger.debug("ocr failed rect=%s psm=%s: %s", rect, int(mode), exc)
            return None

        text = str(text or "").strip()
        return text or None


def encode_png(region: np.ndarray) -> bytes | None:
    if region.size == 0:
        return None
    cv2 = require_cv2()
    ok, buffer = cv2.imencode(".png", region)
    if not ok:
        logger.debug("png encoding failed shape=%s", region.shape)
        return None
    return buffer.tobytes()


@dataclass
class OcrRuntimeStatus:
    tesseract_cmd: str = ""
    tesseract_version: str = ""
    languages: list[str] = field(default_factory=list)
    tessdata_dir: str | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return bool(self.tesseract_cmd) and not self.errors


def check_ocr_runtime(language: str = OCR_LANGUAGE) -> OcrRuntimeStatus:
    """Report whether the Tesseract binary and the language data are usable."""
    pytesseract = _require_pytesseract()
    status = OcrRuntimeStatus(tessdata_dir=resolve_tessdata_dir())

    status.tesseract_cmd = shutil.which(pytesseract.pytesseract.tesseract_cmd) or ""
    if not status.tesseract_cmd:
        status.errors.append("tesseract binary not found in PATH")
        return status

    try:
        status.tesseract_version = str(pytesseract.get_tesseract_version())
        config = f'--tessdata-dir "{status.tessdata_dir}"' if status.tessdata_dir else ""
        status.languages = list(pytesseract.get_languages(config=config))
    except (pytesseract.TesseractError, RuntimeError, OSError) as exc:
        status.errors.append(f"failed to query tesseract: {exc}")
        return status

    missing = [part for part in language.split("+") if part not in status.languages]
    if missing:
        status.errors.append(f"language data missing: {', '.join(missing)}")
    return status


def require_ocr_runtime(language: str = OCR_LANGUAGE) -> OcrRuntimeStatus:
    status = check_ocr_runtime(language)
    if not status.tesseract_cmd:
        raise OcrEngineUnavailableError("tesseract is not installed or not in PATH")
    return status
