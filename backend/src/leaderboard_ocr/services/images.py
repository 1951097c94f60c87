from __future__ import annotations

import numpy as np

from ..config import EXPECTED_IMAGE_HEIGHT, EXPECTED_IMAGE_WIDTH, MAX_UPLOADS
from .errors import ImageInputError
from .ocr_engine import require_cv2


def decode_image(image_bytes: bytes, name: str = "image") -> np.ndarray:
    if not image_bytes:
        raise ImageInputError(f"empty image bytes for {name}")
    cv2 = require_cv2()
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    image = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageInputError(f"unable to decode image {name}")
    return image


def validate_uploads(
    images: list[np.ndarray],
    expected_size: tuple[int, int] = (EXPECTED_IMAGE_WIDTH, EXPECTED_IMAGE_HEIGHT),
    max_uploads: int = MAX_UPLOADS,
) -> None:
    """Check the upload count and resolution before extraction.

    Extraction itself assumes these preconditions hold and never re-checks
    them.
    """
    if not images:
        raise ImageInputError("no image provided for extraction")
    if len(images) > max_uploads:
        raise ImageInputError(f"at most {max_uploads} images can be processed per request")

    expected_w, expected_h = expected_size
    for idx, image in enumerate(images):
        h, w = image.shape[:2]
        if (w, h) != (expected_w, expected_h):
            raise ImageInputError(
                f"image {idx + 1} must have a resolution of {expected_w}x{expected_h}, got {w}x{h}"
            )
