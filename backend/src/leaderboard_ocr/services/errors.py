from __future__ import annotations


class ExtractionError(Exception):
    """Base exception for leaderboard screenshot extraction."""


class LayoutError(ExtractionError, ValueError):
    """Raised when region geometry is requested for an invalid image size."""


class OcrDependencyError(ExtractionError):
    """Raised when a required OCR dependency is missing."""


class OcrEngineUnavailableError(ExtractionError):
    """Raised when the OCR engine is installed but unavailable at runtime."""


class ImageInputError(ExtractionError):
    """Raised when uploaded images fail decoding or precondition checks."""
