"""
Error types raised by capture and OCR operations.

Every error carries a human-readable message; the CLI and the HTTP API show
``str(error)`` to the user as-is.
"""

from typing import List, Optional, Tuple


class ScreenOcrError(Exception):
    """Base class for all screen OCR failures."""


class CaptureError(ScreenOcrError):
    """A capture backend could not produce an image."""

    def __init__(self, message: str, backend=None):
        super().__init__(message)
        self.backend = backend


class CaptureTimeoutError(CaptureError):
    """A time-boxed capture backend did not answer before its deadline."""


class AllBackendsFailedError(CaptureError):
    """
    Every candidate backend failed; the message is the last one's.

    ``last_error`` is the last candidate's own error (also the ``__cause__``)
    and ``attempts`` holds a ``(backend, error)`` pair per failed candidate.
    """

    def __init__(
        self,
        message: str,
        backend=None,
        attempts: Optional[List[Tuple[object, CaptureError]]] = None,
        last_error: Optional[CaptureError] = None,
    ):
        super().__init__(message, backend=backend)
        self.attempts = attempts or []
        self.last_error = last_error


class ImageDecodeError(ScreenOcrError):
    """Input was not valid base64 or not a decodable image."""


class EngineNotInstalledError(ScreenOcrError):
    """The tesseract executable is not available."""


class MissingLanguageDataError(ScreenOcrError):
    """Tesseract is installed but the requested language data is not."""


class OcrEngineError(ScreenOcrError):
    """Any other recognition engine failure, message passed through verbatim."""
