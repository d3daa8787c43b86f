"""
Tesseract invocation through pytesseract.
"""

import shutil

import numpy as np
import pytesseract
from PIL import Image

from .config import DEFAULT_OCR_CONFIG, MISSING_LANGUAGE_HINT, TESSERACT_INSTALL_HINT
from .errors import (
    EngineNotInstalledError,
    MissingLanguageDataError,
    OcrEngineError,
    ScreenOcrError,
)

MISSING_LANGUAGE_MARKERS = ("Failed loading language", "traineddata")


def tesseract_available(which=None) -> bool:
    """Whether the configured tesseract executable can be found."""
    which = which or shutil.which
    return which(pytesseract.pytesseract.tesseract_cmd) is not None


def ensure_tesseract_installed(which=None):
    """
    Raises:
        EngineNotInstalledError: with an installation hint
    """
    if not tesseract_available(which):
        raise EngineNotInstalledError(TESSERACT_INSTALL_HINT)


def engine_error_message(error: Exception) -> str:
    # TesseractError keeps tesseract's stderr in .message
    return getattr(error, "message", None) or str(error)


def translate_engine_error(error: Exception) -> ScreenOcrError:
    """Map a raw engine failure onto an actionable error."""
    message = engine_error_message(error)
    if any(marker in message for marker in MISSING_LANGUAGE_MARKERS):
        return MissingLanguageDataError(MISSING_LANGUAGE_HINT)
    return OcrEngineError(message)


def recognize_text(binary, config=DEFAULT_OCR_CONFIG, engine=None) -> str:
    """
    Run the recognition engine over a preprocessed image.

    Args:
        binary: Binary uint8 array or PIL Image
        config: OcrConfig applied to the call
        engine: Callable with pytesseract.image_to_string's signature

    Returns:
        Raw recognized text
    """
    engine = engine or pytesseract.image_to_string
    image = Image.fromarray(binary) if isinstance(binary, np.ndarray) else binary

    try:
        return engine(image, lang=config.lang, config=config.to_tesseract_args())
    except pytesseract.TesseractNotFoundError as e:
        raise EngineNotInstalledError(TESSERACT_INSTALL_HINT) from e
    except ScreenOcrError:
        raise
    except Exception as e:
        raise translate_engine_error(e) from e
