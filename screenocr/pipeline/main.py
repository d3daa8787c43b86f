"""
OCR pipeline: decode -> preprocess -> recognize -> normalize.
"""

import time
from typing import Any, Callable, Dict, Optional, Tuple

from PIL import Image

from ..codec import decode_base64_image
from ..config import DEFAULT_OCR_CONFIG, OcrConfig
from ..ocr import ensure_tesseract_installed, recognize_text
from .preprocess import preprocess_for_ocr
from .text import normalize_text


class OcrPipeline:
    """Turns screenshots into normalized text with a fixed engine configuration."""

    def __init__(
        self,
        config: OcrConfig = DEFAULT_OCR_CONFIG,
        engine: Optional[Callable] = None,
        check_engine: Optional[bool] = None,
        verbose: bool = False,
    ):
        """
        Initialize the OCR pipeline.

        Args:
            config: Tesseract configuration applied to every call
            engine: Replacement for pytesseract.image_to_string
            check_engine: Check for the tesseract executable before each call
                (defaults to True only when the real engine is used)
            verbose: Print per-stage timings
        """
        self.config = config
        self.engine = engine
        self.check_engine = engine is None if check_engine is None else check_engine
        self.verbose = verbose

    def process_image(self, image: Image.Image) -> Tuple[str, Dict[str, Any]]:
        """
        Recognize text in a decoded image.

        Returns:
            Tuple of (normalized text, stats dict)
        """
        if self.check_engine:
            ensure_tesseract_installed()
        return self._run(image)

    def _run(self, image):
        start_time = time.time()
        binary = preprocess_for_ocr(image)
        preprocess_time = time.time() - start_time

        ocr_start = time.time()
        raw_text = recognize_text(binary, self.config, self.engine)
        ocr_time = time.time() - ocr_start

        text = normalize_text(raw_text)

        stats = {
            "original_resolution": f"{image.size[0]}x{image.size[1]}",
            "processed_resolution": f"{binary.shape[1]}x{binary.shape[0]}",
            "preprocess_time_seconds": round(preprocess_time, 3),
            "ocr_time_seconds": round(ocr_time, 3),
            "total_time_seconds": round(time.time() - start_time, 3),
            "raw_length_chars": len(raw_text),
            "text_length_chars": len(text),
            "line_count": len(text.splitlines()),
        }

        if self.verbose:
            print(
                f"🔍 OCR finished in {stats['total_time_seconds']}s "
                f"(preprocess {stats['preprocess_time_seconds']}s, "
                f"engine {stats['ocr_time_seconds']}s)"
            )

        return text, stats

    def process_base64(self, base64_data: str) -> Tuple[str, Dict[str, Any]]:
        """Decode base64 image data and recognize its text."""
        # A missing engine is reported before the input is looked at
        if self.check_engine:
            ensure_tesseract_installed()
        image = decode_base64_image(base64_data)
        return self._run(image)


def ocr_image(base64_data: str, pipeline: Optional[OcrPipeline] = None) -> str:
    """
    Recognize the text in a base64 encoded image of any supported format.

    Returns:
        Normalized text
    """
    pipeline = pipeline or OcrPipeline()
    text, _ = pipeline.process_base64(base64_data)
    return text
