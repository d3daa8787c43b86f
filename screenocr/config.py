"""
Configuration and constants for the screen OCR system.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# Capture orchestration
CAPTURE_TIMEOUT_SECONDS = 2.0
DEFAULT_BACKEND_ORDER = ("grim", "mss", "gnome-screenshot")
HIDE_DELAY_SECONDS = 0.2

# gnome-screenshot writes to a file and is polled instead of time-boxed
POLL_ATTEMPTS = 20
POLL_INTERVAL_SECONDS = 0.1
TEMP_FILE_PREFIX = "screenocr_screenshot"

# Environment markers consulted by the backend probe
WAYLAND_ENV_VAR = "WAYLAND_DISPLAY"
X11_ENV_VAR = "DISPLAY"

# Server defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

TESSERACT_INSTALL_HINT = (
    "tesseract not found, install it first: "
    "sudo apt install tesseract-ocr tesseract-ocr-chi-sim "
    "(or your distribution's equivalent packages)"
)
MISSING_LANGUAGE_HINT = (
    "Tesseract language data is missing, install tesseract-ocr-chi-sim "
    "and check that TESSDATA_PREFIX points at the tessdata directory"
)


def _frozen(values):
    return MappingProxyType(dict(values))


@dataclass(frozen=True)
class OcrConfig:
    """Fixed Tesseract settings for short, single-line, mixed CJK/Latin text."""

    lang: str = "chi_sim+eng"
    dpi: int = 350  # small captures need a higher resolution hint
    psm: int = 7  # treat the image as a single text line
    oem: int = 1  # LSTM only
    variables: Mapping[str, str] = field(
        default_factory=lambda: _frozen(
            {
                "preserve_interword_spaces": "1",
                "textord_heavy_nr": "0",
                "textord_min_linesize": "2.5",
                "textord_space_size_is_variable": "1",
                # no dictionaries, rare glyphs and symbols survive
                "load_system_dawg": "F",
                "load_freq_dawg": "F",
            }
        )
    )

    def to_tesseract_args(self) -> str:
        """Render everything except the language as a tesseract config string."""
        parts = [f"--dpi {self.dpi}", f"--psm {self.psm}", f"--oem {self.oem}"]
        for name, value in self.variables.items():
            parts.append(f"-c {name}={value}")
        return " ".join(parts)


DEFAULT_OCR_CONFIG = OcrConfig()
