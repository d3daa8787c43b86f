"""
Shared pytest fixtures for the ScreenOCR test suite.

Capture backends are replaced by scripted callables and the recognition
engine by stubs, so tests run without a display or a tesseract install.
"""

import io
import sys
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from screenocr.backends import CaptureBackend
from screenocr.capture import CaptureOrchestrator


class ScriptedBackends:
    """Capture callables whose outcomes are set per backend and can change between calls."""

    def __init__(self, outcomes):
        self.outcomes = dict(outcomes)
        self.calls = []
        self.cancel_args = {}

    def _capture_for(self, backend):
        def capture(cancel):
            self.calls.append(backend)
            self.cancel_args[backend] = cancel
            outcome = self.outcomes[backend]
            if isinstance(outcome, Exception):
                raise outcome
            if callable(outcome):
                return outcome(cancel)
            return outcome

        return capture

    def mapping(self):
        return {backend: self._capture_for(backend) for backend in self.outcomes}


def render_text_image(text="Hello World", size=(160, 40), color=(200, 0, 0)):
    image = Image.new("RGB", size, (255, 255, 255))
    draw = ImageDraw.Draw(image)
    draw.text((8, 12), text, fill=color)
    return image


def to_png_bytes(image):
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def text_image():
    """Red text on a white background."""
    return render_text_image()


@pytest.fixture
def png_bytes():
    return to_png_bytes(render_text_image(size=(64, 32)))


@pytest.fixture
def scripted():
    """Factory for ScriptedBackends; every backend fails unless overridden."""

    def factory(**overrides):
        from screenocr.errors import CaptureError

        outcomes = {
            backend: CaptureError(f"{backend} unavailable", backend)
            for backend in CaptureBackend
        }
        for name, outcome in overrides.items():
            outcomes[CaptureBackend[name.upper()]] = outcome
        return ScriptedBackends(outcomes)

    return factory


@pytest.fixture
def make_orchestrator():
    def factory(backends, **kwargs):
        kwargs.setdefault("probe", False)
        return CaptureOrchestrator(backends=backends.mapping(), **kwargs)

    return factory


@pytest.fixture
def stub_engine():
    """Recognition engine stub that records what it was given."""

    class StubEngine:
        def __init__(self):
            self.raw_text = "  Hello    World \n\n\n  second\t line \n\n"
            self.calls = []
            self.error = None

        def __call__(self, image, lang=None, config=None):
            self.calls.append({"image": image, "lang": lang, "config": config})
            if self.error is not None:
                raise self.error
            return self.raw_text

    return StubEngine()
