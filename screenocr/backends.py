"""
Screen capture backends.

Each backend produces PNG bytes of the primary monitor through one mechanism,
or raises CaptureError. All of them accept an optional ``cancel`` event that
the orchestrator sets once it has given up waiting.
"""

import os
import subprocess
import tempfile
import time
from enum import Enum
from pathlib import Path

import mss
from PIL import Image

from .codec import image_to_png_bytes
from .config import (
    CAPTURE_TIMEOUT_SECONDS,
    DEFAULT_BACKEND_ORDER,
    POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    TEMP_FILE_PREFIX,
)
from .errors import CaptureError


class CaptureBackend(Enum):
    """The closed set of capture mechanisms."""

    GRIM = "grim"
    MSS = "mss"
    GNOME_SCREENSHOT = "gnome-screenshot"

    @property
    def time_boxed(self) -> bool:
        """Whether the orchestrator enforces a deadline on this backend."""
        return self is not CaptureBackend.GNOME_SCREENSHOT

    def __str__(self):
        return self.value


DEFAULT_ORDER = tuple(CaptureBackend(name) for name in DEFAULT_BACKEND_ORDER)


def _cancelled(cancel) -> bool:
    return cancel is not None and cancel.is_set()


def capture_with_grim(cancel=None):
    """
    Capture through the wlroots ``grim`` tool, which writes PNG to stdout.

    The subprocess shares the orchestrator's deadline so it is killed rather
    than left running when the capture is abandoned.
    """
    if _cancelled(cancel):
        raise CaptureError("grim: cancelled", CaptureBackend.GRIM)

    try:
        result = subprocess.run(
            ["grim", "-"],
            capture_output=True,
            timeout=CAPTURE_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired as e:
        raise CaptureError(f"grim: {e}", CaptureBackend.GRIM) from e
    except OSError as e:
        raise CaptureError(f"grim: {e}", CaptureBackend.GRIM) from e

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise CaptureError(f"grim: {stderr}", CaptureBackend.GRIM)

    if not result.stdout:
        raise CaptureError("grim: produced no image data", CaptureBackend.GRIM)

    return result.stdout


def capture_with_mss(cancel=None):
    """Capture the first enumerated monitor with mss and re-encode it as PNG."""
    try:
        with mss.mss() as sct:
            # monitors[0] is the union of all screens
            monitors = sct.monitors[1:]
            if not monitors:
                raise CaptureError("No monitor found", CaptureBackend.MSS)
            shot = sct.grab(monitors[0])
    except CaptureError:
        raise
    except Exception as e:
        raise CaptureError(f"mss: {e}", CaptureBackend.MSS) from e

    if _cancelled(cancel):
        raise CaptureError("mss: cancelled", CaptureBackend.MSS)

    try:
        image = Image.frombytes("RGB", shot.size, shot.rgb)
        return image_to_png_bytes(image)
    except (OSError, ValueError) as e:
        raise CaptureError(f"mss: {e}", CaptureBackend.MSS) from e


def unique_temp_path():
    """A temp file path no concurrent capture will share."""
    filename = f"{TEMP_FILE_PREFIX}_{os.getpid()}_{time.monotonic_ns()}.png"
    return Path(tempfile.gettempdir()) / filename


def capture_with_gnome_screenshot(cancel=None):
    """
    Capture through ``gnome-screenshot -f <file>``.

    The process is polled up to POLL_ATTEMPTS times, POLL_INTERVAL_SECONDS
    apart, then the file is read and removed.
    """
    tmp_file = unique_temp_path()

    try:
        child = subprocess.Popen(
            ["gnome-screenshot", "-f", str(tmp_file)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise CaptureError(
            f"gnome-screenshot: {e}", CaptureBackend.GNOME_SCREENSHOT
        ) from e

    try:
        for _ in range(POLL_ATTEMPTS):
            status = child.poll()
            if status is not None:
                if status != 0:
                    raise CaptureError(
                        "gnome-screenshot failed", CaptureBackend.GNOME_SCREENSHOT
                    )
                break
            if _cancelled(cancel):
                break
            time.sleep(POLL_INTERVAL_SECONDS)

        if child.poll() is None:
            child.kill()
            child.wait()

        try:
            data = tmp_file.read_bytes()
        except OSError as e:
            raise CaptureError(
                f"read file: {e}", CaptureBackend.GNOME_SCREENSHOT
            ) from e

        if not data:
            raise CaptureError(
                "gnome-screenshot produced an empty file",
                CaptureBackend.GNOME_SCREENSHOT,
            )
        return data
    finally:
        tmp_file.unlink(missing_ok=True)


DEFAULT_BACKENDS = {
    CaptureBackend.GRIM: capture_with_grim,
    CaptureBackend.MSS: capture_with_mss,
    CaptureBackend.GNOME_SCREENSHOT: capture_with_gnome_screenshot,
}
