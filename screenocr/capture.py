"""
Capture orchestration: try backends in priority order, each under a deadline,
and remember the first one that works.
"""

import io
import queue
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image

from .backends import DEFAULT_BACKENDS, DEFAULT_ORDER, CaptureBackend
from .codec import png_bytes_to_base64
from .config import CAPTURE_TIMEOUT_SECONDS, HIDE_DELAY_SECONDS
from .errors import AllBackendsFailedError, CaptureError, CaptureTimeoutError
from .probe import probe_backend


class BackendPreference:
    """The last backend that succeeded, shared by all captures of one orchestrator."""

    def __init__(self, backend: Optional[CaptureBackend] = None):
        self._lock = threading.Lock()
        self._backend = backend

    def get(self) -> Optional[CaptureBackend]:
        with self._lock:
            return self._backend

    def set(self, backend: CaptureBackend):
        with self._lock:
            self._backend = backend

    def clear(self):
        with self._lock:
            self._backend = None


def run_with_deadline(name: str, capture: Callable, timeout: float):
    """
    Run ``capture(cancel)`` on a throwaway thread and wait at most ``timeout``.

    On timeout the cancel event is set and the worker is abandoned; whatever
    it produces later is dropped.

    Raises:
        CaptureTimeoutError: if no result arrived in time
        Exception: whatever the capture itself raised
    """
    handoff = queue.Queue(maxsize=1)
    cancel = threading.Event()

    def worker():
        try:
            handoff.put((capture(cancel), None))
        except Exception as e:
            handoff.put((None, e))

    threading.Thread(target=worker, name=f"capture-{name}", daemon=True).start()

    try:
        data, error = handoff.get(timeout=timeout)
    except queue.Empty:
        cancel.set()
        raise CaptureTimeoutError(f"{name} capture timed out (over {timeout}s)")

    if error is not None:
        raise error
    return data


class CaptureOrchestrator:
    """Falls back across capture backends and learns which one works."""

    def __init__(
        self,
        backends: Optional[Dict[CaptureBackend, Callable]] = None,
        preference: Optional[BackendPreference] = None,
        timeout: float = CAPTURE_TIMEOUT_SECONDS,
        order: Tuple[CaptureBackend, ...] = DEFAULT_ORDER,
        probe: bool = True,
        verbose: bool = False,
    ):
        """
        Args:
            backends: Mapping of backend to capture callable (defaults to the real ones)
            preference: Shared preference cell (a fresh one by default)
            timeout: Deadline in seconds for time-boxed backends
            order: Default priority after the preferred backend
            probe: Whether to guess a preference from the environment before the first capture
            verbose: Print each attempt
        """
        self.backends = dict(DEFAULT_BACKENDS if backends is None else backends)
        self.preference = preference if preference is not None else BackendPreference()
        self.timeout = timeout
        self.order = tuple(order)
        self.verbose = verbose
        self._probed = not probe
        self._probe_lock = threading.Lock()

    def ensure_probed(self):
        """Run the environment probe once per orchestrator."""
        with self._probe_lock:
            if self._probed:
                return
            probe_backend(self.preference)
            self._probed = True

    def candidate_order(self) -> List[CaptureBackend]:
        """Preferred backend first, then the default order without duplicates."""
        order = []
        preferred = self.preference.get()
        if preferred is not None:
            order.append(preferred)
        for backend in self.order:
            if backend not in order:
                order.append(backend)
        return [backend for backend in order if backend in self.backends]

    def _attempt(self, backend: CaptureBackend):
        capture = self.backends[backend]
        if backend.time_boxed:
            return run_with_deadline(backend.value, capture, self.timeout)
        return capture(None)

    def capture_with_stats(self):
        """
        Capture the screen, trying each candidate until one succeeds.

        Returns:
            Tuple of (PNG bytes, stats dict)

        Raises:
            AllBackendsFailedError: carrying the last candidate's message
        """
        self.ensure_probed()
        start_time = time.time()
        attempts = []
        last_error = None

        for backend in self.candidate_order():
            if self.verbose:
                print(f"📸 Trying capture backend: {backend}")
            try:
                data = self._attempt(backend)
                if not data:
                    raise CaptureError(f"{backend}: produced no image data", backend)
            except CaptureError as e:
                last_error = e
            except Exception as e:
                last_error = CaptureError(f"{backend}: {e}", backend)
            else:
                self.preference.set(backend)
                return data, self._stats(backend, data, start_time, attempts)

            attempts.append((backend, last_error))
            if self.verbose:
                print(f"⚠️  {backend} capture failed: {last_error}")

        if last_error is None:
            raise AllBackendsFailedError("No capture backend available")

        raise AllBackendsFailedError(
            str(last_error),
            backend=attempts[-1][0],
            attempts=attempts,
            last_error=last_error,
        ) from last_error

    def capture(self) -> bytes:
        """Capture the screen and return PNG bytes."""
        data, _ = self.capture_with_stats()
        return data

    def _stats(self, backend, data, start_time, attempts):
        stats = {
            "backend": backend.value,
            "capture_time_seconds": round(time.time() - start_time, 3),
            "image_size_bytes": len(data),
            "image_size_kb": round(len(data) / 1024, 2),
            "failed_backends": [failed.value for failed, _ in attempts],
        }
        try:
            with Image.open(io.BytesIO(data)) as image:
                stats["resolution"] = f"{image.size[0]}x{image.size[1]}"
        except (OSError, ValueError):
            stats["resolution"] = "unknown"
        return stats


_default_orchestrator = None
_default_lock = threading.Lock()


def get_default_orchestrator() -> CaptureOrchestrator:
    """The process-wide orchestrator used by the boundary functions."""
    global _default_orchestrator
    with _default_lock:
        if _default_orchestrator is None:
            _default_orchestrator = CaptureOrchestrator()
        return _default_orchestrator


def capture_screen(orchestrator: Optional[CaptureOrchestrator] = None) -> str:
    """
    Capture the full screen.

    Returns:
        Base64 encoded PNG
    """
    orchestrator = orchestrator or get_default_orchestrator()
    return png_bytes_to_base64(orchestrator.capture())


def capture_screen_after_hide(
    hide_window: Optional[Callable[[], None]] = None,
    hide_delay: float = HIDE_DELAY_SECONDS,
    orchestrator: Optional[CaptureOrchestrator] = None,
) -> str:
    """
    Hide the caller's window, wait for the hide to take effect, then capture.

    Args:
        hide_window: Callable that hides the UI window
        hide_delay: Seconds to wait after hiding
        orchestrator: Orchestrator to use (the default one otherwise)

    Returns:
        Base64 encoded PNG
    """
    data, _ = capture_with_stats_after_hide(hide_window, hide_delay, orchestrator)
    return png_bytes_to_base64(data)


def capture_with_stats_after_hide(
    hide_window: Optional[Callable[[], None]] = None,
    hide_delay: float = HIDE_DELAY_SECONDS,
    orchestrator: Optional[CaptureOrchestrator] = None,
):
    """
    Hide, wait, then capture, keeping the capture stats.

    Returns:
        Tuple of (PNG bytes, stats dict)
    """
    orchestrator = orchestrator or get_default_orchestrator()
    if hide_window is not None:
        hide_window()
    if hide_delay > 0:
        time.sleep(hide_delay)
    return orchestrator.capture_with_stats()
