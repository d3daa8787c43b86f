"""
Tests for capture orchestration: fallback order, preference learning,
deadlines and the boundary capture functions.
"""

import base64
import threading
import time

import pytest

from screenocr.backends import CaptureBackend
from screenocr.capture import (
    BackendPreference,
    CaptureOrchestrator,
    capture_screen,
    capture_screen_after_hide,
    capture_with_stats_after_hide,
    run_with_deadline,
)
from screenocr.errors import AllBackendsFailedError, CaptureError, CaptureTimeoutError

GRIM = CaptureBackend.GRIM
MSS = CaptureBackend.MSS
GNOME = CaptureBackend.GNOME_SCREENSHOT


# ---------------------------------------------------------------------------
# Candidate order and fallback
# ---------------------------------------------------------------------------

class TestFallbackOrder:
    def test_default_order_without_preference(self, scripted, make_orchestrator):
        backends = scripted()
        orchestrator = make_orchestrator(backends)

        assert orchestrator.candidate_order() == [GRIM, MSS, GNOME]

    def test_preferred_backend_goes_first(self, scripted, make_orchestrator):
        backends = scripted()
        orchestrator = make_orchestrator(
            backends, preference=BackendPreference(GNOME)
        )

        assert orchestrator.candidate_order() == [GNOME, GRIM, MSS]

    def test_all_candidates_tried_in_order(self, scripted, make_orchestrator):
        backends = scripted()
        orchestrator = make_orchestrator(backends)

        with pytest.raises(AllBackendsFailedError):
            orchestrator.capture()

        assert backends.calls == [GRIM, MSS, GNOME]

    def test_first_success_stops_fallback(self, scripted, make_orchestrator, png_bytes):
        backends = scripted(mss=png_bytes, gnome_screenshot=png_bytes)
        orchestrator = make_orchestrator(backends)

        assert orchestrator.capture() == png_bytes
        assert backends.calls == [GRIM, MSS]

    def test_last_error_is_reported(self, scripted, make_orchestrator):
        backends = scripted(
            grim=CaptureError("grim: not found", GRIM),
            mss=CaptureError("No monitor found", MSS),
            gnome_screenshot=CaptureError("gnome-screenshot failed", GNOME),
        )
        orchestrator = make_orchestrator(backends)

        with pytest.raises(AllBackendsFailedError) as exc_info:
            orchestrator.capture()

        assert str(exc_info.value) == "gnome-screenshot failed"
        assert exc_info.value.backend is GNOME
        assert [backend for backend, _ in exc_info.value.attempts] == [GRIM, MSS, GNOME]

    def test_last_error_follows_preferred_order(self, scripted, make_orchestrator):
        backends = scripted(mss=CaptureError("No monitor found", MSS))
        orchestrator = make_orchestrator(
            backends, preference=BackendPreference(GNOME)
        )

        with pytest.raises(AllBackendsFailedError) as exc_info:
            orchestrator.capture()

        assert backends.calls == [GNOME, GRIM, MSS]
        assert str(exc_info.value) == "No monitor found"

    def test_unexpected_exception_is_treated_as_failure(
        self, scripted, make_orchestrator, png_bytes
    ):
        backends = scripted(grim=RuntimeError("boom"), mss=png_bytes)
        orchestrator = make_orchestrator(backends)

        assert orchestrator.capture() == png_bytes
        assert backends.calls == [GRIM, MSS]

    def test_no_registered_backends(self):
        orchestrator = CaptureOrchestrator(backends={}, probe=False)

        with pytest.raises(AllBackendsFailedError, match="No capture backend"):
            orchestrator.capture()


# ---------------------------------------------------------------------------
# Preference stickiness and adaptivity
# ---------------------------------------------------------------------------

class TestPreference:
    def test_success_is_remembered(self, scripted, make_orchestrator, png_bytes):
        backends = scripted(mss=png_bytes)
        orchestrator = make_orchestrator(backends)

        orchestrator.capture()
        assert orchestrator.preference.get() is MSS

        backends.calls.clear()
        orchestrator.capture()
        assert backends.calls == [MSS]

    def test_preference_moves_when_environment_changes(
        self, scripted, make_orchestrator, png_bytes
    ):
        backends = scripted(mss=png_bytes)
        orchestrator = make_orchestrator(backends)
        orchestrator.capture()

        backends.outcomes[MSS] = CaptureError("No monitor found", MSS)
        backends.outcomes[GNOME] = png_bytes
        backends.calls.clear()

        orchestrator.capture()

        assert backends.calls == [MSS, GRIM, GNOME]
        assert orchestrator.preference.get() is GNOME

    def test_failure_keeps_previous_preference(self, scripted, make_orchestrator):
        backends = scripted()
        preference = BackendPreference(GRIM)
        orchestrator = make_orchestrator(backends, preference=preference)

        with pytest.raises(AllBackendsFailedError):
            orchestrator.capture()

        assert preference.get() is GRIM

    def test_probe_runs_once(self, scripted, monkeypatch, png_bytes):
        calls = []

        def fake_probe(preference):
            calls.append(preference)
            preference.set(GNOME)
            return GNOME

        monkeypatch.setattr("screenocr.capture.probe_backend", fake_probe)
        backends = scripted(gnome_screenshot=png_bytes)
        orchestrator = CaptureOrchestrator(backends=backends.mapping())

        orchestrator.capture()
        orchestrator.capture()

        assert len(calls) == 1
        assert backends.calls == [GNOME, GNOME]


# ---------------------------------------------------------------------------
# Deadlines
# ---------------------------------------------------------------------------

def never_answers(cancel):
    cancel.wait(10)
    return b"too late"


class TestDeadline:
    def test_run_with_deadline_returns_result(self):
        assert run_with_deadline("fast", lambda cancel: b"data", 1.0) == b"data"

    def test_run_with_deadline_reraises_backend_error(self):
        def failing(cancel):
            raise CaptureError("grim: not found", GRIM)

        with pytest.raises(CaptureError, match="grim: not found"):
            run_with_deadline("grim", failing, 1.0)

    def test_run_with_deadline_times_out_and_cancels(self):
        seen = {}

        def slow(cancel):
            seen["cancel"] = cancel
            return never_answers(cancel)

        with pytest.raises(CaptureTimeoutError, match="slow capture timed out"):
            run_with_deadline("slow", slow, 0.1)

        assert seen["cancel"].is_set()

    def test_hung_backend_is_bounded_by_default_deadline(
        self, scripted, make_orchestrator, png_bytes
    ):
        backends = scripted(grim=never_answers, mss=png_bytes)
        orchestrator = make_orchestrator(backends)

        start = time.monotonic()
        assert orchestrator.capture() == png_bytes
        elapsed = time.monotonic() - start

        assert 1.9 <= elapsed < 3.0
        assert orchestrator.preference.get() is MSS

    def test_timeout_error_reported_when_last(self, scripted, make_orchestrator):
        backends = scripted(grim=never_answers)
        orchestrator = make_orchestrator(
            backends, order=(GNOME, GRIM), timeout=0.1
        )

        with pytest.raises(AllBackendsFailedError, match="grim capture timed out"):
            orchestrator.capture()

    def test_gnome_screenshot_is_not_time_boxed(
        self, scripted, make_orchestrator, png_bytes
    ):
        backends = scripted(gnome_screenshot=png_bytes)
        orchestrator = make_orchestrator(backends, timeout=0.1)

        orchestrator.capture()

        assert backends.cancel_args[GNOME] is None
        assert backends.cancel_args[GRIM] is not None
        assert backends.cancel_args[MSS] is not None


# ---------------------------------------------------------------------------
# Boundary functions
# ---------------------------------------------------------------------------

class TestBoundary:
    def test_capture_with_stats(self, scripted, make_orchestrator, png_bytes):
        backends = scripted(mss=png_bytes)
        orchestrator = make_orchestrator(backends)

        data, stats = orchestrator.capture_with_stats()

        assert data == png_bytes
        assert stats["backend"] == "mss"
        assert stats["resolution"] == "64x32"
        assert stats["failed_backends"] == ["grim"]
        assert stats["image_size_bytes"] == len(png_bytes)

    def test_capture_screen_returns_base64(self, scripted, make_orchestrator, png_bytes):
        orchestrator = make_orchestrator(scripted(grim=png_bytes))

        encoded = capture_screen(orchestrator)

        assert base64.b64decode(encoded) == png_bytes

    def test_capture_after_hide_hides_first(self, scripted, make_orchestrator, png_bytes):
        events = []

        def capture(cancel):
            events.append("capture")
            return png_bytes

        orchestrator = make_orchestrator(scripted(grim=capture))

        encoded = capture_screen_after_hide(
            hide_window=lambda: events.append("hide"),
            hide_delay=0.01,
            orchestrator=orchestrator,
        )

        assert events == ["hide", "capture"]
        assert base64.b64decode(encoded) == png_bytes

    def test_capture_after_hide_waits(self, scripted, make_orchestrator, png_bytes):
        orchestrator = make_orchestrator(scripted(grim=png_bytes))

        start = time.monotonic()
        capture_screen_after_hide(hide_delay=0.2, orchestrator=orchestrator)

        assert time.monotonic() - start >= 0.2


def test_empty_image_counts_as_failure(scripted, make_orchestrator, png_bytes):
    backends = scripted(grim=b"", mss=png_bytes)
    orchestrator = make_orchestrator(backends)

    assert orchestrator.capture() == png_bytes
    assert orchestrator.preference.get() is MSS


def test_last_error_is_kept_as_cause(scripted, make_orchestrator):
    backends = scripted(grim=never_answers)
    orchestrator = make_orchestrator(backends, order=(GNOME, GRIM), timeout=0.1)

    with pytest.raises(AllBackendsFailedError) as exc_info:
        orchestrator.capture()

    error = exc_info.value
    assert isinstance(error.last_error, CaptureTimeoutError)
    assert error.__cause__ is error.last_error
    assert [type(e) for _, e in error.attempts] == [CaptureError, CaptureTimeoutError]
    assert str(error.attempts[0][1]) == "gnome-screenshot unavailable"


def test_concurrent_captures_wait_for_probe(scripted, monkeypatch, png_bytes):
    probe_started = threading.Event()
    release_probe = threading.Event()

    def slow_probe(preference):
        probe_started.set()
        release_probe.wait(5)
        preference.set(GNOME)
        return GNOME

    monkeypatch.setattr("screenocr.capture.probe_backend", slow_probe)
    backends = scripted(grim=png_bytes, gnome_screenshot=png_bytes)
    orchestrator = CaptureOrchestrator(backends=backends.mapping())

    first = threading.Thread(target=orchestrator.capture)
    first.start()
    assert probe_started.wait(5)

    second = threading.Thread(target=orchestrator.capture)
    second.start()
    second.join(0.2)
    assert second.is_alive()

    release_probe.set()
    first.join(5)
    second.join(5)

    assert backends.calls == [GNOME, GNOME]


def test_capture_with_stats_after_hide(scripted, make_orchestrator, png_bytes):
    events = []

    def capture(cancel):
        events.append("capture")
        return png_bytes

    orchestrator = make_orchestrator(scripted(mss=capture))

    data, stats = capture_with_stats_after_hide(
        hide_window=lambda: events.append("hide"),
        hide_delay=0,
        orchestrator=orchestrator,
    )

    assert events == ["hide", "capture"]
    assert data == png_bytes
    assert stats["backend"] == "mss"
