"""
Cheap environment inspection that guesses a working capture backend before
the first capture, so a dead backend is not waited on the first time.
"""

import os
import shutil

from .backends import CaptureBackend
from .config import WAYLAND_ENV_VAR, X11_ENV_VAR


def describe_environment(env=None, which=None):
    """
    Report the signals the probe looks at.

    Returns:
        Dictionary of environment markers and executable locations
    """
    env = os.environ if env is None else env
    which = which or shutil.which
    return {
        WAYLAND_ENV_VAR: env.get(WAYLAND_ENV_VAR),
        X11_ENV_VAR: env.get(X11_ENV_VAR),
        "grim": which("grim"),
        "gnome-screenshot": which("gnome-screenshot"),
        "tesseract": which("tesseract"),
    }


def guess_backend(env=None, which=None):
    """
    Pick a likely backend from the session type.

    Returns:
        CaptureBackend or None when nothing can be inferred
    """
    env = os.environ if env is None else env
    which = which or shutil.which

    if WAYLAND_ENV_VAR in env and which("grim"):
        return CaptureBackend.GRIM

    if X11_ENV_VAR in env:
        return CaptureBackend.MSS

    return None


def probe_backend(preference, env=None, which=None):
    """
    Seed ``preference`` with a guessed backend unless it already holds one.

    Never raises; on any inspection error the preference is left unset.

    Args:
        preference: BackendPreference to seed
        env: Mapping of environment variables (defaults to os.environ)
        which: Executable lookup function

    Returns:
        The preferred backend after probing, or None
    """
    current = preference.get()
    if current is not None:
        return current

    try:
        guessed = guess_backend(env, which)
    except Exception as e:
        print(f"⚠️  Capture backend probe failed: {e}")
        return None

    if guessed is not None:
        preference.set(guessed)
    return guessed
