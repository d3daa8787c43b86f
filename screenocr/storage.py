"""
Optional on-disk record of captures and OCR results.
"""

import json
from datetime import datetime
from pathlib import Path


def setup_directories(base_dir="logs"):
    """Create necessary directories for logs and screenshots"""
    logs_dir = Path(base_dir)
    screenshots_dir = logs_dir / "screenshots"

    logs_dir.mkdir(parents=True, exist_ok=True)
    screenshots_dir.mkdir(exist_ok=True)

    return logs_dir, screenshots_dir


def save_screenshot(png_bytes, screenshots_dir):
    """
    Save captured PNG bytes to disk.

    Args:
        png_bytes: Encoded screenshot
        screenshots_dir: Path to screenshots directory

    Returns:
        Path to saved screenshot or None
    """
    timestamp = datetime.now()
    filename = timestamp.strftime("%Y-%m-%d_%H-%M-%S.png")
    filepath = Path(screenshots_dir) / filename

    try:
        filepath.write_bytes(png_bytes)
        return filepath
    except OSError as e:
        print(f"❌ Error saving screenshot: {e}")
        return None


def save_ocr_entry(text, logs_dir, stats=None, screenshot_path=None):
    """
    Save an OCR result as an individual JSON file.

    Args:
        text: Normalized OCR text
        logs_dir: Path to logs directory
        stats: Dictionary of capture/OCR statistics
        screenshot_path: Path to the saved screenshot or None

    Returns:
        Path to the created log file or None
    """
    timestamp = datetime.now()
    filename = timestamp.strftime("%Y-%m-%d_%H-%M-%S.json")
    filepath = Path(logs_dir) / filename

    log_entry = {
        "timestamp": timestamp.isoformat(),
        "text": text,
        "screenshot_path": str(screenshot_path) if screenshot_path else None,
    }

    if stats:
        log_entry["stats"] = stats

    try:
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(log_entry, f, indent=2, ensure_ascii=False)
    except OSError as e:
        print(f"❌ Error saving log entry: {e}")
        return None

    return filepath
