"""
CLI interface for screen capture and OCR.
"""

import argparse
import io
import sys
import time
from pathlib import Path

from PIL import Image

from .capture import CaptureOrchestrator
from .codec import png_bytes_to_base64
from .config import DEFAULT_HOST, DEFAULT_PORT
from .errors import ImageDecodeError, ScreenOcrError
from .pipeline import OcrPipeline
from .probe import describe_environment, guess_backend
from .storage import save_ocr_entry, save_screenshot, setup_directories


def capture_once(orchestrator, delay=0.0, quiet=False):
    """
    Capture the screen after an optional delay.

    Returns:
        Tuple of (PNG bytes, stats dict)
    """
    if delay > 0:
        if not quiet:
            print(f"⏳ Waiting {delay}s before capture...")
        time.sleep(delay)

    if not quiet:
        print("📸 Capturing screen...")
    data, stats = orchestrator.capture_with_stats()
    if not quiet:
        print(
            f"✅ Screenshot captured with {stats['backend']} "
            f"({stats['resolution']}) in {stats['capture_time_seconds']}s"
        )
    return data, stats


def run_capture(args, orchestrator):
    data, stats = capture_once(orchestrator, args.delay, quiet=args.base64)

    if args.base64:
        print(png_bytes_to_base64(data))
        return

    if args.output:
        output = Path(args.output)
        try:
            output.write_bytes(data)
        except OSError as e:
            raise ScreenOcrError(f"Could not save screenshot to {output}: {e}") from e
        print(f"💾 Screenshot saved: {output} ({stats['image_size_kb']} KB)")
        return

    _, screenshots_dir = setup_directories(args.logs_dir)
    screenshot_path = save_screenshot(data, screenshots_dir)
    if screenshot_path is None:
        raise ScreenOcrError("Could not save screenshot")
    print(f"💾 Screenshot saved: {screenshot_path} ({stats['image_size_kb']} KB)")


def load_image(path):
    try:
        image = Image.open(path)
        image.load()
    except (OSError, ValueError) as e:
        raise ImageDecodeError(f"Could not decode image {path}: {e}") from e
    return image


def load_image_bytes(data):
    return load_image(io.BytesIO(data))


def run_ocr(args, orchestrator, pipeline):
    stats = {}
    screenshot_path = None

    if args.image:
        image = load_image(args.image)
        screenshot_path = Path(args.image)
    else:
        data, capture_stats = capture_once(orchestrator, args.delay)
        stats.update(capture_stats)
        image = load_image_bytes(data)
        if args.save_images:
            _, screenshots_dir = setup_directories(args.logs_dir)
            screenshot_path = save_screenshot(data, screenshots_dir)

    print("🔍 Running OCR...")
    text, ocr_stats = pipeline.process_image(image)
    stats.update(ocr_stats)
    print(f"✅ OCR completed in {ocr_stats['total_time_seconds']}s")

    if text:
        print("📝 Text:")
        print(text)
    else:
        print("📭 No text recognized")

    if args.save_log:
        logs_dir, _ = setup_directories(args.logs_dir)
        log_file = save_ocr_entry(text, logs_dir, stats, screenshot_path)
        if log_file:
            print(f"✅ Log saved: {log_file}")


def run_probe(args):
    print("🔍 Capture environment")
    print("=" * 60)
    for name, value in describe_environment().items():
        print(f"{name:<20} {value if value is not None else '(not set)'}")
    print("=" * 60)

    guessed = guess_backend()
    if guessed is None:
        print("⚠️  No backend guessed, all backends will be tried in default order")
    else:
        print(f"✅ Preferred backend: {guessed}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="ScreenOCR - Capture the screen and recognize its text"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Capture command
    capture_parser = subparsers.add_parser("capture", help="Capture the full screen")
    capture_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the PNG to this path (default: logs/screenshots/<timestamp>.png)",
    )
    capture_parser.add_argument(
        "--base64",
        action="store_true",
        help="Print the PNG as base64 to stdout instead of saving it",
    )

    # OCR command
    ocr_parser = subparsers.add_parser(
        "ocr", help="Recognize text in an image file or a fresh capture"
    )
    ocr_parser.add_argument(
        "image",
        type=str,
        nargs="?",
        default=None,
        help="Image file to read (default: capture the screen)",
    )
    ocr_parser.add_argument(
        "--save-images",
        action="store_true",
        help="Save the captured screenshot alongside logs",
    )
    ocr_parser.add_argument(
        "--save-log",
        action="store_true",
        help="Save the recognized text as a JSON log entry",
    )

    for subparser in [capture_parser, ocr_parser]:
        subparser.add_argument(
            "--delay",
            type=float,
            default=0.0,
            help="Seconds to wait before capturing (default: 0)",
        )
        subparser.add_argument(
            "--logs-dir",
            type=str,
            default="logs",
            help="Directory for logs and screenshots (default: logs)",
        )
        subparser.add_argument(
            "--verbose",
            action="store_true",
            help="Show each capture attempt and stage timings",
        )

    # Probe command
    subparsers.add_parser("probe", help="Show which capture backend would be tried first")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run API server")
    serve_parser.add_argument(
        "--host",
        type=str,
        default=DEFAULT_HOST,
        help=f"Host to bind to (default: {DEFAULT_HOST})",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port to bind to (default: {DEFAULT_PORT})",
    )

    return parser


def run(argv=None):
    """Main application entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "probe":
        run_probe(args)
        return 0

    if args.command == "serve":
        from .server import run_server

        run_server(host=args.host, port=args.port)
        return 0

    orchestrator = CaptureOrchestrator(verbose=args.verbose)

    try:
        if args.command == "capture":
            run_capture(args, orchestrator)
        else:
            run_ocr(args, orchestrator, OcrPipeline(verbose=args.verbose))
    except ScreenOcrError as e:
        print(f"❌ Error: {e}")
        return 1

    return 0


def main():
    sys.exit(run())
