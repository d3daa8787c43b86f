"""
PNG and base64 conversions used at the capture and OCR boundaries.
"""

import base64
import binascii
import io

from PIL import Image

from .errors import ImageDecodeError

DATA_URL_MARKER = ";base64,"


def image_to_png_bytes(image):
    """
    Encode a PIL Image losslessly as PNG.

    Args:
        image: PIL Image object

    Returns:
        PNG file contents as bytes
    """
    buffered = io.BytesIO()
    image.save(buffered, format="PNG")
    return buffered.getvalue()


def png_bytes_to_base64(png_bytes):
    """Base64 text for transporting encoded image bytes."""
    return base64.b64encode(png_bytes).decode("utf-8")


def image_to_base64(image):
    """
    Convert PIL Image to a base64 PNG string.

    Args:
        image: PIL Image object

    Returns:
        Base64 encoded string
    """
    return png_bytes_to_base64(image_to_png_bytes(image))


def decode_base64_image(base64_data):
    """
    Decode base64 text (optionally a ``data:`` URL) into a loaded PIL Image.

    Any format Pillow can read is accepted.

    Raises:
        ImageDecodeError: if the text is not base64 or the bytes are not an image
    """
    if DATA_URL_MARKER in base64_data[:64]:
        base64_data = base64_data.split(DATA_URL_MARKER, 1)[1]

    try:
        raw = base64.b64decode(base64_data.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image data: {e}") from e

    if not raw:
        raise ImageDecodeError("Image data is empty")

    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}") from e

    return image
