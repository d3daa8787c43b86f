"""
Pixel pipeline that turns a screenshot into a clean binary image for OCR.

Stages, in order:
1. Channel-emphasized grayscale (keeps colored text, e.g. red, readable)
2. 2x Lanczos upscale for small glyphs
3. 3x3 median denoise
4. Otsu binarization
5. Morphological closing with a cross kernel to rejoin broken strokes
"""

import cv2
import numpy as np
from PIL import Image

CHANNEL_NAMES = ("red", "green", "blue")
UPSCALE_FACTOR = 2
MEDIAN_KERNEL_SIZE = 3  # radius 1
CLOSE_KERNEL = cv2.getStructuringElement(cv2.MORPH_CROSS, (3, 3))  # L1 radius 1


def channel_contrast(rgb: np.ndarray) -> np.ndarray:
    """Mean absolute deviation of each RGB channel from its (truncated) mean."""
    pixels = rgb.reshape(-1, 3)
    count = pixels.shape[0]
    mean = (pixels.sum(axis=0, dtype=np.uint64) // count).astype(np.float64)
    return np.abs(pixels.astype(np.float64) - mean).sum(axis=0)


def select_emphasis_channel(rgb: np.ndarray) -> int:
    """
    Index of the channel with the highest contrast.

    On a tie the later channel wins, so a neutral gray image emphasizes blue.
    """
    contrast = channel_contrast(rgb)
    return len(contrast) - 1 - int(np.argmax(contrast[::-1]))


def channel_emphasized_gray(rgb: np.ndarray) -> np.ndarray:
    """
    Grayscale conversion that favors the most contrasting color channel.

    Each pixel becomes ``chosen - 0.5 * (other two)``, then the observed range
    is stretched linearly onto 0-255.

    Args:
        rgb: HxWx3 uint8 array

    Returns:
        HxW uint8 array
    """
    best = select_emphasis_channel(rgb)
    others = [i for i in range(3) if i != best]

    channels = rgb.astype(np.float64)
    values = (
        channels[..., best]
        - 0.5 * channels[..., others[0]]
        - 0.5 * channels[..., others[1]]
    )

    min_v = values.min()
    span = max(values.max() - min_v, 1.0)
    stretched = np.clip((values - min_v) / span * 255.0, 0.0, 255.0)
    return stretched.astype(np.uint8)


def upscale(gray: np.ndarray, factor: int = UPSCALE_FACTOR) -> np.ndarray:
    height, width = gray.shape
    resized = Image.fromarray(gray).resize(
        (width * factor, height * factor), resample=Image.LANCZOS
    )
    return np.array(resized, dtype=np.uint8)


def binarize(gray: np.ndarray) -> np.ndarray:
    """Global Otsu threshold; output is strictly 0 or 255."""
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return binary


def preprocess_for_ocr(image: Image.Image) -> np.ndarray:
    """
    Run the full preprocessing pipeline.

    Args:
        image: PIL Image in any mode

    Returns:
        Binary uint8 array of twice the input's width and height
    """
    rgb = np.array(image.convert("RGB"), dtype=np.uint8)

    enhanced = channel_emphasized_gray(rgb)
    resized = upscale(enhanced)
    denoised = cv2.medianBlur(resized, MEDIAN_KERNEL_SIZE)
    binary = binarize(denoised)
    return cv2.morphologyEx(binary, cv2.MORPH_CLOSE, CLOSE_KERNEL)
