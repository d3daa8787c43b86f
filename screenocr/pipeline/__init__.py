"""
Image-to-text pipeline for captured screenshots.
"""

from .main import OcrPipeline, ocr_image
from .preprocess import channel_emphasized_gray, preprocess_for_ocr
from .text import normalize_text

__all__ = [
    "OcrPipeline",
    "ocr_image",
    "channel_emphasized_gray",
    "preprocess_for_ocr",
    "normalize_text",
]
