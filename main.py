#!/usr/bin/env python3
"""
ScreenOCR
Captures the screen through whichever backend works on this desktop and
recognizes its text with Tesseract.
"""

from screenocr.cli import main

if __name__ == "__main__":
    main()
