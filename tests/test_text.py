"""
Tests for OCR text normalization.
"""

import pytest

from screenocr.pipeline.text import normalize_text


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("  hello   world  \n\n\nfoo\n\n", "hello world\n\nfoo"),
        ("\n\n", ""),
        ("a\nb", "a\nb"),
        ("", ""),
        ("\n\n  \nfirst\n", "first"),
        ("tab\tseparated　words", "tab separated words"),
        ("one\n \t \ntwo\n\n\n\nthree", "one\n\ntwo\n\nthree"),
        ("windows\r\nline\r\n", "windows\nline"),
        ("中文  识别\n\nEnglish   text", "中文 识别\n\nEnglish text"),
    ],
)
def test_normalize_text(raw, expected):
    assert normalize_text(raw) == expected


def test_never_starts_or_ends_with_blank_line():
    result = normalize_text("\n\n x \n\n y \n\n\n")

    assert result == "x\n\ny"
    assert not result.startswith("\n")
    assert not result.endswith("\n")
