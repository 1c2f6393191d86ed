"""Encoding detection and handling utilities."""

from typing import Optional

import chardet


def detect_encoding(content: bytes) -> str:
    """Detect the encoding of byte content.

    Args:
        content: Raw bytes content

    Returns:
        Detected encoding name (e.g., 'utf-8', 'cp932', 'euc-jp')
    """
    result = chardet.detect(content)
    encoding = result.get("encoding") or "utf-8"

    # Shift_JIS pages in the wild almost always use Microsoft's extensions
    if encoding.lower() in ("shift_jis", "sjis", "shift-jis"):
        return "cp932"
    if encoding.lower() == "ascii":
        return "utf-8"

    return encoding


def decode_content(content: bytes, encoding: Optional[str] = None) -> str:
    """Decode byte content to string with encoding detection.

    Args:
        content: Raw bytes content
        encoding: Optional explicit encoding, auto-detect if None

    Returns:
        Decoded string content
    """
    if encoding is None:
        encoding = detect_encoding(content)

    try:
        return content.decode(encoding)
    except (UnicodeDecodeError, LookupError):
        pass

    # Fallback chain for Japanese content
    for fallback in ("utf-8", "cp932", "euc-jp"):
        if fallback.lower() != encoding.lower():
            try:
                return content.decode(fallback)
            except (UnicodeDecodeError, LookupError):
                continue

    return content.decode("utf-8", errors="ignore")
