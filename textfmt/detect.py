"""
Best-effort format detection for raw file contents.

Rules:
- UTF-16 vs UTF-8 is a heuristic (`looks_like_utf16`), not a validator.
  Short or ASCII-only buffers are inherently ambiguous.
- The BOM is only checked for the encoding the heuristic picked.
- The first bare line feed makes a file Unix; otherwise it is Windows,
  including files with no line feed at all.
- Detection never fails.
"""

from __future__ import annotations

import logging
from typing import Union

from .buffers import BytesLike
from .formats import Encoding, FormatDescriptor, LineEnding, bom_for

logger = logging.getLogger(__name__)

_PRINTABLE = frozenset(range(0x20, 0x7F)) | {0x09, 0x0A, 0x0D}
_ILLEGAL_UNITS = frozenset({0x0000, 0xFFFE, 0xFFFF})
_REVERSED_BOM = b"\xfe\xff"


def _high_bytes_narrow(lows: bytes, highs: bytes) -> bool:
    # Non-Latin UTF-16 text keeps to a few high bytes (one script block)
    # while the low bytes spread out.
    if len(lows) < 4:
        return False
    return len(set(highs)) * 2 < len(set(lows))


def looks_like_utf16(data: BytesLike) -> bool:
    raw = bytes(data)
    if raw.startswith(bom_for(Encoding.UTF16).signature):
        return True
    if len(raw) < 2 or len(raw) % 2 or raw.startswith(_REVERSED_BOM):
        return False

    if b"\x00" not in raw:
        try:
            raw.decode("utf-8")
        except UnicodeDecodeError:
            pass
        else:
            return False

    lows, highs = raw[0::2], raw[1::2]
    ascii_like = reversed_like = 0
    for lo, hi in zip(lows, highs):
        if lo | hi << 8 in _ILLEGAL_UNITS:
            return False
        if hi == 0 and lo in _PRINTABLE:
            ascii_like += 1
        elif lo == 0 and hi in _PRINTABLE:
            reversed_like += 1

    try:
        raw.decode("utf-16-le")
    except UnicodeDecodeError:
        # lone surrogates
        return False

    if reversed_like > ascii_like:
        return False
    if ascii_like * 2 >= len(lows):
        return True
    return _high_bytes_narrow(lows, highs)


def _scan_line_ending(units: Union[str, bytes], lf, cr) -> LineEnding:
    # A line feed in the very first unit has nothing before it to check.
    pos = units.find(lf, 1)
    while pos != -1:
        if units[pos - 1 : pos] != cr:
            return LineEnding.UNIX
        pos = units.find(lf, pos + 1)
    return LineEnding.WINDOWS


def detect(data: BytesLike) -> FormatDescriptor:
    raw = bytes(data)
    encoding = Encoding.UTF16 if looks_like_utf16(raw) else Encoding.UTF8

    bom = bom_for(encoding)
    has_bom = len(raw) >= bom.length and raw.startswith(bom.signature)
    body = raw[bom.length :] if has_bom else raw

    if encoding == Encoding.UTF16:
        even = body[: len(body) - len(body) % 2]
        line_ending = _scan_line_ending(even.decode("utf-16-le", "surrogatepass"), "\n", "\r")
    else:
        line_ending = _scan_line_ending(body, b"\n", b"\r")

    fmt = FormatDescriptor(encoding=encoding, line_ending=line_ending, has_bom=has_bom)
    logger.debug("Detected %s, %s for %d bytes", fmt.encoding_label, fmt.line_ending_label, len(raw))
    return fmt
