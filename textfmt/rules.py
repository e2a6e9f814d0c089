"""
Fixed editor rules and the configurable input limit.

The limit mirrors a stock multi-line edit control: 30000 characters of
UTF-16, i.e. 60000 bytes. TEXTFMT_MAX_CHARS overrides the character count.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)

NEW_FILE_NAME = "Empty file"
CODE_UNIT_SIZE = 2  # bytes per canonical (UTF-16) code unit
DEFAULT_MAX_CHARS = 30000
MAX_CHARS_ENV = "TEXTFMT_MAX_CHARS"


def max_input_chars() -> int:
    raw = os.environ.get(MAX_CHARS_ENV)
    if raw is None:
        return DEFAULT_MAX_CHARS
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        logger.warning(
            "Ignoring %s=%r: expected a positive integer, using %d",
            MAX_CHARS_ENV, raw, DEFAULT_MAX_CHARS,
        )
        return DEFAULT_MAX_CHARS
    return value


def max_input_bytes() -> int:
    return max_input_chars() * CODE_UNIT_SIZE
