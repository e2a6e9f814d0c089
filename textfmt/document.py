from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .buffers import BytesLike
from .detect import detect
from .formats import CANONICAL_FORMAT, DEFAULT_SAVE_FORMAT, FormatDescriptor
from .normalize import check_size, convert
from .rules import NEW_FILE_NAME

logger = logging.getLogger(__name__)


@dataclass
class DocumentState:
    """
    One open document: what the editing surface holds plus the format it
    is saved in.

    `canonical` is always UTF-16LE with Windows line endings and no BOM.
    Only `change_format` replaces `format`; editing the text keeps it.
    """

    filename: str = NEW_FILE_NAME
    format: FormatDescriptor = DEFAULT_SAVE_FORMAT
    is_new: bool = True
    canonical: bytes = b""

    @property
    def text(self) -> str:
        return self.canonical.decode("utf-16-le", "surrogatepass")

    def set_text(self, text: str) -> None:
        """
        Replace the contents with edited text, canonicalizing line endings.

        Raises OversizedInput when the text does not fit the editing surface.
        """
        units = text.encode("utf-16-le", "surrogatepass")
        result = convert(units, CANONICAL_FORMAT, CANONICAL_FORMAT)
        with result.buffer as out:
            # CR insertion can grow the text past the limit
            check_size(result.size)
            self.canonical = out.tobytes()

    def change_format(self, fmt: FormatDescriptor) -> None:
        logger.info("Format of %s: %s -> %s, %s", self.filename, self.format.encoding_label,
                    fmt.encoding_label, fmt.line_ending_label)
        self.format = fmt

    def status(self) -> Dict[str, str]:
        return {
            "line_ending": self.format.line_ending_label,
            "encoding": self.format.encoding_label,
        }


def new_document() -> DocumentState:
    return DocumentState()


def open_document(data: BytesLike, filename: str, limit: Optional[int] = None) -> DocumentState:
    """
    Load file contents into a new document in the canonical format.

    Raises OversizedInput before detection and InvalidEncoding when the
    contents do not decode in the detected format.
    """
    check_size(len(data), limit)
    fmt = detect(data)
    result = convert(data, fmt, CANONICAL_FORMAT, null_terminate=False, limit=limit)
    with result.buffer as out:
        canonical = out.tobytes()
    logger.info("Opened %s (%d bytes) as %s, %s", filename, len(data), fmt.encoding_label, fmt.line_ending_label)
    return DocumentState(filename=filename, format=fmt, is_new=False, canonical=canonical)


def save_document(state: DocumentState, filename: Optional[str] = None) -> bytes:
    """
    Encode the document in its own format, ready to be written to disk.

    The state adopts `filename` (when given) and stops being new.
    """
    result = convert(state.canonical, CANONICAL_FORMAT, state.format, null_terminate=False)
    with result.buffer as out:
        data = out.tobytes()
    if filename:
        state.filename = filename
    state.is_new = False
    logger.info("Saved %s (%d bytes) as %s, %s", state.filename, len(data),
                state.format.encoding_label, state.format.line_ending_label)
    return data
