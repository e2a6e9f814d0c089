from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Encoding(str, Enum):
    UTF8 = "utf-8"
    UTF16 = "utf-16"  # always little-endian


class LineEnding(str, Enum):
    UNIX = "unix"
    WINDOWS = "windows"


class BomSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    signature: bytes = Field(default=b"", max_length=4)

    @property
    def length(self) -> int:
        return len(self.signature)


_BOM_SIGNATURES: Dict[Encoding, bytes] = {
    Encoding.UTF16: b"\xff\xfe",
    Encoding.UTF8: b"\xef\xbb\xbf",
}

_ENCODING_LABELS: Dict[Encoding, str] = {
    Encoding.UTF8: "UTF-8",
    Encoding.UTF16: "UTF-16",
}

NO_BOM = BomSpec()


def bom_for(encoding: Optional[Any]) -> BomSpec:
    """Standard byte-order mark for an encoding; empty for anything unmapped."""
    try:
        key = Encoding(encoding)
    except (ValueError, TypeError):
        return NO_BOM
    return BomSpec(signature=_BOM_SIGNATURES[key])


class FormatDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    encoding: Encoding
    line_ending: LineEnding
    has_bom: bool = False

    @property
    def bom(self) -> BomSpec:
        return bom_for(self.encoding) if self.has_bom else NO_BOM

    @property
    def encoding_label(self) -> str:
        label = _ENCODING_LABELS[self.encoding]
        return f"{label} with BOM" if self.has_bom else label

    @property
    def line_ending_label(self) -> str:
        return "Unix (LF)" if self.line_ending == LineEnding.UNIX else "Windows (CRLF)"

    def with_changes(self, **fields: Any) -> "FormatDescriptor":
        return FormatDescriptor(**{**self.model_dump(), **fields})


# What the editing surface always holds.
CANONICAL_FORMAT = FormatDescriptor(
    encoding=Encoding.UTF16, line_ending=LineEnding.WINDOWS, has_bom=False
)

# Used for documents that have never been saved.
DEFAULT_SAVE_FORMAT = FormatDescriptor(
    encoding=Encoding.UTF8, line_ending=LineEnding.WINDOWS, has_bom=False
)
