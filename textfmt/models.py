from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from .formats import DEFAULT_SAVE_FORMAT, FormatDescriptor


class ConvertedText(BaseModel):
    sha256: str
    format: FormatDescriptor
    encoding_label: str
    line_ending_label: str
    size: int
    content_b64: str


class LineEndingReport(BaseModel):
    before: Dict[str, int] = Field(default_factory=dict)
    after: Dict[str, int] = Field(default_factory=dict)
    changed: bool = False


class ConvertReport(BaseModel):
    source: FormatDescriptor
    target: FormatDescriptor
    line_endings: LineEndingReport
    bytes_before: int
    bytes_after: int


class ConvertResponse(BaseModel):
    converted: ConvertedText
    report: ConvertReport


class DetectResponse(BaseModel):
    format: FormatDescriptor
    encoding_label: str
    line_ending_label: str
    bom_length: int = 0
    size: int
    line_endings: Dict[str, int] = Field(default_factory=dict)
    charset_guess: Optional[str] = Field(default=None, examples=["utf_8"])


class DocumentResponse(BaseModel):
    filename: str
    format: FormatDescriptor
    is_new: bool
    status: Dict[str, str] = Field(default_factory=dict)
    text: str = ""


class SaveRequest(BaseModel):
    text: str = ""
    filename: Optional[str] = None
    format: FormatDescriptor = DEFAULT_SAVE_FORMAT


class SaveResponse(BaseModel):
    saved: ConvertedText
    document: DocumentResponse


class HealthResponse(BaseModel):
    ok: bool = True
