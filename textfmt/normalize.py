"""
Transcoding pipeline between file formats and the canonical editor text.

Every conversion runs three stages over a UTF-16LE intermediate:

A. decode the source (skipping its BOM) to canonical code units
B. rewrite line endings for the destination
C. encode to the destination encoding, writing its BOM and an optional
   terminator

Rules:
- UTF-16 sources are not copied in stage A; the intermediate borrows them.
- A stage that has nothing to rewrite allocates nothing.
- Each intermediate is released as soon as the next one replaces it, and
  all of them are released when a stage fails.
- A Buffer source is released iff take_ownership is set, whatever happens.
- The returned Buffer belongs to the caller.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from charset_normalizer import from_bytes

from .buffers import DEFAULT_ALLOCATOR, Allocator, Buffer, BytesLike
from .detect import detect
from .errors import InvalidEncoding, OversizedInput, TranscodeError
from .formats import Encoding, FormatDescriptor, LineEnding
from .rules import CODE_UNIT_SIZE, max_input_bytes

logger = logging.getLogger(__name__)

_BARE_LF = re.compile(r"(?<!\r)\n")
_EMPTY = memoryview(b"")


@dataclass(frozen=True)
class Conversion:
    buffer: Buffer
    size: int


class _Canonical:
    """UTF-16LE code units of one conversion, either borrowed or owned."""

    __slots__ = ("units", "owner")

    def __init__(self) -> None:
        self.units: memoryview = _EMPTY
        self.owner: Optional[Buffer] = None

    def borrow(self, view: memoryview) -> None:
        self.release()
        self.units = view

    def adopt(self, buf: Buffer) -> None:
        self.release()
        self.owner = buf
        self.units = buf.view

    def text(self, errors: str = "surrogatepass") -> str:
        return bytes(self.units).decode("utf-16-le", errors)

    def release(self) -> None:
        if self.owner is not None:
            self.owner.release()
            self.owner = None
        self.units = _EMPTY


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def check_size(size: int, limit: Optional[int] = None) -> None:
    limit = max_input_bytes() if limit is None else limit
    if size > limit:
        logger.warning("Rejecting %d byte input, limit is %d bytes", size, limit)
        raise OversizedInput(size, limit, CODE_UNIT_SIZE)


def _skip_bom(source: memoryview, fmt: FormatDescriptor) -> memoryview:
    bom = fmt.bom
    if not bom.length:
        return source
    if source[: bom.length] == bom.signature:
        return source[bom.length :]
    logger.warning("Source is marked %s but does not start with its BOM", fmt.encoding_label)
    return source


def _decode(source: memoryview, fmt: FormatDescriptor, canonical: _Canonical, allocator: Allocator) -> None:
    body = _skip_bom(source, fmt)

    if fmt.encoding == Encoding.UTF16:
        if len(body) % CODE_UNIT_SIZE:
            raise InvalidEncoding(
                f"UTF-16 input has an odd number of bytes ({len(body)})", Encoding.UTF16.value
            )
        canonical.borrow(body)
        return

    # the codec is never called with an empty string
    if not len(body):
        canonical.borrow(_EMPTY)
        return

    try:
        text = bytes(body).decode("utf-8")
    except UnicodeDecodeError as exc:
        offset = len(source) - len(body)
        raise InvalidEncoding(
            f"Invalid UTF-8 at byte {exc.start + offset}: {exc.reason}", Encoding.UTF8.value
        ) from exc

    units = text.encode("utf-16-le")
    buf = allocator.allocate(len(units))
    buf.view[:] = units
    canonical.adopt(buf)


def _normalize_line_endings(canonical: _Canonical, line_ending: LineEnding, allocator: Allocator) -> None:
    text = canonical.text()

    if line_ending == LineEnding.WINDOWS:
        count = len(_BARE_LF.findall(text))
        if not count:
            return
        rewritten = _BARE_LF.sub("\r\n", text)
        size = len(canonical.units) + count * CODE_UNIT_SIZE
    else:
        count = text.count("\r\n")
        if not count:
            return
        rewritten = text.replace("\r\n", "\n")
        size = len(canonical.units) - count * CODE_UNIT_SIZE

    logger.debug("Rewriting %d line endings to %s", count, line_ending.value)
    buf = allocator.allocate(size)
    buf.view[:] = rewritten.encode("utf-16-le", "surrogatepass")
    canonical.adopt(buf)


def _encode(canonical: _Canonical, fmt: FormatDescriptor, null_terminate: bool, allocator: Allocator) -> Buffer:
    bom = fmt.bom

    if fmt.encoding == Encoding.UTF16:
        terminator = CODE_UNIT_SIZE if null_terminate else 0
        length = len(canonical.units)
        out = allocator.allocate(bom.length + length + terminator)
        view = out.view
        view[: bom.length] = bom.signature
        view[bom.length : bom.length + length] = canonical.units
        return out

    terminator = 1 if null_terminate else 0

    if not len(canonical.units):
        out = allocator.allocate(bom.length + terminator)
        out.view[: bom.length] = bom.signature
        return out

    try:
        encoded = canonical.text("strict").encode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidEncoding(
            f"Failed to convert the input string: {exc.reason} at unit {exc.start // CODE_UNIT_SIZE}",
            Encoding.UTF16.value,
        ) from exc

    measured = len(encoded)
    out = allocator.allocate(bom.length + measured + terminator)
    view = out.view
    view[: bom.length] = bom.signature
    view[bom.length : bom.length + measured] = encoded
    return out


def convert(
    src: Union[Buffer, BytesLike],
    src_format: FormatDescriptor,
    dst_format: FormatDescriptor,
    null_terminate: bool = False,
    take_ownership: bool = False,
    *,
    limit: Optional[int] = None,
    allocator: Optional[Allocator] = None,
) -> Conversion:
    """
    Convert `src` from `src_format` to `dst_format`.

    Plain bytes are only borrowed; a Buffer is released here when
    `take_ownership` is set, on success and on failure alike. With
    `null_terminate` the result ends in one zero code unit that is counted
    in `size`; without it there is no terminator.

    Raises OversizedInput before anything is allocated, and InvalidEncoding
    when the source cannot be decoded or the result cannot be encoded.
    """
    if allocator is None:
        owned = isinstance(src, Buffer) and src.allocator is not None
        allocator = src.allocator if owned else DEFAULT_ALLOCATOR

    try:
        source = (src.view if isinstance(src, Buffer) else memoryview(src)).cast("B")
        check_size(len(source), limit)

        canonical = _Canonical()
        try:
            _decode(source, src_format, canonical, allocator)
            _normalize_line_endings(canonical, dst_format.line_ending, allocator)
            out = _encode(canonical, dst_format, null_terminate, allocator)
        except TranscodeError as exc:
            logger.warning(
                "Conversion %s -> %s failed: %s", src_format.encoding_label, dst_format.encoding_label, exc
            )
            raise
        finally:
            canonical.release()
    finally:
        if take_ownership and isinstance(src, Buffer) and not src.released:
            src.release()

    logger.debug(
        "Converted %d bytes (%s, %s) to %d bytes (%s, %s)",
        len(source), src_format.encoding_label, src_format.line_ending_label,
        out.size, dst_format.encoding_label, dst_format.line_ending_label,
    )
    return Conversion(buffer=out, size=out.size)


def decode_text(data: BytesLike, fmt: FormatDescriptor) -> str:
    """Text of an already-converted buffer, BOM excluded."""
    body = _skip_bom(memoryview(data).cast("B"), fmt)
    if fmt.encoding == Encoding.UTF16:
        return bytes(body).decode("utf-16-le", "surrogatepass")
    return bytes(body).decode("utf-8")


def count_line_endings(text: str) -> Dict[str, int]:
    return {
        "crlf": text.count("\r\n"),
        "lf": len(_BARE_LF.findall(text)),
    }


def guess_charset(raw: BytesLike) -> Optional[str]:
    """Advisory charset name from charset-normalizer; never used for detection."""
    if not len(raw):
        return None
    match = from_bytes(bytes(raw)).best()
    return match.encoding if match is not None else None


def convert_bytes(
    raw: bytes,
    to_format: FormatDescriptor,
    from_format: Optional[FormatDescriptor] = None,
    limit: Optional[int] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Convert file contents and build the API's response envelope.

    The source format is detected unless given; `overrides` then replaces
    individual fields of it. Oversized input is rejected before detection
    runs.
    """
    check_size(len(raw), limit)
    source_format = from_format or detect(raw)
    if overrides:
        source_format = source_format.with_changes(**overrides)

    result = convert(raw, source_format, to_format, limit=limit)
    with result.buffer as out:
        converted = out.tobytes()

    before = count_line_endings(decode_text(raw, source_format))
    after = count_line_endings(decode_text(converted, to_format))

    return {
        "converted": {
            "sha256": _sha256_hex(converted),
            "format": to_format,
            "encoding_label": to_format.encoding_label,
            "line_ending_label": to_format.line_ending_label,
            "size": result.size,
            "content_b64": base64.b64encode(converted).decode("ascii"),
        },
        "report": {
            "source": source_format,
            "target": to_format,
            "line_endings": {
                "before": before,
                "after": after,
                "changed": before != after,
            },
            "bytes_before": len(raw),
            "bytes_after": result.size,
        },
    }
