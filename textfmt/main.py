import base64
import hashlib
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile

from .detect import detect
from .document import DocumentState, new_document, open_document, save_document
from .errors import InvalidEncoding, OversizedInput
from .formats import DEFAULT_SAVE_FORMAT, Encoding, FormatDescriptor, LineEnding
from .logger import configure_logging
from .models import (
    ConvertResponse,
    DetectResponse,
    DocumentResponse,
    HealthResponse,
    SaveRequest,
    SaveResponse,
)
from .normalize import check_size, convert_bytes, count_line_endings, guess_charset

configure_logging()

app = FastAPI(
    title="textfmt",
    description="Encoding and line-ending detection and conversion for a plain-text editor",
    version="0.1.0",
)


def _invalid_encoding(exc: InvalidEncoding, raw: Optional[bytes] = None) -> HTTPException:
    detail = {"error": "invalid_encoding", "message": str(exc), "encoding": exc.encoding}
    # only uploaded bytes get a charset guess
    guess = guess_charset(raw) if raw is not None else None
    if guess:
        detail["charset_guess"] = guess
    return HTTPException(status_code=422, detail=detail)


def _oversized(exc: OversizedInput) -> HTTPException:
    return HTTPException(
        status_code=413,
        detail={"error": "oversized_input", "message": str(exc), "size": exc.size, "limit": exc.limit},
    )


def _document_response(state: DocumentState) -> dict:
    return {
        "filename": state.filename,
        "format": state.format,
        "is_new": state.is_new,
        "status": state.status(),
        "text": state.text,
    }


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/detect", response_model=DetectResponse)
async def detect_format(file: UploadFile = File(...)):
    raw = await file.read()
    try:
        check_size(len(raw))
    except OversizedInput as exc:
        raise _oversized(exc)

    fmt = detect(raw)
    body = raw[fmt.bom.length:]
    if fmt.encoding == Encoding.UTF16:
        text = body[: len(body) - len(body) % 2].decode("utf-16-le", "surrogatepass")
    else:
        text = body.decode("latin-1")
    return {
        "format": fmt,
        "encoding_label": fmt.encoding_label,
        "line_ending_label": fmt.line_ending_label,
        "bom_length": fmt.bom.length,
        "size": len(raw),
        "line_endings": count_line_endings(text),
        "charset_guess": guess_charset(raw),
    }


@app.post("/convert", response_model=ConvertResponse)
async def convert_file(
    file: UploadFile = File(...),
    to_encoding: Encoding = Form(DEFAULT_SAVE_FORMAT.encoding),
    to_line_ending: LineEnding = Form(DEFAULT_SAVE_FORMAT.line_ending),
    to_bom: bool = Form(False),
    from_encoding: Optional[Encoding] = Form(None),
    from_line_ending: Optional[LineEnding] = Form(None),
    from_bom: Optional[bool] = Form(None),
):
    raw = await file.read()
    target = FormatDescriptor(encoding=to_encoding, line_ending=to_line_ending, has_bom=to_bom)
    overrides = {k: v for k, v in
                 (("encoding", from_encoding), ("line_ending", from_line_ending), ("has_bom", from_bom))
                 if v is not None}
    try:
        return convert_bytes(raw, target, overrides=overrides)
    except OversizedInput as exc:
        raise _oversized(exc)
    except InvalidEncoding as exc:
        raise _invalid_encoding(exc, raw)


@app.post("/documents/new", response_model=DocumentResponse)
def create_document():
    return _document_response(new_document())


@app.post("/documents/open", response_model=DocumentResponse)
async def open_file(file: UploadFile = File(...)):
    raw = await file.read()
    try:
        state = open_document(raw, file.filename or "untitled")
    except OversizedInput as exc:
        raise _oversized(exc)
    except InvalidEncoding as exc:
        raise _invalid_encoding(exc, raw)
    return _document_response(state)


@app.post("/documents/save", response_model=SaveResponse)
def save_file(request: SaveRequest):
    state = DocumentState(format=request.format)
    try:
        state.set_text(request.text)
        data = save_document(state, request.filename)
    except OversizedInput as exc:
        raise _oversized(exc)
    except InvalidEncoding as exc:
        raise _invalid_encoding(exc)
    return {
        "saved": {
            "sha256": hashlib.sha256(data).hexdigest(),
            "format": state.format,
            "encoding_label": state.format.encoding_label,
            "line_ending_label": state.format.line_ending_label,
            "size": len(data),
            "content_b64": base64.b64encode(data).decode("ascii"),
        },
        "document": _document_response(state),
    }
