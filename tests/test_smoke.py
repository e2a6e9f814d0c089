import base64

from fastapi.testclient import TestClient

from textfmt.main import app

client = TestClient(app)


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_detect_utf16_with_bom():
    raw = b"\xff\xfe" + "one\ntwo\n".encode("utf-16-le")
    r = client.post("/detect", files={"file": ("wide.txt", raw, "text/plain")})
    assert r.status_code == 200

    data = r.json()
    assert data["format"] == {"encoding": "utf-16", "line_ending": "unix", "has_bom": True}
    assert data["encoding_label"] == "UTF-16 with BOM"
    assert data["line_ending_label"] == "Unix (LF)"
    assert data["bom_length"] == 2
    assert data["size"] == len(raw)
    assert data["line_endings"] == {"crlf": 0, "lf": 2}


def test_convert_to_utf16_with_bom():
    files = {"file": ("notes.txt", b"a\nb\n", "text/plain")}
    form = {"to_encoding": "utf-16", "to_line_ending": "windows", "to_bom": "true"}
    r = client.post("/convert", files=files, data=form)
    assert r.status_code == 200

    data = r.json()
    out = base64.b64decode(data["converted"]["content_b64"])
    assert out == b"\xff\xfe" + "a\r\nb\r\n".encode("utf-16-le")
    assert data["converted"]["size"] == len(out)
    assert data["report"]["source"] == {"encoding": "utf-8", "line_ending": "unix", "has_bom": False}
    assert data["report"]["line_endings"]["changed"] is True


def test_convert_defaults_to_utf8_windows():
    raw = b"\xff\xfe" + "x\ny".encode("utf-16-le")
    r = client.post("/convert", files={"file": ("w.txt", raw, "text/plain")})
    assert r.status_code == 200
    assert base64.b64decode(r.json()["converted"]["content_b64"]) == b"x\r\ny"


def test_convert_invalid_utf8():
    # Latin-1 bytes are not valid UTF-8
    raw = "name,city\nPaul,Montréal\n".encode("latin-1")
    r = client.post("/convert", files={"file": ("latin.txt", raw, "text/plain")})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["error"] == "invalid_encoding"
    assert detail["encoding"] == "utf-8"


def test_convert_oversized(monkeypatch, caplog):
    monkeypatch.setenv("TEXTFMT_MAX_CHARS", "2")
    r = client.post("/convert", files={"file": ("big.txt", b"12345", "text/plain")})
    assert r.status_code == 413
    detail = r.json()["detail"]
    assert detail["size"] == 5
    assert detail["limit"] == 4
    # rejected once, before detection
    assert len([rec for rec in caplog.records if rec.message.startswith("Rejecting")]) == 1


def test_convert_with_source_override():
    # detected as UTF-8, read as UTF-16 code units 0x6261 0x6463
    r = client.post(
        "/convert",
        files={"file": ("w.txt", b"abcd", "text/plain")},
        data={"from_encoding": "utf-16"},
    )
    assert r.status_code == 200
    assert r.json()["report"]["source"]["encoding"] == "utf-16"
    assert base64.b64decode(r.json()["converted"]["content_b64"]) == "\u6261\u6463".encode("utf-8")


def test_save_oversized(monkeypatch):
    monkeypatch.setenv("TEXTFMT_MAX_CHARS", "2")
    r = client.post("/documents/open", files={"file": ("big.txt", b"hello world", "text/plain")})
    assert r.status_code == 413

    r = client.post("/documents/save", json={"text": "hello world", "filename": "big.txt"})
    assert r.status_code == 413
    detail = r.json()["detail"]
    assert detail["error"] == "oversized_input"
    assert detail["size"] == 22
    assert detail["limit"] == 4


def test_save_unencodable_text():
    # a lone surrogate has no UTF-8 form
    r = client.post(
        "/documents/save",
        content=b'{"text": "a\\ud800"}',
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["error"] == "invalid_encoding"
    assert "charset_guess" not in detail


def test_document_lifecycle():
    r = client.post("/documents/new")
    assert r.status_code == 200
    assert r.json()["filename"] == "Empty file"
    assert r.json()["is_new"] is True

    r = client.post("/documents/open", files={"file": ("doc.txt", b"\xef\xbb\xbfhi\nthere", "text/plain")})
    assert r.status_code == 200
    doc = r.json()
    assert doc["text"] == "hi\r\nthere"
    assert doc["status"] == {"line_ending": "Unix (LF)", "encoding": "UTF-8 with BOM"}

    r = client.post("/documents/save", json={"text": doc["text"] + "!", "filename": "doc.txt", "format": doc["format"]})
    assert r.status_code == 200
    saved = r.json()
    assert base64.b64decode(saved["saved"]["content_b64"]) == b"\xef\xbb\xbfhi\nthere!"
    assert saved["document"]["filename"] == "doc.txt"
    assert saved["document"]["is_new"] is False
