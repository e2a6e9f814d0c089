from textfmt.detect import detect, looks_like_utf16
from textfmt.formats import Encoding, LineEnding


def test_unix_line_endings():
    fmt = detect(b"a\nb\n")
    assert fmt.encoding == Encoding.UTF8
    assert fmt.line_ending == LineEnding.UNIX
    assert fmt.has_bom is False


def test_windows_line_endings():
    assert detect(b"a\r\nb\r\n").line_ending == LineEnding.WINDOWS


def test_no_line_break_defaults_to_windows():
    assert detect(b"a").line_ending == LineEnding.WINDOWS


def test_empty_input():
    fmt = detect(b"")
    assert fmt.encoding == Encoding.UTF8
    assert fmt.line_ending == LineEnding.WINDOWS
    assert fmt.has_bom is False


def test_first_bare_lf_wins():
    # mixed files are reported as Unix as soon as one bare LF shows up
    assert detect(b"a\r\nb\nc\r\n").line_ending == LineEnding.UNIX


def test_leading_lf_is_not_checked():
    assert detect(b"\nabc").line_ending == LineEnding.WINDOWS
    assert detect(b"\xef\xbb\xbf\nabc").line_ending == LineEnding.WINDOWS
    assert detect(b"\nab\ncd").line_ending == LineEnding.UNIX


def test_utf8_bom():
    fmt = detect(b"\xef\xbb\xbfhi\n")
    assert fmt.encoding == Encoding.UTF8
    assert fmt.has_bom is True
    assert fmt.line_ending == LineEnding.UNIX


def test_utf16_with_bom():
    fmt = detect(b"\xff\xfe" + "hello\r\nworld".encode("utf-16-le"))
    assert fmt.encoding == Encoding.UTF16
    assert fmt.has_bom is True
    assert fmt.line_ending == LineEnding.WINDOWS


def test_utf16_without_bom():
    fmt = detect("hello\nworld".encode("utf-16-le"))
    assert fmt.encoding == Encoding.UTF16
    assert fmt.has_bom is False
    assert fmt.line_ending == LineEnding.UNIX


def test_utf16_non_latin_text():
    fmt = detect("привет мир\r\n".encode("utf-16-le"))
    assert fmt.encoding == Encoding.UTF16
    assert fmt.line_ending == LineEnding.WINDOWS


def test_byte_oriented_input_is_utf8():
    assert not looks_like_utf16(b"abcd")
    assert not looks_like_utf16(b"hello")
    assert not looks_like_utf16("name,city\nPaul,Montréal\n".encode("latin-1"))


def test_big_endian_and_reversed_bom_are_not_utf16():
    assert not looks_like_utf16("hi\n".encode("utf-16-be"))
    fmt = detect(b"\xfe\xff\x00a")
    assert fmt.encoding == Encoding.UTF8
    assert fmt.has_bom is False


def test_illegal_units_are_not_utf16():
    assert not looks_like_utf16(b"a\x00\x00\x00b\x00")
    assert not looks_like_utf16(b"\x00\xd8a\x00")
