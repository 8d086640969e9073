import pytest

from errors import InvalidInputError
from processing.transcript_files import is_transcript_file, read_transcript_file


@pytest.mark.parametrize("filename, content_type", [
    ("notes.txt", "text/plain"),
    ("notes.txt", "text/plain; charset=utf-8"),
    ("call.vtt", "text/vtt"),
    ("CALL.VTT", "application/octet-stream"),
    ("call.vtt", None),
])
def test_accepts_text_and_captions(filename, content_type):
    assert is_transcript_file(filename, content_type)


@pytest.mark.parametrize("filename, content_type", [
    ("notes.pdf", "application/pdf"),
    ("notes.md", "text/markdown"),
    ("audio.mp3", "audio/mpeg"),
    ("", None),
])
def test_rejects_other_files(filename, content_type):
    assert not is_transcript_file(filename, content_type)
    with pytest.raises(InvalidInputError):
        read_transcript_file(filename, content_type, b"data")


def test_decodes_utf8_and_strips_bom():
    data = "\ufeffWEBVTT\n\n00:00.000 --> 00:01.000\nHola, qué tal".encode("utf-8")

    text = read_transcript_file("call.vtt", "text/vtt", data)

    assert text.startswith("WEBVTT")
    assert text.endswith("qué tal")
