from errors import InvalidInputError

TEXT_MIME_TYPE = "text/plain"
CAPTION_SUFFIX = ".vtt"
INVALID_TRANSCRIPT_FILE = "Please upload a valid .txt or .vtt file."


def is_transcript_file(filename: str, content_type: str | None) -> bool:
    mime = (content_type or "").split(";")[0].strip().lower()
    return mime == TEXT_MIME_TYPE or (filename or "").lower().endswith(CAPTION_SUFFIX)


def read_transcript_file(filename: str, content_type: str | None, data: bytes) -> str:
    """Valida y decodifica un archivo de transcripcion (.txt o .vtt).

    El contenido se conserva tal cual; el prompt ya pide ignorar marcas de tiempo.
    """
    if not is_transcript_file(filename, content_type):
        raise InvalidInputError(INVALID_TRANSCRIPT_FILE)
    text = data.decode("utf-8", errors="replace")
    return text.lstrip("\ufeff")
