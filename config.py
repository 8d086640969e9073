import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str) -> int | None:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


# Rutas
BASE_DIR = Path(__file__).parent
STATIC_DIR = BASE_DIR / "static"

# Servidor
HOST = "127.0.0.1"
PORT = 8787
PORT_RANGE_END = 8800
OPEN_BROWSER = _env_flag("MINUTESCRIBE_OPEN_BROWSER", True)
LOG_LEVEL = os.getenv("MINUTESCRIBE_LOG_LEVEL", "INFO").upper()

# Grabacion
SAMPLE_RATE = 16000
CHANNELS = 1
AUDIO_FORMAT = os.getenv("MINUTESCRIBE_AUDIO_FORMAT", "mp3")
MIC_DEVICE_INDEX = _env_int("MINUTESCRIBE_MIC_DEVICE")  # None = autodetectar
MAX_AUDIO_BYTES = 20 * 1024 * 1024

# Reproduccion de voz (PCM mono 24 kHz del TTS)
SPEECH_SAMPLE_RATE = 24000
SPEECH_CHANNELS = 1

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
SUMMARY_MODEL = os.getenv("MINUTESCRIBE_SUMMARY_MODEL", "gemini-2.5-flash")
TRANSCRIBE_MODEL = os.getenv("MINUTESCRIBE_TRANSCRIBE_MODEL", "gemini-2.5-pro")
TTS_MODEL = os.getenv("MINUTESCRIBE_TTS_MODEL", "gemini-2.5-flash-preview-tts")
TTS_VOICE = os.getenv("MINUTESCRIBE_TTS_VOICE", "Kore")
REQUEST_TIMEOUT = float(os.getenv("MINUTESCRIBE_REQUEST_TIMEOUT", "300"))
