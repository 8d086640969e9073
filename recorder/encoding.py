import io
import logging
import wave

import config

logger = logging.getLogger(__name__)

WAV_MIME_TYPE = "audio/wav"
MP3_MIME_TYPE = "audio/mpeg"


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    """Empaqueta PCM de 16 bits en un contenedor WAV en memoria."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


def wav_to_mp3(wav: bytes) -> bytes:
    """Convierte WAV a MP3 usando pydub/ffmpeg."""
    from pydub import AudioSegment

    audio = AudioSegment.from_wav(io.BytesIO(wav))
    out = io.BytesIO()
    audio.export(out, format="mp3", bitrate="128k")
    return out.getvalue()


def encode_recording(pcm: bytes, sample_rate: int, channels: int,
                     audio_format: str = None) -> tuple[bytes, str]:
    wav = pcm_to_wav(pcm, sample_rate, channels)
    if (audio_format or config.AUDIO_FORMAT) != "mp3":
        return wav, WAV_MIME_TYPE
    try:
        return wav_to_mp3(wav), MP3_MIME_TYPE
    except Exception as e:
        logger.warning("No se pudo convertir a MP3 (%s), se envia WAV", e)
        return wav, WAV_MIME_TYPE
