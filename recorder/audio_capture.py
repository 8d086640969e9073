import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

import config
from errors import (
    BusyError,
    GatewayError,
    InvalidInputError,
    MicrophonePermissionError,
)
from processing.gateway import TRANSCRIBE_FAILED
from processing.tasks import spawn as spawn_thread
from recorder.device_guard import AudioDeviceGuard
from recorder.encoding import encode_recording

logger = logging.getLogger(__name__)

IDLE = "idle"
RECORDING = "recording"
TRANSCRIBING = "transcribing"

DEVICE_OWNER = "recording"

MIC_UNAVAILABLE = "Could not access microphone. Please ensure permission is granted."
INVALID_AUDIO_FILE = "Please upload a valid audio file."
AUDIO_TOO_LARGE = "The audio is too large to transcribe."
NO_AUDIO_CAPTURED = "No audio was captured. Please try recording again."


@dataclass(frozen=True)
class AudioClip:
    data: bytes
    mime_type: str
    source: str


def format_elapsed(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class AudioRecorder:
    """Graba el microfono y entrega el audio al servicio de transcripcion.

    Estados: idle -> recording -> transcribing -> idle. Un archivo de audio
    subido entra directamente en transcribing.
    """

    def __init__(self, gateway, on_transcript: Callable[[str], None],
                 device_guard: AudioDeviceGuard | None = None,
                 sample_rate: int = None, channels: int = None,
                 device_index: int | None = None, audio_format: str = None,
                 max_bytes: int = None, stream_factory: Callable | None = None,
                 spawn: Callable = spawn_thread):
        self._gateway = gateway
        self._on_transcript = on_transcript
        self._guard = device_guard or AudioDeviceGuard()
        self.sample_rate = sample_rate or config.SAMPLE_RATE
        self.channels = channels or config.CHANNELS
        self.device_index = device_index if device_index is not None else config.MIC_DEVICE_INDEX
        self.audio_format = audio_format or config.AUDIO_FORMAT
        self.max_bytes = max_bytes or config.MAX_AUDIO_BYTES
        self._stream_factory = stream_factory
        self._spawn = spawn
        self._lock = threading.Lock()
        self._state = IDLE
        self._error: str | None = None
        self._stream = None
        self._chunks: list[bytes] = []
        self._started_at: float | None = None
        self._generation = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    def is_recording(self) -> bool:
        return self._state == RECORDING

    @property
    def elapsed_secs(self) -> int:
        started = self._started_at
        if started is None:
            return 0
        return int(time.monotonic() - started)

    def status(self) -> dict:
        elapsed = self.elapsed_secs
        return {
            "state": self._state,
            "elapsed_secs": elapsed,
            "elapsed": format_elapsed(elapsed),
            "error": self._error,
        }

    def list_devices(self) -> list[dict]:
        import sounddevice as sd

        devices = []
        for index, info in enumerate(sd.query_devices()):
            if info["max_input_channels"] <= 0:
                continue
            devices.append({
                "index": index,
                "name": info["name"],
                "maxInputChannels": info["max_input_channels"],
                "defaultSampleRate": info["default_samplerate"],
            })
        return devices

    def _open_stream(self, callback):
        kwargs = dict(
            samplerate=self.sample_rate,
            channels=self.channels,
            dtype="int16",
            device=self.device_index,
            callback=callback,
        )
        if self._stream_factory is not None:
            return self._stream_factory(**kwargs)

        import sounddevice as sd

        return sd.InputStream(**kwargs)

    def start(self):
        with self._lock:
            if self._state != IDLE:
                raise BusyError(f"Cannot start recording while {self._state}.")
            self._guard.acquire(DEVICE_OWNER)

            chunks: list[bytes] = []

            def on_audio(indata, frames, time_info, status):
                if status:
                    logger.debug("Estado del stream de entrada: %s", status)
                chunks.append(bytes(indata))

            stream = None
            try:
                stream = self._open_stream(on_audio)
                stream.start()
            except Exception as e:
                logger.error("No se pudo abrir el microfono: %s", e)
                if stream is not None:
                    try:
                        stream.close()
                    except Exception as close_error:
                        logger.warning("Error cerrando el stream de entrada: %s", close_error)
                self._guard.release(DEVICE_OWNER)
                self._error = MIC_UNAVAILABLE
                raise MicrophonePermissionError(MIC_UNAVAILABLE) from e

            self._stream = stream
            self._chunks = chunks
            self._started_at = time.monotonic()
            self._state = RECORDING
            self._error = None
            self._generation += 1
        logger.info("Grabacion iniciada (%d Hz, %d canal(es))", self.sample_rate, self.channels)

    def _release_stream(self) -> list[bytes]:
        # Llamar con self._lock tomado
        stream, chunks = self._stream, self._chunks
        self._stream = None
        self._chunks = []
        self._started_at = None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:
                logger.warning("Error cerrando el stream de entrada: %s", e)
        self._guard.release(DEVICE_OWNER)
        return chunks

    def stop(self) -> AudioClip | None:
        """Detiene la grabacion y lanza la transcripcion. Sin efecto si no se graba."""
        with self._lock:
            if self._state != RECORDING:
                return None
            duration = self.elapsed_secs
            chunks = self._release_stream()
            self._state = TRANSCRIBING
            generation = self._generation

        logger.info("Grabacion detenida tras %d s (%d bloques)", duration, len(chunks))
        pcm = b"".join(chunks)
        if not pcm:
            self._fail(generation, NO_AUDIO_CAPTURED)
            return None

        data, mime_type = encode_recording(pcm, self.sample_rate, self.channels, self.audio_format)
        if len(data) > self.max_bytes:
            self._fail(generation, AUDIO_TOO_LARGE)
            return None

        clip = AudioClip(data=data, mime_type=mime_type, source="recording")
        self._spawn(self._transcribe, clip, generation)
        return clip

    def accept_file(self, filename: str, content_type: str | None, data: bytes) -> AudioClip:
        mime_type = (content_type or "").split(";")[0].strip().lower()
        problem = None
        if not mime_type.startswith("audio/"):
            problem = INVALID_AUDIO_FILE
        elif len(data) > self.max_bytes:
            problem = AUDIO_TOO_LARGE

        with self._lock:
            if problem is not None:
                # No pisar el error de una grabacion o transcripcion en curso
                if self._state == IDLE:
                    self._error = problem
                raise InvalidInputError(problem)
            if self._state != IDLE:
                raise BusyError(f"Cannot process an audio file while {self._state}.")
            self._state = TRANSCRIBING
            self._error = None
            self._generation += 1
            generation = self._generation

        logger.info("Archivo de audio recibido: %s (%s, %d bytes)", filename, mime_type, len(data))
        clip = AudioClip(data=data, mime_type=mime_type, source=filename)
        self._spawn(self._transcribe, clip, generation)
        return clip

    def _fail(self, generation: int, message: str):
        with self._lock:
            if generation == self._generation:
                self._state = IDLE
                self._error = message
        logger.error(message)

    def _transcribe(self, clip: AudioClip, generation: int):
        text = None
        current = False
        try:
            text = self._gateway.transcribe(clip.data, clip.mime_type)
        except GatewayError as e:
            with self._lock:
                if generation == self._generation:
                    self._error = e.message
        except Exception:
            logger.exception("Error inesperado al transcribir")
            with self._lock:
                if generation == self._generation:
                    self._error = TRANSCRIBE_FAILED
        finally:
            with self._lock:
                current = generation == self._generation and self._state == TRANSCRIBING
                if current:
                    self._state = IDLE

        if text is None:
            return
        if not current:
            logger.info("Transcripcion descartada: la sesion de audio fue cancelada")
            return
        self._on_transcript(text)

    def cancel(self):
        """Libera el microfono y descarta el audio y cualquier transcripcion pendiente."""
        with self._lock:
            was = self._state
            self._generation += 1
            self._state = IDLE
            if self._stream is not None:
                self._release_stream()
        if was != IDLE:
            logger.info("Sesion de audio cancelada (estado previo: %s)", was)

    def terminate(self):
        self.cancel()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.terminate()
