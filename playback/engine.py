import base64
import logging
import threading
from typing import Callable

import numpy as np

import config
from errors import SpeechSynthesisError
from processing.gateway import SPEECH_FAILED
from processing.tasks import spawn as spawn_thread
from recorder.device_guard import AudioDeviceGuard

logger = logging.getLogger(__name__)

IDLE = "idle"
LOADING = "loading"
PLAYING = "playing"

DEVICE_OWNER = "playback"

DECODE_FAILED = "Failed to decode the generated audio. Please try again."
OUTPUT_FAILED = "Could not open the audio output device."


def decode_pcm(payload: str, channels: int = 1) -> np.ndarray:
    """Decodifica PCM 16 bits little-endian en base64 a float32 en [-1.0, 1.0).

    Devuelve un array de forma (frames, channels).
    """
    raw = base64.b64decode(payload, validate=True)
    if len(raw) % (2 * channels):
        raise ValueError(f"PCM truncado: {len(raw)} bytes para {channels} canal(es)")
    samples = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    return samples.reshape(-1, channels)


class SoundDeviceOutput:
    """Reproduce un buffer ya decodificado en la salida de audio por defecto."""

    def __init__(self, samples: np.ndarray, sample_rate: int, channels: int,
                 on_finished: Callable[[], None]):
        import sounddevice as sd

        self._sd = sd
        self._samples = samples
        self._pos = 0
        self._stream = sd.OutputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="float32",
            callback=self._fill,
            finished_callback=on_finished,
        )
        self._stream.start()

    def _fill(self, outdata, frames, time_info, status):
        chunk = self._samples[self._pos:self._pos + frames]
        n = len(chunk)
        outdata[:n] = chunk
        self._pos += n
        if n < frames:
            outdata[n:] = 0
            raise self._sd.CallbackStop

    def stop(self):
        self._stream.abort()
        self._stream.close()

    def close(self):
        self._stream.close()


class SpeechPlayer:
    """Lee texto en voz alta: idle -> loading -> playing -> idle.

    toggle() durante loading se ignora; durante playing detiene al instante.
    """

    def __init__(self, gateway, device_guard: AudioDeviceGuard | None = None,
                 sample_rate: int = None, channels: int = None,
                 output_factory: Callable | None = None,
                 spawn: Callable = spawn_thread):
        self._gateway = gateway
        self._guard = device_guard or AudioDeviceGuard()
        self.sample_rate = sample_rate or config.SPEECH_SAMPLE_RATE
        self.channels = channels or config.SPEECH_CHANNELS
        self._output_factory = output_factory or SoundDeviceOutput
        self._spawn = spawn
        self._lock = threading.Lock()
        self._state = IDLE
        self._error: str | None = None
        self._handle = None
        self._generation = 0
        self._closed = False

    @property
    def state(self) -> str:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    def status(self) -> dict:
        return {"state": self._state, "error": self._error}

    def toggle(self, text: str) -> str:
        with self._lock:
            if self._closed:
                logger.warning("Reproductor cerrado, se ignora la peticion")
                return self._state
            if self._state == LOADING:
                return LOADING
            stopping = self._state == PLAYING
            if stopping:
                handle = self._detach()
            else:
                self._guard.acquire(DEVICE_OWNER)
                self._state = LOADING
                self._error = None
                self._generation += 1
                generation = self._generation

        if stopping:
            if handle is not None:
                handle.stop()
            logger.info("Reproduccion detenida por el usuario")
            return IDLE

        logger.info("Generando voz (%d caracteres)", len(text))
        self._spawn(self._load_and_play, text, generation)
        return LOADING

    def _detach(self):
        # Llamar con self._lock tomado
        handle = self._handle
        self._handle = None
        self._generation += 1
        self._state = IDLE
        self._guard.release(DEVICE_OWNER)
        return handle

    def _load_and_play(self, text: str, generation: int):
        try:
            payload = self._gateway.synthesize_speech(text)
            samples = decode_pcm(payload, self.channels)
        except SpeechSynthesisError as e:
            self._fail(generation, e.message)
            return
        except ValueError as e:
            logger.error("Audio de TTS invalido: %s", e)
            self._fail(generation, DECODE_FAILED)
            return
        except Exception:
            logger.exception("Error inesperado al generar voz")
            self._fail(generation, SPEECH_FAILED)
            return

        with self._lock:
            if generation != self._generation or self._state != LOADING:
                logger.info("Audio generado descartado: la reproduccion fue cancelada")
                return
            try:
                self._handle = self._output_factory(
                    samples, self.sample_rate, self.channels,
                    lambda: self._on_finished(generation),
                )
            except Exception as e:
                logger.error("No se pudo abrir la salida de audio: %s", e)
                self._detach()
                self._error = OUTPUT_FAILED
                return
            self._state = PLAYING
        logger.info("Reproduciendo %.1f s de audio", len(samples) / self.sample_rate)

    def _fail(self, generation: int, message: str):
        with self._lock:
            if generation != self._generation:
                return
            self._detach()
            self._error = message

    def _on_finished(self, generation: int):
        with self._lock:
            if generation != self._generation or self._state != PLAYING:
                return
            handle = self._detach()
        logger.info("Reproduccion finalizada")
        if handle is not None:
            # El callback corre en el hilo de audio; cerrar el stream desde otro hilo
            self._spawn(handle.close)

    def stop(self) -> str:
        """Detiene la reproduccion o descarta la voz en preparacion."""
        with self._lock:
            if self._state == IDLE:
                return IDLE
            handle = self._detach()
        if handle is not None:
            handle.stop()
        logger.info("Reproduccion detenida")
        return IDLE

    def close(self):
        with self._lock:
            self._closed = True
            handle = self._detach()
        if handle is not None:
            handle.stop()
        logger.info("Reproductor cerrado")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
