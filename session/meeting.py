import logging
import threading
from dataclasses import dataclass
from typing import Callable

from errors import BusyError, EmptyInputError, GatewayError, InvalidInputError
from processing.models import SummaryResult
from processing.tasks import spawn as spawn_thread
from processing.transcript_files import read_transcript_file

logger = logging.getLogger(__name__)

TEXT_TAB = "text"
AUDIO_TAB = "audio"
INPUT_TABS = (TEXT_TAB, AUDIO_TAB)

TRANSCRIPTION_FILENAME = "audio_transcription.txt"
EMPTY_TRANSCRIPT = "Transcript is empty. Please upload, paste, or transcribe audio first."
SUMMARY_IN_PROGRESS = "A summary is already being generated."
UNKNOWN_SUMMARY_ERROR = "An unknown error occurred while summarizing."


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Loading:
    previous: SummaryResult | None = None
    name = "summarizing"


@dataclass(frozen=True)
class Failed:
    message: str
    previous: SummaryResult | None = None
    name = "failed"


@dataclass(frozen=True)
class Ready:
    result: SummaryResult
    name = "summarized"


SummaryState = Idle | Loading | Failed | Ready


def _last_result(state: SummaryState) -> SummaryResult | None:
    if isinstance(state, Ready):
        return state.result
    if isinstance(state, (Loading, Failed)):
        return state.previous
    return None


class MeetingSession:
    """Estado de la sesion: transcripcion, titulo, pestana activa y resumen."""

    def __init__(self, gateway, spawn: Callable = spawn_thread):
        self._gateway = gateway
        self._spawn = spawn
        self._lock = threading.Lock()
        self._generation = 0
        self.transcript = ""
        self.filename = ""
        self.title_hint = ""
        self.active_tab = TEXT_TAB
        self.summary: SummaryState = Idle()

    @property
    def has_transcript(self) -> bool:
        return bool(self.transcript.strip())

    @property
    def result(self) -> SummaryResult | None:
        """Resumen listo para mostrar, solo en el estado Ready."""
        summary = self.summary
        return summary.result if isinstance(summary, Ready) else None

    @property
    def is_summarizing(self) -> bool:
        return isinstance(self.summary, Loading)

    def set_transcript(self, text: str):
        with self._lock:
            self.transcript = text

    def set_title_hint(self, title: str):
        with self._lock:
            self.title_hint = title

    def set_active_tab(self, tab: str):
        if tab not in INPUT_TABS:
            raise InvalidInputError(f"Unknown input tab: {tab}")
        with self._lock:
            self.active_tab = tab

    def load_transcript_file(self, filename: str, content_type: str | None, data: bytes):
        text = read_transcript_file(filename, content_type, data)
        with self._lock:
            self._replace_transcript(text, filename)
        logger.info("Transcripcion cargada desde %s (%d caracteres)", filename, len(text))

    def complete_transcription(self, text: str):
        with self._lock:
            self._replace_transcript(text, TRANSCRIPTION_FILENAME)
            self.active_tab = TEXT_TAB
        logger.info("Transcripcion de audio recibida (%d caracteres)", len(text))

    def _replace_transcript(self, text: str, filename: str):
        # Llamar con self._lock tomado
        self.transcript = text
        self.filename = filename
        if isinstance(self.summary, Loading):
            # El resumen en curso corresponde a la transcripcion anterior
            self._generation += 1
        self.summary = Idle()

    def start_summary(self):
        """Valida y lanza el resumen en segundo plano.

        Raises:
            EmptyInputError: la transcripcion esta vacia; no se llama a la API.
            BusyError: ya hay un resumen en curso.
        """
        with self._lock:
            if isinstance(self.summary, Loading):
                raise BusyError(SUMMARY_IN_PROGRESS)
            previous = _last_result(self.summary)
            if not self.transcript.strip():
                self.summary = Failed(EMPTY_TRANSCRIPT, previous)
                raise EmptyInputError(EMPTY_TRANSCRIPT)
            self.summary = Loading(previous)
            self._generation += 1
            generation = self._generation
            transcript, title_hint = self.transcript, self.title_hint

        logger.info("Generando resumen (%d caracteres)", len(transcript))
        self._spawn(self._run_summary, transcript, title_hint, generation)

    def _run_summary(self, transcript: str, title_hint: str, generation: int):
        outcome: SummaryState | None = None
        try:
            outcome = Ready(self._gateway.summarize(transcript, title_hint))
        except GatewayError as e:
            outcome = Failed(e.message)
        except Exception:
            logger.exception("Error inesperado al resumir")
            outcome = Failed(UNKNOWN_SUMMARY_ERROR)
        finally:
            with self._lock:
                if generation == self._generation and isinstance(self.summary, Loading):
                    previous = self.summary.previous
                    if outcome is None:
                        outcome = Failed(UNKNOWN_SUMMARY_ERROR)
                    if isinstance(outcome, Failed):
                        outcome = Failed(outcome.message, previous)
                    self.summary = outcome
                    logger.info("Resumen finalizado: %s", outcome.name)
                else:
                    logger.info("Resumen descartado: la sesion cambio mientras se generaba")

    def clear(self):
        with self._lock:
            self._generation += 1
            self.transcript = ""
            self.filename = ""
            self.title_hint = ""
            self.summary = Idle()
        logger.info("Sesion limpiada")

    def snapshot(self) -> dict:
        with self._lock:
            summary = self.summary
            return {
                "state": summary.name,
                "has_transcript": bool(self.transcript.strip()),
                "transcript": self.transcript,
                "filename": self.filename,
                "title_hint": self.title_hint,
                "active_tab": self.active_tab,
                "error": summary.message if isinstance(summary, Failed) else None,
                "has_result": isinstance(summary, Ready),
            }
