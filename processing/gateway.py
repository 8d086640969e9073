import base64
import json
import logging

import requests
from pydantic import ValidationError

import config
from errors import SpeechSynthesisError, SummarizationError, TranscriptionError
from processing.models import SummaryResult
from processing.prompts import (
    SUMMARY_RESPONSE_SCHEMA,
    TRANSCRIPTION_PROMPT,
    build_summary_prompt,
)

logger = logging.getLogger(__name__)

SUMMARIZE_FAILED = "Failed to get summary from AI. Please check the transcript and try again."
TRANSCRIBE_FAILED = (
    "Failed to transcribe audio. The file may be too large or in an unsupported "
    "format. Please try again."
)
SPEECH_FAILED = "Failed to generate speech. Please try again."


class GeminiGateway:
    """Cliente de la API de Gemini para resumir, transcribir y sintetizar voz.

    Cada operacion es una sola peticion generateContent, sin reintentos.
    """

    def __init__(self, api_key: str, summary_model: str = None,
                 transcribe_model: str = None, tts_model: str = None,
                 voice: str = None, base_url: str = None,
                 timeout: float = None, http: requests.Session = None):
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY no esta configurada")
        self.api_key = api_key
        self.summary_model = summary_model or config.SUMMARY_MODEL
        self.transcribe_model = transcribe_model or config.TRANSCRIBE_MODEL
        self.tts_model = tts_model or config.TTS_MODEL
        self.voice = voice or config.TTS_VOICE
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self._http = http or requests.Session()

    def summarize(self, transcript: str, title_hint: str = "") -> SummaryResult:
        body = {
            "contents": [{"parts": [{"text": build_summary_prompt(transcript, title_hint)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": SUMMARY_RESPONSE_SCHEMA,
            },
        }
        try:
            response = self._generate(self.summary_model, body)
            result = SummaryResult.model_validate(json.loads(_response_text(response)))
        except (requests.RequestException, ValueError, KeyError, IndexError,
                AttributeError, TypeError, ValidationError) as e:
            logger.error("Error al resumir la transcripcion: %s", e)
            raise SummarizationError(SUMMARIZE_FAILED) from e

        logger.info("Resumen generado: %r (%d tareas)", result.title, len(result.action_items))
        return result

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        body = {
            "contents": [{
                "parts": [
                    {"text": TRANSCRIPTION_PROMPT},
                    {"inlineData": {
                        "mimeType": mime_type,
                        "data": base64.b64encode(audio).decode("ascii"),
                    }},
                ],
            }],
        }
        try:
            response = self._generate(self.transcribe_model, body)
            text = _response_text(response)
        except (requests.RequestException, ValueError, KeyError, IndexError,
                AttributeError, TypeError) as e:
            logger.error("Error al transcribir audio (%s, %d bytes): %s", mime_type, len(audio), e)
            raise TranscriptionError(TRANSCRIBE_FAILED) from e

        logger.info("Transcripcion completada: %d caracteres", len(text))
        return text

    def synthesize_speech(self, text: str) -> str:
        """Devuelve PCM 16 bits mono a 24 kHz codificado en base64."""
        body = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice}},
                },
            },
        }
        try:
            response = self._generate(self.tts_model, body)
        except (requests.RequestException, ValueError) as e:
            logger.error("Error al generar voz: %s", e)
            raise SpeechSynthesisError(SPEECH_FAILED) from e

        audio = _inline_audio(response)
        if not audio:
            logger.error("La respuesta de TTS no contiene audio")
            raise SpeechSynthesisError(SPEECH_FAILED)
        return audio

    def _generate(self, model: str, body: dict) -> dict:
        response = self._http.post(
            f"{self.base_url}/models/{model}:generateContent",
            headers={"x-goog-api-key": self.api_key},
            json=body,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()


def _response_text(response: dict) -> str:
    parts = response["candidates"][0]["content"]["parts"]
    text = "".join(part.get("text", "") for part in parts).strip()
    if not text:
        raise ValueError("respuesta vacia del modelo")
    return text


def _inline_audio(response: dict) -> str | None:
    try:
        parts = response["candidates"][0]["content"]["parts"]
        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data") or {}
            if inline.get("data"):
                return inline["data"]
    except (KeyError, IndexError, TypeError, AttributeError):
        pass
    return None
