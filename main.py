import logging
import socket
import sys
import threading
import webbrowser

import uvicorn

import config
from playback.engine import SpeechPlayer
from processing.gateway import GeminiGateway
from recorder.audio_capture import AudioRecorder
from recorder.device_guard import AudioDeviceGuard
from server.app import create_app
from session.meeting import MeetingSession

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("minutescribe")


def find_available_port(start: int, end: int) -> int:
    for port in range(start, end + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind((config.HOST, port))
                return port
            except OSError:
                continue
    raise RuntimeError(f"No se encontro un puerto disponible entre {start} y {end}")


def build_app(gateway: GeminiGateway):
    guard = AudioDeviceGuard()
    session = MeetingSession(gateway)
    recorder = AudioRecorder(
        gateway,
        on_transcript=session.complete_transcription,
        device_guard=guard,
    )
    player = SpeechPlayer(gateway, device_guard=guard)
    return create_app(session, recorder, player)


def main():
    if not config.GEMINI_API_KEY:
        logger.error("GEMINI_API_KEY no esta configurada (definela en el entorno o en .env)")
        sys.exit(1)

    try:
        port = find_available_port(config.PORT, config.PORT_RANGE_END)
    except RuntimeError as e:
        logger.error(str(e))
        sys.exit(1)

    if port != config.PORT:
        logger.info("Puerto %d en uso, usando %d", config.PORT, port)
    config.PORT = port

    app = build_app(GeminiGateway(config.GEMINI_API_KEY))

    url = f"http://{config.HOST}:{config.PORT}"
    logger.info("MinuteScribe iniciado en %s", url)
    if config.OPEN_BROWSER:
        threading.Timer(1.0, webbrowser.open, args=(url,)).start()

    # uvicorn ejecuta el lifespan de la app, que libera los dispositivos al salir
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level="warning")


if __name__ == "__main__":
    main()
