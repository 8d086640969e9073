import logging
from urllib.parse import quote

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from playback.engine import IDLE, SpeechPlayer
from processing.renderer import (
    ALL_PRIORITIES,
    export_filename,
    notification_text,
    render_markdown,
    render_view,
    speech_text,
)
from recorder.audio_capture import AudioRecorder
from session.meeting import MeetingSession

logger = logging.getLogger(__name__)


class TranscriptRequest(BaseModel):
    text: str


class TitleRequest(BaseModel):
    title: str


class TabRequest(BaseModel):
    tab: str


class SpeechRequest(BaseModel):
    text: str | None = None


def create_router(session: MeetingSession, recorder: AudioRecorder,
                  player: SpeechPlayer) -> APIRouter:
    router = APIRouter()

    def _require_result():
        result = session.result
        if result is None:
            raise HTTPException(404, "No hay resumen disponible")
        return result

    # -- Status --

    @router.get("/status")
    def get_status():
        return {
            "session": session.snapshot(),
            "recording": recorder.status(),
            "playback": player.status(),
        }

    # -- Devices --

    @router.get("/devices")
    def list_devices():
        try:
            return {"input": recorder.list_devices()}
        except Exception as e:
            logger.error("No se pudieron listar los dispositivos: %s", e)
            raise HTTPException(503, "Dispositivos de audio no disponibles")

    # -- Recording control --

    @router.post("/recording/start")
    def start_recording():
        recorder.start()
        return recorder.status()

    @router.post("/recording/stop")
    def stop_recording():
        clip = recorder.stop()
        status = recorder.status()
        if clip is not None:
            status["mime_type"] = clip.mime_type
            status["bytes"] = len(clip.data)
        return status

    @router.post("/recording/cancel")
    def cancel_recording():
        recorder.cancel()
        return recorder.status()

    @router.post("/audio/upload")
    async def upload_audio(file: UploadFile = File(...)):
        data = await file.read()
        clip = recorder.accept_file(file.filename or "audio", file.content_type, data)
        return {**recorder.status(), "mime_type": clip.mime_type, "bytes": len(clip.data)}

    # -- Transcript input --

    @router.put("/transcript")
    def update_transcript(body: TranscriptRequest):
        session.set_transcript(body.text)
        return session.snapshot()

    @router.post("/transcript/upload")
    async def upload_transcript(file: UploadFile = File(...)):
        data = await file.read()
        session.load_transcript_file(file.filename or "", file.content_type, data)
        return session.snapshot()

    @router.put("/title")
    def update_title(body: TitleRequest):
        session.set_title_hint(body.title)
        return session.snapshot()

    @router.put("/tab")
    def update_tab(body: TabRequest):
        session.set_active_tab(body.tab)
        return session.snapshot()

    @router.delete("/session")
    def clear_session():
        session.clear()
        player.stop()
        return session.snapshot()

    # -- Summary --

    @router.post("/summarize")
    def summarize():
        session.start_summary()
        return session.snapshot()

    @router.get("/summary")
    def get_summary(priority: str = ALL_PRIORITIES):
        return render_view(_require_result(), priority)

    @router.get("/summary/export")
    def export_summary():
        result = _require_result()
        return Response(
            render_markdown(result),
            media_type="text/markdown; charset=utf-8",
            headers={
                "Content-Disposition": (
                    f"attachment; filename*=UTF-8''{quote(export_filename(result.title))}"
                ),
            },
        )

    @router.get("/summary/action-items/{index}/notification")
    def get_notification(index: int):
        result = _require_result()
        if not 0 <= index < len(result.action_items):
            raise HTTPException(404, "Tarea no encontrada")
        return {"text": notification_text(result.action_items[index])}

    # -- Speech --

    @router.post("/speech/toggle")
    def toggle_speech(body: SpeechRequest = SpeechRequest()):
        text = body.text
        if player.state != IDLE:
            # Detener no depende de que siga existiendo un resumen
            player.toggle(text or "")
            return player.status()
        if not text:
            text = speech_text(_require_result())
        player.toggle(text)
        return player.status()

    return router
