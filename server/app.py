import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

import config
from errors import MinuteScribeError
from server.routes import create_router

logger = logging.getLogger(__name__)


def create_app(session, recorder, player, static_dir=None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Liberar microfono y salida de audio al apagar el servidor
        recorder.terminate()
        player.close()

    app = FastAPI(title="MinuteScribe", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(MinuteScribeError)
    async def handle_app_error(request: Request, exc: MinuteScribeError):
        return JSONResponse({"detail": exc.message}, status_code=exc.status_code)

    router = create_router(session, recorder, player)
    app.include_router(router, prefix="/api")

    static_dir = static_dir or config.STATIC_DIR
    if static_dir.exists():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    else:
        logger.warning("No se encontro el directorio estatico %s", static_dir)

    return app
