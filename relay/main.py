from contextlib import asynccontextmanager
import logging
import os
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from socketio import AsyncServer, ASGIApp

from relay import config
from relay.api import roster
from relay.logging_config import setup_logging
from relay.services.avatar import AvatarProvider
from relay.services.message_log import MessageLog
from relay.services.session import SessionController
from relay.services.ws_manager import ConnectionManager

logger = logging.getLogger(__name__)

# Static files are at the project root, not in relay/
static_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "static")


def create_sio() -> AsyncServer:
    """Socket.IO server used as the connection transport."""
    return AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=config.ALLOWED_ORIGINS,
        ping_timeout=config.PING_TIMEOUT,
        ping_interval=config.PING_INTERVAL,
        logger=logging.getLogger("relay.socketio") if config.DEBUG else False,
        engineio_logger=logging.getLogger("relay.engineio") if config.DEBUG else False,
    )


def create_app(
    sio=None,
    avatars: Optional[AvatarProvider] = None,
    history_enabled: bool = config.HISTORY_ENABLED,
) -> FastAPI:
    """Build the HTTP app and the chat session controller it owns."""
    sio = sio if sio is not None else create_sio()
    controller = SessionController(
        ConnectionManager(sio),
        history=MessageLog() if history_enabled else None,
        avatars=avatars or AvatarProvider.from_config(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        controller.start()
        yield
        await controller.stop()

    app = FastAPI(
        title="Chat Relay",
        description="Realtime chat relay with presence tracking",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.sio = sio
    app.state.controller = controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_errors_middleware(request, call_next):
        """Log requests that result in 4xx/5xx responses."""
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(f"Exception handling request {request.method} {request.url}: {exc}")
            raise

        if response.status_code >= 400:
            logger.warning(f"[HTTP {response.status_code}] {request.method} {request.url}")

        return response

    app.include_router(roster.router, tags=["roster"])

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}

    if os.path.exists(static_dir):
        app.mount("/assets", StaticFiles(directory=static_dir), name="assets")

    @app.get("/")
    async def root():
        """Serve the chat client."""
        index_path = os.path.join(static_dir, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path, media_type="text/html")
        return {"message": "Chat Relay - static files not found"}

    return app


def create_socket_app(app: Optional[FastAPI] = None) -> ASGIApp:
    """Wrap the FastAPI app with Socket.IO.

    Also the uvicorn entry point: ``uvicorn relay.main:create_socket_app --factory``.
    """
    setup_logging()
    app = app if app is not None else create_app()
    return ASGIApp(app.state.sio, app)


if __name__ == "__main__":
    import uvicorn

    socket_app = create_socket_app()
    logger.info(f"Server listening on port {config.PORT}")
    uvicorn.run(socket_app, host=config.HOST, port=config.PORT)
