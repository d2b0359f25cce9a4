# src/timed_dispatch/web/server.py

"""
HTTP status surface for hosted deployments.

The session runs in the same event loop as the web app (started from the lifespan).
Handlers only read SessionState; the session wiring is the only writer.

Endpoints:
  GET /         -> small page that polls /status and shows the pairing code
  GET /status   -> {connection, lastError, authed, hasQr}
  GET /qr.svg   -> pairing code as SVG, 404 when none is pending
  GET /auth     -> {authed}
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable, Optional

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from ..core.ports import CredentialStore
from ..core.state import SessionState
from ..qr import render_svg

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

BotRunner = Callable[[], Awaitable[object]]


class StatusResponse(BaseModel):
    """Connection status as shown by the bundled page."""

    model_config = ConfigDict(populate_by_name=True)

    connection: str = Field(..., description="init | connecting | qr | open | close")
    last_error: Optional[str] = Field(default=None, alias="lastError")
    authed: bool = Field(..., description="Stored credentials exist.")
    has_qr: bool = Field(..., alias="hasQr", description="A pairing code is waiting to be scanned.")


class AuthResponse(BaseModel):
    authed: bool


def create_app(state: SessionState, credentials: CredentialStore, *, bot: BotRunner | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        task: asyncio.Task[object] | None = None
        if bot is not None:
            task = asyncio.create_task(bot())
            logger.info("Session task started.")
        try:
            yield
        finally:
            if task is not None:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task
                logger.info("Session task stopped.")

    app = FastAPI(title="Timed Dispatch", version="1.0.0", lifespan=lifespan)

    @app.get("/", response_class=HTMLResponse)
    def index() -> HTMLResponse:
        return HTMLResponse((STATIC_DIR / "index.html").read_text("utf-8"))

    @app.get("/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        snap = state.snapshot(authed=credentials.exists())
        return StatusResponse(
            connection=snap.connection,
            last_error=snap.last_error,
            authed=snap.authed,
            has_qr=snap.has_qr,
        )

    @app.get("/auth", response_model=AuthResponse)
    def auth() -> AuthResponse:
        return AuthResponse(authed=credentials.exists())

    @app.get("/qr.svg")
    def qr_svg() -> Response:
        code = state.snapshot(authed=credentials.exists()).qr
        if not code:
            return PlainTextResponse("No QR available", status_code=404)
        try:
            svg = render_svg(code)
        except Exception:
            logger.exception("QR render failed.")
            return PlainTextResponse("QR render error", status_code=500)
        return Response(content=svg, media_type="image/svg+xml")

    return app


def main() -> None:
    import uvicorn

    from ..cli.bootstrap import create_runtime, run_session
    from ..config import get_settings
    from ..connectors.registry import TransportConfigError
    from ..logging_setup import level_from_name, setup_logging

    settings = get_settings()
    setup_logging(log_dir=settings.data_dir, console_level=level_from_name(settings.log_level))
    logging.getLogger("nio").setLevel(logging.INFO)

    try:
        runtime = create_runtime(settings=settings)
    except TransportConfigError as e:
        logger.error("%s", e)
        sys.exit(2)
    stop = asyncio.Event()

    async def bot() -> bool:
        return await run_session(runtime, stop)

    app = create_app(runtime.state, runtime.credentials, bot=bot)

    logger.info("Server running on port %d", settings.http_port)
    # log_config=None keeps uvicorn on our root handlers.
    uvicorn.run(app, host=settings.http_host, port=settings.http_port, log_config=None)


if __name__ == "__main__":
    main()
