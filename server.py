from __future__ import annotations

import asyncio
import dataclasses
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from marpimg_backend import __version__
from marpimg_backend.config import Settings, load_settings
from marpimg_backend.converter import resolve_browser_path
from marpimg_backend.delivery import CleanupFileResponse
from marpimg_backend.errors import PipelineError
from marpimg_backend.pipeline import convert_deck
from marpimg_backend.uploads import form_payload, read_convert_form
from marpimg_backend.workspace import ensure_work_roots, sweep_stale_entries


logger = logging.getLogger("marpimg_backend.server")


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str


async def _cleanup_worker(app: FastAPI) -> None:
    # Periodically remove work-area leftovers of crashed requests.
    settings: Settings = app.state.settings
    while True:
        await asyncio.sleep(max(30, settings.cleanup_interval_seconds))
        try:
            sweep_stale_entries(settings)
        except OSError:
            logger.warning("Work-area sweep failed", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    ensure_work_roots(settings)
    sweep_stale_entries(settings)

    # Settings stay immutable; the resolved browser goes into a fresh copy
    # before the first request is accepted.
    browser_path = await resolve_browser_path(settings)
    if browser_path != settings.browser_path:
        app.state.settings = dataclasses.replace(settings, browser_path=browser_path)

    logger.info(
        "Work area: %s (%s)",
        settings.work_root,
        "ephemeral" if settings.ephemeral_storage else "persistent",
    )

    task = asyncio.create_task(_cleanup_worker(app))
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    app = FastAPI(title="Marp to Images", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _no_cache_static_assets(request: Request, call_next):
        response = await call_next(request)
        path = (request.url.path or "").lower()
        if path == "/" or path.endswith((".css", ".js", ".html")):
            response.headers["Cache-Control"] = "no-store"
        return response

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
        )

    @app.post("/convert")
    async def convert(request: Request) -> CleanupFileResponse:
        """Convert a Marp deck into presentation.zip with one PNG per slide.

        Reads the multipart field `marp-file` (or pasted text in `marp-text`).
        """
        settings: Settings = request.app.state.settings
        try:
            form = await read_convert_form(request, settings)
            try:
                file, text = form_payload(form)
                ws = await convert_deck(file, text, settings)
            finally:
                await form.close()
        except PipelineError as e:
            logger.info("Convert rejected (%s): %s", e.status_code, e.detail)
            raise HTTPException(status_code=e.status_code, detail=e.detail)
        return CleanupFileResponse(ws)

    # Define API routes above, then mount static at '/'.
    app.mount("/", StaticFiles(directory=str(settings.static_root), html=True), name="static")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = app.state.settings
    logging.basicConfig(
        level=_settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("server:app", host=_settings.host, port=_settings.port, reload=False)
