from __future__ import annotations

import logging

from fastapi.responses import FileResponse
from starlette.types import Message, Receive, Scope, Send

from .config import ARCHIVE_FILENAME
from .workspace import RequestWorkspace, cleanup_request_workspace


logger = logging.getLogger(__name__)


class CleanupFileResponse(FileResponse):
    """Send the archive, then delete the request's workspace.

    Cleanup runs whether or not the transfer succeeded. A failure after the
    response has started can't change what the client sees, so it is only
    logged; a failure before that still propagates so the server answers 500.
    """

    def __init__(self, workspace: RequestWorkspace, filename: str = ARCHIVE_FILENAME, **kwargs) -> None:
        headers = {"Cache-Control": "no-store", "X-Content-Type-Options": "nosniff"}
        headers.update(kwargs.pop("headers", None) or {})
        super().__init__(
            workspace.archive_path,
            media_type="application/zip",
            filename=filename,
            headers=headers,
            **kwargs,
        )
        self.workspace = workspace

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            await send(message)
            if message["type"] == "http.response.start":
                started = True

        try:
            await super().__call__(scope, receive, tracking_send)
        except Exception:
            if not started:
                raise
            logger.warning("Request %s: download stream failed", self.workspace.request_id, exc_info=True)
        finally:
            cleanup_request_workspace(self.workspace)
