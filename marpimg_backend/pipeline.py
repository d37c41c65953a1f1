from __future__ import annotations

import asyncio
import logging
from typing import Optional

from starlette.datastructures import UploadFile

from .archiver import build_slides_zip
from .config import Settings
from .converter import run_marp
from .normalizer import normalize_output
from .uploads import receive_upload
from .workspace import RequestWorkspace, cleanup_request_workspace, create_request_workspace


logger = logging.getLogger(__name__)


async def convert_deck(
    file: Optional[UploadFile],
    text: Optional[str],
    settings: Settings,
) -> RequestWorkspace:
    """Upload -> convert -> normalize -> archive for one request.

    On success the caller owns the returned workspace, whose archive_path
    holds the finished ZIP, and must clean it up after delivery. On any
    failure the workspace is removed here and the error is re-raised unchanged.
    """
    ws = create_request_workspace(settings)
    try:
        deck = await receive_upload(file, text, settings, ws)
        await run_marp(settings, deck.path, ws.output_dir)
        images = await asyncio.to_thread(normalize_output, ws.output_dir)
        await asyncio.to_thread(build_slides_zip, images, ws.archive_path)
    except BaseException:
        cleanup_request_workspace(ws)
        raise

    logger.info("Request %s: %s -> %d slide images", ws.request_id, deck.filename, len(images))
    return ws
