from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import Request
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import FILE_FIELD, PASTED_FILENAME, TEXT_FIELD, Settings
from .errors import (
    EmptyUploadError,
    InvalidFileTypeError,
    MissingFileError,
    PayloadTooLargeError,
    UploadValidationError,
)
from .workspace import RequestWorkspace


logger = logging.getLogger(__name__)

# Starlette's message when a multipart text field is over max_part_size.
_PART_TOO_LARGE = "exceeded maximum size"


@dataclass(frozen=True)
class UploadedDeck:
    filename: str
    content_type: str
    size: int
    path: Path


async def read_convert_form(request: Request, settings: Settings) -> FormData:
    """Parse the request body with the upload limit applied to text fields too.

    Without the explicit max_part_size Starlette caps text fields at 1MB and
    answers 400 on its own. The caller must close() the returned form.
    """
    try:
        return await request.form(max_part_size=settings.max_upload_bytes + 1)
    except StarletteHTTPException as exc:
        if _PART_TOO_LARGE in str(exc.detail):
            raise PayloadTooLargeError() from exc
        raise UploadValidationError(str(exc.detail)) from exc


def form_payload(form: FormData) -> tuple[Optional[UploadFile], Optional[str]]:
    """Pick the deck file and pasted text out of the form.

    A marp-file field sent as a plain value is ignored, so it ends up as a
    missing file rather than a request validation error.
    """
    file = form.get(FILE_FIELD)
    text = form.get(TEXT_FIELD)
    return (
        file if isinstance(file, UploadFile) else None,
        text if isinstance(text, str) else None,
    )


def _media_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def is_allowed_upload(filename: str, content_type: Optional[str], settings: Settings) -> bool:
    """Accept a known Markdown extension or a known text media type."""
    ext = Path(filename or "").suffix.lower()
    if ext and ext in settings.allowed_extensions:
        return True
    return _media_type(content_type) in settings.allowed_content_types


async def _read_limited(file: UploadFile, limit: int) -> bytes:
    # Cheap rejection when the multipart parser already knows the size.
    if file.size is not None and file.size > limit:
        raise PayloadTooLargeError()
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise PayloadTooLargeError()
    return data


def _store(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def receive_upload(
    file: Optional[UploadFile],
    text: Optional[str],
    settings: Settings,
    ws: RequestWorkspace,
) -> UploadedDeck:
    """Validate the submitted deck and store it at ws.upload_path.

    A real file wins over pasted text. Validation happens before anything is
    written, so rejected uploads leave nothing on disk.
    """
    if file is not None and file.filename:
        filename = file.filename
        content_type = file.content_type or ""
        if not is_allowed_upload(filename, content_type, settings):
            raise InvalidFileTypeError()
        data = await _read_limited(file, settings.max_upload_bytes)
    elif text is not None and text.strip():
        filename = PASTED_FILENAME
        content_type = "text/markdown"
        data = text.encode("utf-8")
        if len(data) > settings.max_upload_bytes:
            raise PayloadTooLargeError()
    else:
        raise MissingFileError()

    if not data.strip():
        raise EmptyUploadError()

    await asyncio.to_thread(_store, ws.upload_path, data)
    logger.info("Request %s: received %s (%d bytes)", ws.request_id, filename, len(data))
    return UploadedDeck(filename=filename, content_type=content_type, size=len(data), path=ws.upload_path)
