"""Tests for the upload -> convert -> normalize -> archive sequence."""

import asyncio
import io
from unittest.mock import patch

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from helpers import list_archive_entries, make_deck, work_area_entries
from marpimg_backend.errors import ConversionFailedError, InvalidFileTypeError
from marpimg_backend.normalizer import normalize_output
from marpimg_backend.pipeline import convert_deck


def _upload(text, filename="deck.md", content_type="text/markdown"):
    return UploadFile(
        file=io.BytesIO(text.encode("utf-8")),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.mark.asyncio
async def test_returns_workspace_with_finished_archive(settings):
    ws = await convert_deck(_upload(make_deck(3)), None, settings)

    assert list_archive_entries(ws.archive_path) == ["slide-001.png", "slide-002.png", "slide-003.png"]
    assert not ws.archive_path.with_name("presentation.zip.part").exists()
    assert ws.upload_path.exists()


@pytest.mark.asyncio
async def test_validation_failure_leaves_nothing_behind(settings):
    with pytest.raises(InvalidFileTypeError):
        await convert_deck(_upload("# x", "photo.png", "image/png"), None, settings)
    assert work_area_entries(settings) == []


@pytest.mark.asyncio
async def test_conversion_failure_leaves_nothing_behind(settings):
    with pytest.raises(ConversionFailedError):
        await convert_deck(None, make_deck(2, "<!-- fake:fail -->"), settings)
    assert work_area_entries(settings) == []


@pytest.mark.asyncio
async def test_filesystem_stages_run_off_the_event_loop(settings):
    with patch("marpimg_backend.pipeline.asyncio.to_thread", wraps=asyncio.to_thread) as to_thread:
        await convert_deck(None, make_deck(2), settings)

    offloaded = [call.args[0].__name__ for call in to_thread.call_args_list]
    assert normalize_output.__name__ in offloaded
    assert "build_slides_zip" in offloaded
