"""Shared test fixtures for the Marp-to-images service."""

import sys

import pytest
from fastapi.testclient import TestClient

from helpers import FAKE_MARP
from marpimg_backend.config import Settings
from server import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        work_root=tmp_path / "work",
        marp_command=(sys.executable, str(FAKE_MARP)),
        use_playwright_chromium=False,
        conversion_timeout_seconds=30,
        max_upload_bytes=64 * 1024,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
