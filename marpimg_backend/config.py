from __future__ import annotations

import os
import shlex
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional


PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Form field names used by the browser page.
FILE_FIELD = "marp-file"
TEXT_FIELD = "marp-text"

ARCHIVE_FILENAME = "presentation.zip"
PASTED_FILENAME = "presentation.md"
IMAGE_EXT = ".png"

UPLOADS_SUBDIR = "uploads"
OUTPUT_SUBDIR = "output"

ALLOWED_EXTENSIONS = frozenset({".md", ".markdown", ".marp", ".txt"})
ALLOWED_CONTENT_TYPES = frozenset({"text/markdown", "text/x-markdown", "text/plain"})

# Hosts with a read-only project directory only allow writes under the OS temp dir.
_EPHEMERAL_HOST_MARKERS = ("VERCEL", "K_SERVICE", "AWS_LAMBDA_FUNCTION_NAME")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    work_root: Path
    port: int = 3000
    host: str = "127.0.0.1"
    max_upload_bytes: int = 5 * 1024 * 1024  # 5MB
    allowed_extensions: frozenset = ALLOWED_EXTENSIONS
    allowed_content_types: frozenset = ALLOWED_CONTENT_TYPES
    marp_command: tuple = ("marp",)
    conversion_timeout_seconds: float = 120.0
    image_scale: Optional[float] = None
    browser_path: Optional[str] = None
    use_playwright_chromium: bool = True
    stale_after_seconds: float = 3600.0
    cleanup_interval_seconds: int = 600
    log_level: str = "INFO"
    ephemeral_storage: bool = False
    static_root: Path = field(default=PROJECT_ROOT / "public")

    @property
    def uploads_root(self) -> Path:
        return self.work_root / UPLOADS_SUBDIR

    @property
    def output_root(self) -> Path:
        return self.work_root / OUTPUT_SUBDIR


def _flag(raw: Optional[str]) -> bool:
    return (raw or "").strip().lower() in _TRUTHY


def _optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    return float(raw)


def resolve_work_root(env: Mapping[str, str]) -> tuple[Path, bool]:
    """Pick the scratch root for uploads and output directories.

    MARPIMG_WORK_ROOT wins. Otherwise ephemeral hosts (or an explicit
    MARPIMG_EPHEMERAL_STORAGE=1) get a folder under the OS temp dir and
    everything else gets a project-local ./work folder.
    """
    explicit = env.get("MARPIMG_WORK_ROOT")
    ephemeral_raw = env.get("MARPIMG_EPHEMERAL_STORAGE")
    if ephemeral_raw is not None and ephemeral_raw.strip():
        ephemeral = _flag(ephemeral_raw)
    else:
        ephemeral = any(env.get(marker) for marker in _EPHEMERAL_HOST_MARKERS)

    if explicit and explicit.strip():
        return Path(explicit).resolve(), ephemeral
    if ephemeral:
        return (Path(tempfile.gettempdir()) / "marp-to-images").resolve(), True
    return (PROJECT_ROOT / "work").resolve(), False


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build the process-wide settings once, before the app serves requests."""
    env = os.environ if env is None else env
    work_root, ephemeral = resolve_work_root(env)

    browser_path = env.get("MARPIMG_BROWSER_PATH") or env.get("CHROME_PATH") or None

    return Settings(
        work_root=work_root,
        port=int(env.get("PORT", "3000")),
        host=env.get("MARPIMG_HOST", "127.0.0.1"),
        max_upload_bytes=int(env.get("MARPIMG_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024))),
        marp_command=tuple(shlex.split(env.get("MARPIMG_MARP_COMMAND", "marp"))),
        conversion_timeout_seconds=float(env.get("MARPIMG_CONVERSION_TIMEOUT_SECONDS", "120")),
        image_scale=_optional_float(env.get("MARPIMG_IMAGE_SCALE")),
        browser_path=browser_path,
        use_playwright_chromium=_flag(env.get("MARPIMG_USE_PLAYWRIGHT_CHROMIUM", "1")),
        stale_after_seconds=float(env.get("MARPIMG_STALE_AFTER_SECONDS", "3600")),
        cleanup_interval_seconds=int(env.get("MARPIMG_CLEANUP_INTERVAL_SECONDS", "600")),
        log_level=env.get("MARPIMG_LOG_LEVEL", "INFO").upper(),
        ephemeral_storage=ephemeral,
    )
