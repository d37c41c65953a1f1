from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from .config import ARCHIVE_FILENAME, Settings
from .security import is_request_id, new_request_id, safe_join


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestWorkspace:
    """Filesystem paths owned by one convert request."""

    request_id: str
    upload_path: Path
    output_dir: Path

    @property
    def archive_path(self) -> Path:
        return self.output_dir / ARCHIVE_FILENAME


def ensure_work_roots(settings: Settings) -> None:
    settings.uploads_root.mkdir(parents=True, exist_ok=True)
    settings.output_root.mkdir(parents=True, exist_ok=True)


def create_request_workspace(settings: Settings) -> RequestWorkspace:
    """Reserve paths for a new request.

    Nothing is created on disk here; the upload file and the output
    directory appear only once their stage runs.
    """
    ensure_work_roots(settings)
    rid = new_request_id()
    return RequestWorkspace(
        request_id=rid,
        upload_path=safe_join(settings.uploads_root, f"{rid}.md"),
        output_dir=safe_join(settings.output_root, rid),
    )


def _remove_path(path: Path) -> bool:
    """Remove a file or directory tree, logging instead of raising."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except FileNotFoundError:
        return True
    except OSError:
        logger.warning("Failed to remove %s", path, exc_info=True)
        return False
    return True


def cleanup_request_workspace(ws: RequestWorkspace) -> bool:
    """Delete the upload file and the output directory of a request.

    Best-effort: returns False when something could not be removed.
    """
    upload_ok = _remove_path(ws.upload_path)
    output_ok = _remove_path(ws.output_dir)
    if upload_ok and output_ok:
        logger.debug("Cleaned up request %s", ws.request_id)
    return upload_ok and output_ok


def sweep_stale_entries(settings: Settings, now: float | None = None) -> int:
    """Delete work-area leftovers older than settings.stale_after_seconds.

    Live requests always clean up after themselves; this only catches what a
    crashed or killed process left behind. Returns the number of removed entries.
    """
    max_age = max(0.0, settings.stale_after_seconds)
    if not max_age:
        return 0
    now = time.time() if now is None else now

    deleted = 0
    for root in (settings.uploads_root, settings.output_root):
        if not root.exists():
            continue
        for child in root.iterdir():
            # Only touch names this service creates: <request id> and <request id>.md
            if not is_request_id(child.name.split(".", 1)[0]):
                continue
            try:
                age = now - child.stat().st_mtime
            except FileNotFoundError:
                continue
            if age > max_age and _remove_path(child):
                deleted += 1
    if deleted:
        logger.info("Swept %d stale work-area entries", deleted)
    return deleted
