from __future__ import annotations

import re
import time
import uuid
from pathlib import Path


_REQUEST_ID_RE = re.compile(r"^[0-9]{13,}-[0-9a-f]{32}$")


def new_request_id() -> str:
    """Return a unique, sortable id for one convert request.

    The millisecond prefix keeps work-area listings in arrival order; the UUID4
    part keeps two requests in the same millisecond apart.
    """
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex}"


def is_request_id(value: str) -> bool:
    return isinstance(value, str) and bool(_REQUEST_ID_RE.match(value))


def safe_join(base_dir: Path, *parts: str) -> Path:
    """Join paths and ensure the result stays within base_dir."""
    base_dir = base_dir.resolve()
    candidate = base_dir
    for part in parts:
        candidate = candidate / part
    resolved = candidate.resolve()
    if resolved == base_dir:
        return resolved
    if base_dir not in resolved.parents:
        raise ValueError("Path traversal attempt")
    return resolved
