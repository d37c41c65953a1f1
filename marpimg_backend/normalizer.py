from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from .config import ARCHIVE_FILENAME, IMAGE_EXT
from .errors import NoImagesProducedError


logger = logging.getLogger(__name__)

SLIDE_PREFIX = "slide-"
_DIGITS_RE = re.compile(r"(\d+)")


def natural_key(name: str) -> list:
    # "slide.10.png" sorts after "slide.9.png".
    return [int(part) if part.isdigit() else part.lower() for part in _DIGITS_RE.split(name)]


def slide_name(index: int, total: int, ext: str = IMAGE_EXT) -> str:
    width = max(3, len(str(total)))
    return f"{SLIDE_PREFIX}{index:0{width}d}{ext}"


def collect_generated_images(
    output_dir: Path,
    ext: str = IMAGE_EXT,
    exclude: Iterable[str] = (ARCHIVE_FILENAME,),
) -> list[Path]:
    """Return the tool's image files in slide order."""
    skip = set(exclude)
    found = []
    for child in output_dir.iterdir():
        if child.name in skip or child.name.startswith("."):
            continue
        if child.is_symlink() or not child.is_file():
            continue
        if child.suffix.lower() != ext:
            continue
        found.append(child)
    return sorted(found, key=lambda p: natural_key(p.name))


def normalize_output(output_dir: Path, ext: str = IMAGE_EXT) -> list[Path]:
    """Rename generated images to slide-001.png, slide-002.png, ...

    Renames go through temporary names first so an image already called
    like a target name is never overwritten.
    """
    images = collect_generated_images(output_dir, ext)
    if not images:
        raise NoImagesProducedError()

    total = len(images)
    staged = []
    for i, src in enumerate(images, start=1):
        tmp = output_dir / f".rename-{i}{ext}"
        src.rename(tmp)
        staged.append(tmp)

    normalized = []
    for i, tmp in enumerate(staged, start=1):
        dest = output_dir / slide_name(i, total, ext)
        tmp.rename(dest)
        normalized.append(dest)

    logger.debug("Normalized %d images in %s", total, output_dir)
    return normalized
