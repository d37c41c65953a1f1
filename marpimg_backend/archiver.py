from __future__ import annotations

import logging
import os
import zipfile
import zlib
from pathlib import Path
from typing import Sequence

from .errors import ArchiveError


logger = logging.getLogger(__name__)


def build_slides_zip(images: Sequence[Path], zip_path: Path, compresslevel: int = 9) -> Path:
    """Write images into zip_path in the given order, each under its basename.

    The archive is assembled as ``<name>.part`` and renamed into place only
    after it has been closed, so zip_path never holds a partial archive.
    """
    part_path = zip_path.with_name(zip_path.name + ".part")
    try:
        with zipfile.ZipFile(
            part_path, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=compresslevel
        ) as zf:
            for image in images:
                zf.write(image, arcname=image.name)
        os.replace(part_path, zip_path)
    except (OSError, zipfile.BadZipFile, zlib.error) as exc:
        logger.error("Failed to write archive %s: %s", zip_path, exc)
        try:
            part_path.unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to remove partial archive %s", part_path, exc_info=True)
        raise ArchiveError() from exc

    logger.debug("Wrote %s with %d entries", zip_path, len(images))
    return zip_path
