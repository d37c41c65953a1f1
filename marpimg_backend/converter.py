"""Run marp-cli against an uploaded deck.

Output addressing is pattern based: ``--output <dir>/slide.png`` together with
``--images png`` makes marp-cli write ``slide.001.png``, ``slide.002.png``, ...
into the output directory. The directory form (``--input-dir`` plus an output
directory) also works with marp-cli but names the images after the input file,
so it is not used here.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .config import IMAGE_EXT, Settings
from .errors import ConversionFailedError, ConversionTimeoutError


logger = logging.getLogger(__name__)

OUTPUT_PATTERN = "slide" + IMAGE_EXT
_STDERR_TAIL = 2000


def build_marp_command(settings: Settings, input_path: Path, output_dir: Path) -> list[str]:
    cmd = [
        *settings.marp_command,
        "--no-stdin",
        "--images",
        IMAGE_EXT.lstrip("."),
    ]
    if settings.image_scale:
        cmd += ["--image-scale", str(settings.image_scale)]
    if settings.browser_path:
        cmd += ["--browser-path", settings.browser_path]
    cmd += ["--output", str(output_dir / OUTPUT_PATTERN), str(input_path)]
    return cmd


async def resolve_browser_path(settings: Settings) -> Optional[str]:
    """Find a Chromium build for marp-cli.

    An explicitly configured path wins. Otherwise Playwright's bundled
    Chromium is used when it has been installed (``playwright install
    chromium``); if not, marp-cli falls back to its own browser discovery.
    """
    if settings.browser_path:
        return settings.browser_path
    if not settings.use_playwright_chromium:
        return None

    try:
        async with async_playwright() as p:
            executable = p.chromium.executable_path
    except (PlaywrightError, OSError):
        logger.warning("Could not query Playwright for a Chromium build", exc_info=True)
        return None

    if executable and Path(executable).is_file():
        logger.info("Using Playwright Chromium at %s", executable)
        return executable
    logger.warning("Playwright Chromium is not installed; run `playwright install chromium`")
    return None


async def _kill(proc: asyncio.subprocess.Process) -> None:
    # marp-cli runs Chromium as a grandchild; take down the whole process group.
    if proc.returncode is None:
        try:
            if hasattr(os, "killpg"):
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()


async def run_marp(settings: Settings, input_path: Path, output_dir: Path) -> None:
    """Render every slide of input_path into output_dir.

    Creates output_dir first. Raises ConversionError subclasses on a missing
    tool, a non-zero exit status or a timeout.
    """
    output_dir.mkdir(parents=True, exist_ok=False)
    cmd = build_marp_command(settings, input_path, output_dir)
    logger.debug("Running %s", cmd)

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as exc:
        logger.error("Could not start rendering tool %r: %s", settings.marp_command, exc)
        raise ConversionFailedError("Rendering tool is not available.") from exc

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=settings.conversion_timeout_seconds)
    except asyncio.TimeoutError:
        await _kill(proc)
        logger.warning("Rendering tool timed out after %ss", settings.conversion_timeout_seconds)
        raise ConversionTimeoutError() from None
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    if proc.returncode != 0:
        tail = (stderr or b"").decode("utf-8", errors="replace")[-_STDERR_TAIL:]
        logger.error("Rendering tool exited with status %s: %s", proc.returncode, tail.strip())
        raise ConversionFailedError()
