"""Locate the native extractor, building it when missing or stale."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

from loguru import logger

from axgrab.errors import ExtractorUnavailable

EXECUTABLE_NAME = "a11y-extractor"
DEFAULT_BUILD_DIR = Path.home() / ".cache" / "axgrab"

_executable: str | None = None


def detect_platform() -> str:
    """Return the current platform identifier."""
    if sys.platform == "darwin":
        return "macos"
    elif sys.platform == "win32":
        return "windows"
    elif sys.platform.startswith("linux"):
        return "linux"
    else:
        raise ExtractorUnavailable(f"Unsupported platform: {sys.platform}")


def needs_build(source: Path, target: Path) -> bool:
    """True when ``target`` is missing or older than ``source``."""
    if not target.exists():
        return True
    return source.stat().st_mtime > target.stat().st_mtime


def build(source: Path, target: Path) -> None:
    """Compile the Swift extractor source into ``target``."""
    target.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        "swiftc", "-o", str(target), str(source),
        "-framework", "ApplicationServices", "-framework", "Cocoa",
    ]
    logger.info("Compiling accessibility extractor: {}", source)
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as e:
        raise ExtractorUnavailable(f"Failed to run swiftc: {e}") from e
    if proc.returncode != 0:
        raise ExtractorUnavailable(
            f"Failed to compile extractor: {proc.stderr or proc.stdout}"
        )
    if proc.stderr:
        logger.warning("Compilation warnings: {}", proc.stderr.strip())
    logger.info("Compilation successful: {}", target)


def get_executable() -> str:
    """Return a path to a ready-to-run extractor.

    Resolution order:
        1. ``AXGRAB_EXTRACTOR`` -- a prebuilt executable, used as is.
        2. Build the Swift source named by ``AXGRAB_EXTRACTOR_SOURCE`` into
           ``AXGRAB_BUILD_DIR`` if missing or stale. The source is not
           bundled with the package; one of the two variables must be set.

    The result is cached for the life of the process; repeated calls are
    cheap and never rebuild.

    Raises:
        ExtractorUnavailable: If no executable can be found or built.
    """
    global _executable

    if _executable is not None:
        return _executable

    prebuilt = os.environ.get("AXGRAB_EXTRACTOR")
    if prebuilt:
        if not os.access(prebuilt, os.X_OK):
            raise ExtractorUnavailable(f"AXGRAB_EXTRACTOR is not executable: {prebuilt}")
        _executable = prebuilt
        return _executable

    if detect_platform() != "macos":
        raise ExtractorUnavailable(
            "Building the extractor requires macOS; set AXGRAB_EXTRACTOR "
            "to a prebuilt executable instead."
        )

    source_env = os.environ.get("AXGRAB_EXTRACTOR_SOURCE")
    if not source_env:
        raise ExtractorUnavailable(
            "No extractor configured; set AXGRAB_EXTRACTOR to a prebuilt "
            "executable or AXGRAB_EXTRACTOR_SOURCE to its Swift source."
        )
    source = Path(source_env)
    if not source.exists():
        raise ExtractorUnavailable(f"Extractor source file not found: {source}")
    target = Path(os.environ.get("AXGRAB_BUILD_DIR") or DEFAULT_BUILD_DIR) / EXECUTABLE_NAME

    if needs_build(source, target):
        build(source, target)

    _executable = str(target)
    return _executable


def reset() -> None:
    """Forget the cached executable path (tests, or after replacing it)."""
    global _executable
    _executable = None
