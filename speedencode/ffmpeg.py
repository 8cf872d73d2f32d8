"""FFmpeg binary discovery and foreground execution."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path

from speedencode.errors import (
    ExternalToolError,
    SpeedEncodeError,
    FFMPEG_NOT_FOUND,
    FFMPEG_FAILED,
    recovery_hints,
)

logger = logging.getLogger(__name__)

# Module-level cache; discovery runs once per process
_cached_ffmpeg: str | None = None


def reset_cache() -> None:
    """Clear the cached binary path. Useful for testing."""
    global _cached_ffmpeg
    _cached_ffmpeg = None


# ---------------------------------------------------------------------------
# Binary detection helpers
# ---------------------------------------------------------------------------

def _try_env_exact(env_var: str) -> str | None:
    """Check an env var pointing to an exact binary path."""
    value = os.environ.get(env_var)
    if value and Path(value).is_file():
        return value
    return None


def _try_env_dir(binary_name: str) -> str | None:
    """Check SPEEDENCODE_FFMPEG_DIR for a binary by name."""
    dir_path = os.environ.get("SPEEDENCODE_FFMPEG_DIR")
    if not dir_path:
        return None
    for name in (binary_name, f"{binary_name}.exe"):
        candidate = Path(dir_path) / name
        if candidate.is_file():
            return str(candidate)
    return None


def _try_static_ffmpeg() -> str | None:
    """Try to get the ffmpeg path from the static-ffmpeg package."""
    try:
        from static_ffmpeg.run import get_or_fetch_platform_executables_else_raise
    except ImportError:
        return None
    try:
        ffmpeg_path, _ = get_or_fetch_platform_executables_else_raise()
    except Exception as exc:
        logger.debug("static-ffmpeg could not provide a binary: %s", exc)
        return None
    return ffmpeg_path


def _try_imageio_ffmpeg() -> str | None:
    """Try to get the ffmpeg path from imageio-ffmpeg."""
    try:
        import imageio_ffmpeg
    except ImportError:
        return None
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except Exception as exc:
        logger.debug("imageio-ffmpeg could not provide a binary: %s", exc)
        return None


def _discover_ffmpeg() -> str:
    """Walk the fallback chain to find ffmpeg."""
    finders = (
        ("SPEEDENCODE_FFMPEG", lambda: _try_env_exact("SPEEDENCODE_FFMPEG")),
        ("SPEEDENCODE_FFMPEG_DIR", lambda: _try_env_dir("ffmpeg")),
        ("PATH", lambda: shutil.which("ffmpeg")),
        ("static-ffmpeg", _try_static_ffmpeg),
        ("imageio-ffmpeg", _try_imageio_ffmpeg),
    )
    for source, finder in finders:
        path = finder()
        if path:
            logger.debug("Using ffmpeg from %s: %s", source, path)
            return path
    return ""


def find_ffmpeg() -> str:
    """Return the path to the ffmpeg binary, or raise SpeedEncodeError."""
    global _cached_ffmpeg
    if _cached_ffmpeg is not None:
        return _cached_ffmpeg

    path = _discover_ffmpeg()
    if not path:
        raise SpeedEncodeError(
            code=FFMPEG_NOT_FOUND,
            message="ffmpeg binary not found",
            recovery=recovery_hints(FFMPEG_NOT_FOUND),
        )
    _cached_ffmpeg = path
    return path


# ---------------------------------------------------------------------------
# Subprocess runner
# ---------------------------------------------------------------------------

def run_ffmpeg(args: list[str]) -> int:
    """Run a built command in the foreground, inheriting the terminal.

    Args:
        args: A full argument list from the builder; ``args[0]`` is replaced
            by the discovered ffmpeg binary.

    Returns:
        ffmpeg's exit status (always 0; a non-zero status raises).
    """
    cmd = [find_ffmpeg()] + list(args[1:])
    logger.info("Running %s", cmd[0])

    result = subprocess.run(cmd)

    if result.returncode != 0:
        raise ExternalToolError(
            code=FFMPEG_FAILED,
            message=f"ffmpeg exited with code {result.returncode}",
            recovery=recovery_hints(FFMPEG_FAILED),
            context={"command": cmd, "returncode": result.returncode},
        )
    return result.returncode
