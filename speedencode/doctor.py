"""Diagnostic checks for the ffmpeg features a speedrun encode relies on."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from speedencode.models import DEFAULT_FONTFILE

_REQUIRED_FILTERS = ["fps", "trim", "atrim", "crop", "scale", "drawtext", "concat"]
_REQUIRED_ENCODERS = ["libx264", "libfdk_aac"]


def _get_version(binary_path: str) -> str | None:
    """Run a binary with -version and return the first line."""
    try:
        result = subprocess.run(
            [binary_path, "-version"],
            capture_output=True, text=True, timeout=10,
        )
        first_line = result.stdout.strip().splitlines()[0] if result.stdout else ""
        return first_line or None
    except (OSError, subprocess.SubprocessError):
        return None


def _check_binary() -> dict:
    from speedencode.ffmpeg import find_ffmpeg
    from speedencode.errors import SpeedEncodeError

    try:
        path = find_ffmpeg()
    except SpeedEncodeError:
        return {"found": False, "path": None, "version": None}
    return {"found": True, "path": path, "version": _get_version(path)}


def _list_names(ffmpeg_path: str, flag: str) -> set[str] | None:
    """Second column of ``ffmpeg -filters`` / ``-encoders``, or None on failure."""
    try:
        result = subprocess.run(
            [ffmpeg_path, "-hide_banner", flag],
            capture_output=True, text=True, timeout=10,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    names = set()
    for line in result.stdout.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            names.add(parts[1])
    return names


def _check_names(ffmpeg_path: str | None, flag: str, wanted: list[str]) -> dict:
    names = _list_names(ffmpeg_path, flag) if ffmpeg_path else None
    if names is None:
        return {"checked": False, "available": {}, "missing": list(wanted)}
    available = {name: name in names for name in wanted}
    missing = [name for name, ok in available.items() if not ok]
    return {"checked": True, "available": available, "missing": missing}


def _check_fontfile(fontfile: str) -> dict:
    return {"path": fontfile, "exists": Path(fontfile).is_file()}


def _check_package(package_name: str) -> dict:
    """Check if a Python package is importable."""
    try:
        mod = __import__(package_name)
    except ImportError:
        return {"installed": False, "version": None}
    return {"installed": True, "version": getattr(mod, "__version__", "unknown")}


def _check_env_vars() -> dict:
    keys = ["SPEEDENCODE_FFMPEG", "SPEEDENCODE_FFMPEG_DIR", "SPEEDENCODE_FONTFILE"]
    return {k: os.environ.get(k) for k in keys}


def run_doctor(fontfile: str = DEFAULT_FONTFILE) -> dict:
    """Run all diagnostic checks and return a structured report."""
    ffmpeg_info = _check_binary()
    filter_info = _check_names(ffmpeg_info["path"], "-filters", _REQUIRED_FILTERS)
    encoder_info = _check_names(ffmpeg_info["path"], "-encoders", _REQUIRED_ENCODERS)
    font_info = _check_fontfile(fontfile)

    checks = [
        {"name": "ffmpeg", "ok": ffmpeg_info["found"], "detail": ffmpeg_info},
        {
            "name": "ffmpeg_filters",
            "ok": not filter_info["missing"] if filter_info["checked"] else None,
            "detail": filter_info,
        },
        {
            "name": "ffmpeg_encoders",
            "ok": not encoder_info["missing"] if encoder_info["checked"] else None,
            "detail": encoder_info,
        },
        {"name": "fontfile", "ok": font_info["exists"], "detail": font_info},
    ]

    for pkg in ("static_ffmpeg", "imageio_ffmpeg"):
        info = _check_package(pkg)
        checks.append({"name": f"package:{pkg}", "ok": info["installed"], "detail": info})

    checks.append({"name": "env_vars", "ok": True, "detail": _check_env_vars()})

    healthy = bool(
        ffmpeg_info["found"]
        and filter_info["checked"] and not filter_info["missing"]
        and encoder_info["checked"] and not encoder_info["missing"]
        and font_info["exists"]
    )
    return {"healthy": healthy, "checks": checks}
