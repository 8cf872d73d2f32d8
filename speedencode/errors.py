"""Structured error handling with error codes and recovery suggestions."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

# System
FFMPEG_NOT_FOUND = "FFMPEG_NOT_FOUND"
FFMPEG_FAILED = "FFMPEG_FAILED"

# Missing parameters
MISSING_INPUT = "MISSING_INPUT"
MISSING_OUTPUT = "MISSING_OUTPUT"
MISSING_END_FRAME = "MISSING_END_FRAME"

# Configuration
INVALID_OVERSCAN = "INVALID_OVERSCAN"
INVALID_FRAME = "INVALID_FRAME"
END_BEFORE_START = "END_BEFORE_START"
INVALID_SAMPLE_DURATION = "INVALID_SAMPLE_DURATION"
INVALID_MODE = "INVALID_MODE"

# Exit codes for CLI
EXIT_SUCCESS = 0
EXIT_VALIDATION = 1
EXIT_EXECUTION = 2
EXIT_SYSTEM = 3


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

@dataclass
class SpeedEncodeError(Exception):
    """Structured error with code, message, recovery hints, and context."""
    code: str
    message: str
    recovery: list[str] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "recovery": self.recovery,
            "context": self.context,
        }


class MissingParameterError(SpeedEncodeError):
    """A required field of the request is absent."""


class ConfigurationError(SpeedEncodeError):
    """A field is present but outside its valid domain."""


class ExternalToolError(SpeedEncodeError):
    """ffmpeg ran and exited non-zero."""

    @property
    def returncode(self) -> int:
        return int(self.context.get("returncode", EXIT_EXECUTION))


# ---------------------------------------------------------------------------
# Recovery hint factory
# ---------------------------------------------------------------------------

def _ffmpeg_install_hints() -> list[str]:
    """Return platform-specific FFmpeg install instructions."""
    hints = ["pip install 'speedencode[ffmpeg]'  # bundles an ffmpeg binary"]
    if sys.platform == "darwin":
        hints.append("brew install ffmpeg")
    elif sys.platform == "win32":
        hints.append("winget install ffmpeg  OR  choco install ffmpeg")
    else:
        hints.append("sudo apt install ffmpeg  (Debian/Ubuntu)")
    hints.extend([
        "Set SPEEDENCODE_FFMPEG=/path/to/ffmpeg to override discovery",
        "Run 'speedencode doctor' to diagnose setup issues",
    ])
    return hints


_RECOVERY_MAP: dict[str, list[str]] = {
    MISSING_INPUT: [
        "Pass the source recording with -i/--input",
        "Run 'speedencode encode -h' to see options",
    ],
    MISSING_OUTPUT: [
        "Pass the destination file with -o/--output (ex. speedrun.mp4)",
        "Run 'speedencode encode -h' to see options",
    ],
    MISSING_END_FRAME: [
        "Pass the final frame of the run with -e/--end",
        "Use 'speedencode encode --frames' first to find the finish frame",
    ],
    INVALID_OVERSCAN: [
        "Overscan must be one of: 0, 5, 6.25 (percent)",
    ],
    INVALID_FRAME: [
        "Frames are non-negative integers at 30 fps (ex. 3000)",
        "Or use a timecode triplet MM:SS:FF / HH:MM:SS:FF (ex. 01:30:00)",
    ],
    END_BEFORE_START: [
        "The end frame must be at or after the start frame",
        "Swap the start and end values",
    ],
    INVALID_SAMPLE_DURATION: [
        "--sample takes a positive number of whole seconds (ex. 10)",
    ],
    INVALID_MODE: [
        "Use one of: encode, frames",
    ],
    FFMPEG_FAILED: [
        "Check ffmpeg's output above for details",
        "Run 'speedencode doctor' to verify drawtext, libx264 and libfdk_aac are available",
    ],
}


def recovery_hints(code: str, context: dict[str, Any] | None = None) -> list[str]:
    """Return recovery suggestions for a given error code."""
    if code == FFMPEG_NOT_FOUND:
        return _ffmpeg_install_hints()

    hints = list(_RECOVERY_MAP.get(code, []))
    context = context or {}

    if code == END_BEFORE_START and "start_frame" in context:
        hints.insert(0, f"Start frame is {context['start_frame']}; set end to that or later")

    return hints
