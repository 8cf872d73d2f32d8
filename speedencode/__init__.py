"""speedencode: ffmpeg command builder for speedrun encodes.

Public API:
    EncodeRequest, Mode, Overscan, parse_frame        - request model
    build_command, build_encode_args, build_frames_args - command builder
    timecode, total_frames, audio_start_sample,
    overscan_size, frames_window_starts                - derived quantities
    format_command, run_ffmpeg                         - printing and execution
    SpeedEncodeError and subclasses                    - structured errors
"""

from speedencode.models import EncodeRequest, Mode, Overscan, parse_frame
from speedencode.builder import (
    build_command,
    build_encode_args,
    build_frames_args,
    format_command,
    timecode,
    total_frames,
    audio_start_sample,
    overscan_size,
    frames_window_starts,
)
from speedencode.ffmpeg import run_ffmpeg
from speedencode.errors import (
    SpeedEncodeError,
    MissingParameterError,
    ConfigurationError,
    ExternalToolError,
)

__version__ = "0.1.0"

__all__ = [
    # Request model
    "EncodeRequest",
    "Mode",
    "Overscan",
    "parse_frame",
    # Command builder
    "build_command",
    "build_encode_args",
    "build_frames_args",
    "format_command",
    # Derived quantities
    "timecode",
    "total_frames",
    "audio_start_sample",
    "overscan_size",
    "frames_window_starts",
    # Execution
    "run_ffmpeg",
    # Errors
    "SpeedEncodeError",
    "MissingParameterError",
    "ConfigurationError",
    "ExternalToolError",
]
