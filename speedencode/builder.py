"""Command builder: turn an EncodeRequest into ffmpeg arguments.

Everything here is a pure function of the request. Nothing touches the
filesystem or runs a process; see :mod:`speedencode.ffmpeg` for that.
"""

from __future__ import annotations

import math
import shlex
from fractions import Fraction
from typing import Optional

from speedencode.models import FPS, EncodeRequest, Mode, Overscan

# 48 kHz audio / 30 fps
SAMPLES_PER_FRAME = 1600

OUTPUT_WIDTH = 640
OUTPUT_HEIGHT = 480
SOURCE_CROP = "crop=704:480"

FRAMES_WINDOW_SECONDS = 30
FRAMES_LEAD_IN_SECONDS = 15

_TIMECODE_SEPARATOR = "\\:"


# ---------------------------------------------------------------------------
# Derived quantities
# ---------------------------------------------------------------------------

def total_frames(request: EncodeRequest) -> int:
    """Number of frames between start and end; the timer freezes here."""
    return request.end_frame - request.start_frame


def timecode(frames: int) -> str:
    """Format a frame count as HH\\:MM\\:SS\\:FF, escaped for drawtext."""
    seconds, frames = divmod(frames, FPS)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return _TIMECODE_SEPARATOR.join(
        f"{n:02d}" for n in (hours, minutes, seconds, frames)
    )


def audio_start_sample(request: EncodeRequest) -> int:
    return request.start_frame * SAMPLES_PER_FRAME


def overscan_size(overscan: Overscan) -> tuple[int, int]:
    """Width and height left after cropping ``overscan`` from each dimension."""
    keep = 1 - overscan.fraction
    return int(OUTPUT_WIDTH * keep), int(OUTPUT_HEIGHT * keep)


def frames_to_seconds(frames: int) -> Fraction:
    return Fraction(frames, FPS)


def frames_window_starts(request: EncodeRequest) -> tuple[Fraction, Optional[Fraction]]:
    """Start offsets (seconds) of the two diagnostic windows in frames mode.

    The start window backs up 15 seconds when it can and otherwise begins
    at 0. The end window backs up 15 seconds when it can and otherwise
    begins at the end point itself, with no clamp to 0.
    """
    start = frames_to_seconds(request.start_frame)
    start = start - FRAMES_LEAD_IN_SECONDS if start > FRAMES_LEAD_IN_SECONDS else 0

    if request.end_frame is None:
        return start, None
    end = frames_to_seconds(request.end_frame)
    if end > FRAMES_LEAD_IN_SECONDS:
        end -= FRAMES_LEAD_IN_SECONDS
    return start, end


def _format_seconds(seconds: Fraction) -> str:
    """Render seconds for a filter argument: 10 -> '10', 21/2 -> '10.5'.

    Truncated to whole milliseconds, never rounded up.
    """
    ms = math.floor(Fraction(seconds) * 1000)
    text = f"{ms // 1000}.{ms % 1000:03d}".rstrip("0").rstrip(".")
    return text or "0"


# ---------------------------------------------------------------------------
# Drawtext style
# ---------------------------------------------------------------------------

def drawtext_style(fontfile: str) -> str:
    """Shared overlay style: centered, near the bottom, white with a thin outline."""
    return (
        "x=(w-tw)/2:y=h-(2*lh)"
        f":fontfile={fontfile}"
        ":fontsize=24:fontcolor=white:borderw=1"
    )


# ---------------------------------------------------------------------------
# Encode mode
# ---------------------------------------------------------------------------

def _encode_video_filters(request: EncodeRequest) -> str:
    style = drawtext_style(request.fontfile)
    total = total_frames(request)

    vfilters = [
        f"fps={FPS}",
        f"trim=start_frame={request.start_frame}",
        "setpts=PTS-STARTPTS",
        f"{SOURCE_CROP},scale={OUTPUT_WIDTH}:{OUTPUT_HEIGHT}",
    ]
    if request.overscan.fraction > 0:
        width, height = overscan_size(request.overscan)
        vfilters.append(f"crop={width}:{height},scale={OUTPUT_WIDTH}:{OUTPUT_HEIGHT}")

    # Live counter until the finish frame, then the frozen final time
    vfilters.append(
        f"drawtext=timecode='{timecode(0)}':r={FPS}:{style}:enable='lt(n,{total})'"
    )
    vfilters.append(
        f"drawtext=text='{timecode(total)}':{style}:enable='gte(n,{total})'"
    )
    return ",".join(vfilters)


def _encode_audio_filters(request: EncodeRequest) -> str:
    return f"atrim=start_sample={audio_start_sample(request)},asetpts=PTS-STARTPTS"


def build_encode_args(request: EncodeRequest) -> list[str]:
    """Full speedrun encode: trim, crop, timer overlay, upload-ready MP4."""
    args = ["ffmpeg", "-i", request.input]
    args += ["-vf", _encode_video_filters(request)]
    args += ["-af", _encode_audio_filters(request)]
    args += ["-aspect", "4:3"]

    args += ["-c:v", "libx264", "-crf", "18", "-preset", "veryslow", "-tune", "film"]

    # YouTube encoding settings
    args += [
        "-profile:v", "high",
        "-pix_fmt", "+yuv420p",
        "-bf", "2",
        "-flags", "+cgop",
        "-g", "15",
        "-coder", "ac",
        "-movflags", "+faststart",
    ]

    args += ["-c:a", "libfdk_aac", "-b:a", "128k"]

    if request.sample_duration is not None:
        args += ["-t", str(request.sample_duration)]

    args += ["-f", "mp4", request.output]
    return args


# ---------------------------------------------------------------------------
# Frames mode
# ---------------------------------------------------------------------------

def _frames_window(style: str, start: Fraction, label: str) -> str:
    return (
        f"[0:v]fps={FPS},drawtext=text='%{{n}}':{style},"
        f"trim=start={_format_seconds(start)}:duration={FRAMES_WINDOW_SECONDS},"
        f"setpts=PTS-STARTPTS[{label}]"
    )


def build_frames_args(request: EncodeRequest) -> list[str]:
    """Diagnostic render: frame numbers around the start and end points."""
    style = drawtext_style(request.fontfile)
    start, end = frames_window_starts(request)

    if end is None:
        graph = _frames_window(style, start, "out")
    else:
        graph = ";".join([
            _frames_window(style, start, "a"),
            _frames_window(style, end, "b"),
            "[a][b]concat[out]",
        ])

    args = ["ffmpeg", "-i", request.input]
    args += ["-filter_complex", graph, "-map", "[out]"]
    args += ["-c:v", "libx264", "-preset", "ultrafast"]
    args += ["-f", "mp4", request.output]
    return args


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_command(request: EncodeRequest) -> list[str]:
    """Return the ffmpeg argument list for ``request.mode``."""
    if request.mode is Mode.FRAMES:
        return build_frames_args(request)
    return build_encode_args(request)


def format_command(args: list[str]) -> str:
    """Quote an argument list for display or pasting into a shell."""
    return shlex.join(args)
