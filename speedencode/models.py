"""Data models for speedencode: the encode request and its enumerated options."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Optional, Union

from speedencode.errors import (
    ConfigurationError,
    MissingParameterError,
    INVALID_OVERSCAN,
    INVALID_FRAME,
    INVALID_MODE,
    END_BEFORE_START,
    INVALID_SAMPLE_DURATION,
    MISSING_INPUT,
    MISSING_OUTPUT,
    MISSING_END_FRAME,
    recovery_hints,
)

FPS = 30
DEFAULT_FONTFILE = "/System/Library/Fonts/Menlo.ttc"


# ---------------------------------------------------------------------------
# Frame parsing helper
# ---------------------------------------------------------------------------

_FRAME_RE = re.compile(r"^\d+$")
_TIMECODE_RE = re.compile(
    r"^(?:(\d+):)?(\d{1,2}):(\d{2}):(\d{2})$"
)


def parse_frame(value: Union[str, int]) -> int:
    """Parse a frame number or an [HH:]MM:SS:FF timecode into frames at 30 fps."""
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise _invalid_frame(value)
        return value

    text = str(value).strip()
    if _FRAME_RE.match(text):
        return int(text)

    m = _TIMECODE_RE.match(text)
    if not m:
        raise _invalid_frame(value)
    hours = int(m.group(1) or 0)
    minutes = int(m.group(2))
    seconds = int(m.group(3))
    frames = int(m.group(4))
    if (m.group(1) is not None and minutes >= 60) or seconds >= 60 or frames >= FPS:
        raise _invalid_frame(value)
    return ((hours * 60 + minutes) * 60 + seconds) * FPS + frames


def _invalid_frame(value) -> ConfigurationError:
    return ConfigurationError(
        code=INVALID_FRAME,
        message=f"Invalid frame: {value!r}",
        recovery=recovery_hints(INVALID_FRAME),
        context={"value": str(value)},
    )


# ---------------------------------------------------------------------------
# Enumerated options
# ---------------------------------------------------------------------------

class Mode(Enum):
    """What kind of command to build."""
    ENCODE = "encode"
    FRAMES = "frames"

    @classmethod
    def parse(cls, value: Union[str, Mode]) -> Mode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                code=INVALID_MODE,
                message=f"Unknown mode: {value!r}",
                recovery=recovery_hints(INVALID_MODE),
                context={"mode": str(value)},
            ) from None


class Overscan(Enum):
    """Fraction of each dimension cropped to compensate for display overscan."""
    NONE = Fraction(0)
    FIVE = Fraction(1, 20)
    SIX_POINT_TWO_FIVE = Fraction(1, 16)

    @property
    def fraction(self) -> Fraction:
        return self.value

    @property
    def percent(self) -> str:
        pct = self.value * 100
        return str(pct.numerator) if pct.denominator == 1 else str(float(pct))

    @classmethod
    def choices(cls) -> list[str]:
        """Allowed percentages as CLI strings."""
        return [member.percent for member in cls]

    @classmethod
    def from_percent(cls, value: Union[str, int, float, Fraction]) -> Overscan:
        """Look up the overscan for a percentage such as ``"6.25"``.

        Strings must be spelled exactly as one of :meth:`choices`.
        """
        if isinstance(value, str):
            text = value.strip()
            for member in cls:
                if member.percent == text:
                    return member
            return cls._lookup(None, value, "percent")
        fraction = _to_fraction(value)
        if fraction is not None:
            fraction /= 100
        return cls._lookup(fraction, value, "percent")

    @classmethod
    def from_fraction(cls, value: Union[str, int, float, Fraction]) -> Overscan:
        """Look up the overscan for a fraction such as ``0.05``."""
        return cls._lookup(_to_fraction(value), value, "fraction")

    @classmethod
    def _lookup(cls, fraction: Optional[Fraction], raw, unit: str) -> Overscan:
        for member in cls:
            if fraction is not None and member.value == fraction:
                return member
        raise ConfigurationError(
            code=INVALID_OVERSCAN,
            message=f"Unsupported overscan {unit}: {raw!r}",
            recovery=recovery_hints(INVALID_OVERSCAN),
            context={"value": str(raw), "unit": unit, "allowed_percent": cls.choices()},
        )


def _to_fraction(value) -> Optional[Fraction]:
    """Convert a numeric string or number to an exact Fraction, or None."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, float):
            # str() keeps 0.05 as 1/20 instead of its binary approximation
            return Fraction(str(value))
        if isinstance(value, (int, Fraction)):
            return Fraction(value)
        return Fraction(str(value).strip())
    except (ValueError, TypeError, OverflowError, ZeroDivisionError):
        return None


# ---------------------------------------------------------------------------
# Encode request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EncodeRequest:
    """Immutable parameters for one ffmpeg invocation.

    Every field is validated on construction, so a request that exists can
    always be turned into a command.
    """
    input: Optional[str]
    output: Optional[str]
    start_frame: int = 0
    end_frame: Optional[int] = None
    overscan: Overscan = Overscan.NONE
    sample_duration: Optional[int] = None
    mode: Mode = Mode.ENCODE
    fontfile: str = DEFAULT_FONTFILE

    def __post_init__(self) -> None:
        mode = Mode.parse(self.mode)
        object.__setattr__(self, "mode", mode)

        if not self.input:
            raise MissingParameterError(
                code=MISSING_INPUT,
                message="No input recording was specified",
                recovery=recovery_hints(MISSING_INPUT),
            )
        if not self.output:
            raise MissingParameterError(
                code=MISSING_OUTPUT,
                message="No output file was specified",
                recovery=recovery_hints(MISSING_OUTPUT),
            )
        if self.end_frame is None and mode is Mode.ENCODE:
            raise MissingParameterError(
                code=MISSING_END_FRAME,
                message="No end frame was specified",
                recovery=recovery_hints(MISSING_END_FRAME),
            )

        object.__setattr__(self, "start_frame", parse_frame(self.start_frame))
        if self.end_frame is not None:
            object.__setattr__(self, "end_frame", parse_frame(self.end_frame))
            if self.end_frame < self.start_frame:
                context = {"start_frame": self.start_frame, "end_frame": self.end_frame}
                raise ConfigurationError(
                    code=END_BEFORE_START,
                    message=f"End frame ({self.end_frame}) is before start frame ({self.start_frame})",
                    recovery=recovery_hints(END_BEFORE_START, context),
                    context=context,
                )

        if not isinstance(self.overscan, Overscan):
            if isinstance(self.overscan, str):
                overscan = Overscan.from_percent(self.overscan)
            else:
                overscan = Overscan.from_fraction(self.overscan)
            object.__setattr__(self, "overscan", overscan)

        if self.sample_duration is not None:
            if (
                isinstance(self.sample_duration, bool)
                or not isinstance(self.sample_duration, int)
                or self.sample_duration <= 0
            ):
                raise ConfigurationError(
                    code=INVALID_SAMPLE_DURATION,
                    message=f"Sample duration must be a positive integer, got {self.sample_duration!r}",
                    recovery=recovery_hints(INVALID_SAMPLE_DURATION),
                    context={"sample_duration": self.sample_duration},
                )

    def to_dict(self) -> dict:
        d: dict = {
            "input": self.input,
            "output": self.output,
            "mode": self.mode.value,
            "start_frame": self.start_frame,
            "end_frame": self.end_frame,
            "overscan_percent": self.overscan.percent,
            "fontfile": self.fontfile,
        }
        if self.sample_duration is not None:
            d["sample_duration"] = self.sample_duration
        return d
