"""speedencode CLI: build (and optionally run) the ffmpeg command for a speedrun."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from speedencode.errors import (
    SpeedEncodeError,
    ExternalToolError,
    MissingParameterError,
    ConfigurationError,
    EXIT_SUCCESS,
    EXIT_VALIDATION,
    EXIT_EXECUTION,
    EXIT_SYSTEM,
)
from speedencode.models import DEFAULT_FONTFILE, Overscan

logger = logging.getLogger(__name__)


def _json_out(data: dict, exit_code: int = EXIT_SUCCESS) -> int:
    """Print JSON to stdout and return exit code."""
    print(json.dumps(data, indent=2))
    return exit_code


def _json_error(exc: SpeedEncodeError, exit_code: int = EXIT_EXECUTION) -> int:
    """Print a SpeedEncodeError as JSON and return the appropriate exit code."""
    return _json_out(exc.to_dict(), exit_code)


def _default_fontfile() -> str:
    return os.environ.get("SPEEDENCODE_FONTFILE") or DEFAULT_FONTFILE


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def cmd_encode(args) -> int:
    """Build the encode (or frames) command, then print or run it."""
    from speedencode.builder import build_command, format_command
    from speedencode.ffmpeg import run_ffmpeg
    from speedencode.models import EncodeRequest, Mode

    try:
        request = EncodeRequest(
            input=args.input,
            output=args.output,
            start_frame=args.start,
            end_frame=args.end,
            overscan=args.overscan,
            sample_duration=args.sample,
            mode=Mode.FRAMES if args.frames else Mode.ENCODE,
            fontfile=args.fontfile,
        )
        command = build_command(request)
    except (MissingParameterError, ConfigurationError) as exc:
        return _json_error(exc, EXIT_VALIDATION)

    shell = format_command(command)
    logger.debug("Request: %s", request.to_dict())

    if args.dry_run:
        return _json_out({
            "request": request.to_dict(),
            "command": command,
            "shell": shell,
        })

    print(shell, file=sys.stderr, flush=True)
    try:
        return run_ffmpeg(command)
    except ExternalToolError as exc:
        _json_error(exc)
        return exc.returncode if exc.returncode > 0 else EXIT_EXECUTION


def cmd_doctor(args) -> int:
    """Report on the local ffmpeg install."""
    from speedencode.doctor import run_doctor
    report = run_doctor(fontfile=args.fontfile)
    return _json_out(report, EXIT_SUCCESS if report["healthy"] else EXIT_SYSTEM)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="speedencode",
        description="Build an ffmpeg command for a speedrun encode with a burned-in timer",
    )
    sub = parser.add_subparsers(dest="command")

    # encode
    p = sub.add_parser(
        "encode",
        help="Encode a speedrun (or, with --frames, a frame-number reference clip)",
        usage="speedencode encode -i input.ts -o output.mp4 -s 300 -e 3000 [options]",
    )
    p.add_argument("-i", "--input", help="Input recording")
    p.add_argument("-o", "--output", help="Output MP4 file (ex. speedrun.mp4)")
    p.add_argument("-s", "--start", default="0",
                   help="Starting frame of the run (default 0); output starts here. "
                        "Frame number or MM:SS:FF")
    p.add_argument("-e", "--end",
                   help="Final frame of the run; the timer stops here. Frame number or MM:SS:FF")
    p.add_argument("--overscan", default="0", metavar="PERCENT",
                   help=f"Percentage to overscan (default 0). Possible values: {', '.join(Overscan.choices())}")
    p.add_argument("--sample", type=int, metavar="DURATION",
                   help="Limit output to DURATION seconds, useful for testing")
    p.add_argument("--frames", action="store_true", default=False,
                   help="Output a clip with frame counts around the start and finish")
    p.add_argument("--fontfile", default=_default_fontfile(),
                   help="Font used for overlays (default $SPEEDENCODE_FONTFILE or Menlo)")
    p.add_argument("-n", "--dry-run", action="store_true", default=False,
                   help="Print the command as JSON instead of running ffmpeg")
    p.add_argument("-v", "--verbose", action="store_true", default=False,
                   help="Log debug output to stderr")

    # doctor
    p = sub.add_parser("doctor", help="Check ffmpeg, required filters/encoders and the font")
    p.add_argument("--fontfile", default=_default_fontfile(), help="Font to check")
    p.add_argument("-v", "--verbose", action="store_true", default=False,
                   help="Log debug output to stderr")

    return parser


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_VALIDATION)

    _configure_logging(args.verbose)

    handlers = {
        "encode": cmd_encode,
        "doctor": cmd_doctor,
    }

    try:
        exit_code = handlers[args.command](args)
    except SpeedEncodeError as exc:
        exit_code = _json_error(exc, EXIT_SYSTEM)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
