"""Tests for speedencode.cli: argument parsing, JSON output, and exit codes."""

from __future__ import annotations

import json
import os
import stat
import subprocess
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent
FONT = "/fonts/Menlo.ttc"

requires_posix = pytest.mark.skipif(
    sys.platform == "win32",
    reason="fake ffmpeg binaries are POSIX shell scripts",
)


def _run_cli(*args: str, env: dict | None = None) -> subprocess.CompletedProcess:
    """Run the speedencode CLI as a subprocess and return the result."""
    cmd = [sys.executable, "-m", "speedencode"] + list(args)
    full_env = {k: v for k, v in os.environ.items() if not k.startswith("SPEEDENCODE_")}
    full_env["SPEEDENCODE_FONTFILE"] = FONT
    full_env.update(env or {})
    return subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        timeout=60,
        cwd=str(REPO_ROOT),
        env=full_env,
    )


def _fake_ffmpeg(tmp_path: Path, body: str) -> str:
    path = tmp_path / "ffmpeg"
    path.write_text("#!/bin/sh\n" + body + "\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


class TestDryRun:
    def test_encode_command(self):
        result = _run_cli("encode", "-i", "run.ts", "-o", "run.mp4", "-s", "300", "-e", "3000", "--dry-run")
        assert result.returncode == 0, result.stderr
        data = json.loads(result.stdout)
        assert data["command"][0] == "ffmpeg"
        assert data["command"][-1] == "run.mp4"
        vf = data["command"][data["command"].index("-vf") + 1]
        assert "text='00\\:01\\:30\\:00'" in vf
        assert f"fontfile={FONT}" in vf
        assert "atrim=start_sample=480000,asetpts=PTS-STARTPTS" in data["command"]
        assert data["shell"].startswith("ffmpeg -i run.ts -vf ")
        assert data["request"]["end_frame"] == 3000

    def test_timecode_triplets(self):
        result = _run_cli("encode", "-i", "run.ts", "-o", "run.mp4", "-s", "00:10:00", "-e", "01:40:00", "-n")
        assert result.returncode == 0, result.stderr
        data = json.loads(result.stdout)
        assert data["request"]["start_frame"] == 300
        assert data["request"]["end_frame"] == 3000

    def test_overscan_and_sample(self):
        result = _run_cli(
            "encode", "-i", "run.ts", "-o", "run.mp4", "-e", "3000",
            "--overscan", "6.25", "--sample", "10", "-n",
        )
        assert result.returncode == 0, result.stderr
        command = json.loads(result.stdout)["command"]
        assert "crop=600:450,scale=640:480" in command[command.index("-vf") + 1]
        assert command[command.index("-t") + 1] == "10"

    def test_frames_mode(self):
        result = _run_cli("encode", "-i", "run.ts", "-o", "frames.mp4", "-s", "600", "-e", "3000", "--frames", "-n")
        assert result.returncode == 0, result.stderr
        data = json.loads(result.stdout)
        assert data["request"]["mode"] == "frames"
        assert "-filter_complex" in data["command"]
        assert data["command"][data["command"].index("-map") + 1] == "[out]"

    def test_frames_mode_without_end(self):
        result = _run_cli("encode", "-i", "run.ts", "-o", "frames.mp4", "-s", "600", "--frames", "-n")
        assert result.returncode == 0, result.stderr
        graph = json.loads(result.stdout)["command"][4]
        assert graph.endswith("[out]")
        assert "concat" not in graph

    def test_fontfile_flag_overrides_env(self):
        result = _run_cli(
            "encode", "-i", "run.ts", "-o", "run.mp4", "-e", "30", "--fontfile", "/other.ttf", "-n",
        )
        assert result.returncode == 0, result.stderr
        assert "fontfile=/other.ttf" in json.loads(result.stdout)["shell"]


class TestValidationErrors:
    def test_missing_end(self):
        result = _run_cli("encode", "-i", "run.ts", "-o", "run.mp4", "-n")
        assert result.returncode == 1
        data = json.loads(result.stdout)
        assert data["error"] is True
        assert data["code"] == "MISSING_END_FRAME"
        assert data["recovery"]

    def test_missing_input(self):
        result = _run_cli("encode", "-o", "run.mp4", "-e", "3000", "-n")
        assert result.returncode == 1
        data = json.loads(result.stdout)
        assert data["code"] == "MISSING_INPUT"
        assert any("encode -h" in hint for hint in data["recovery"])

    @pytest.mark.parametrize("percent", ["4", "7.5", "ten", "5.0"])
    def test_invalid_overscan(self, percent):
        result = _run_cli("encode", "-i", "a.ts", "-o", "b.mp4", "-e", "30", "--overscan", percent, "-n")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "INVALID_OVERSCAN"

    def test_end_before_start(self):
        result = _run_cli("encode", "-i", "a.ts", "-o", "b.mp4", "-s", "100", "-e", "50", "-n")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "END_BEFORE_START"

    def test_bad_frame(self):
        result = _run_cli("encode", "-i", "a.ts", "-o", "b.mp4", "-e", "soon", "-n")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "INVALID_FRAME"

    def test_zero_sample(self):
        result = _run_cli("encode", "-i", "a.ts", "-o", "b.mp4", "-e", "30", "--sample", "0", "-n")
        assert result.returncode == 1
        assert json.loads(result.stdout)["code"] == "INVALID_SAMPLE_DURATION"

    def test_non_integer_sample_is_a_usage_error(self):
        result = _run_cli("encode", "-i", "a.ts", "-o", "b.mp4", "-e", "30", "--sample", "abc")
        assert result.returncode == 2
        assert "usage:" in result.stderr

    def test_no_command_prints_help(self):
        result = _run_cli()
        assert result.returncode == 1
        assert "usage:" in result.stdout


@requires_posix
class TestExecute:
    def test_runs_ffmpeg_and_prints_command(self, tmp_path):
        fake = _fake_ffmpeg(tmp_path, 'printf "%s\\n" "$@" > "$(dirname "$0")/argv.txt"')
        result = _run_cli(
            "encode", "-i", "run.ts", "-o", "run.mp4", "-e", "30",
            env={"SPEEDENCODE_FFMPEG": fake},
        )
        assert result.returncode == 0, result.stdout
        assert result.stderr.startswith("ffmpeg -i run.ts")
        argv = (tmp_path / "argv.txt").read_text().splitlines()
        assert argv[:2] == ["-i", "run.ts"]
        assert argv[-1] == "run.mp4"

    def test_propagates_ffmpeg_exit_status(self, tmp_path):
        fake = _fake_ffmpeg(tmp_path, "exit 4")
        result = _run_cli(
            "encode", "-i", "run.ts", "-o", "run.mp4", "-e", "30",
            env={"SPEEDENCODE_FFMPEG": fake},
        )
        assert result.returncode == 4
        data = json.loads(result.stdout)
        assert data["code"] == "FFMPEG_FAILED"
        assert data["context"]["returncode"] == 4

    def test_validation_error_does_not_run_ffmpeg(self, tmp_path):
        fake = _fake_ffmpeg(tmp_path, 'touch "$(dirname "$0")/ran"')
        result = _run_cli(
            "encode", "-i", "run.ts", "-o", "run.mp4",
            env={"SPEEDENCODE_FFMPEG": fake},
        )
        assert result.returncode == 1
        assert not (tmp_path / "ran").exists()


class TestDoctorCommand:
    def test_outputs_report(self):
        result = _run_cli("doctor")
        assert result.returncode in (0, 3)
        data = json.loads(result.stdout)
        assert "healthy" in data
        assert any(c["name"] == "fontfile" for c in data["checks"])
