"""Shared test fixtures: request factories and fake ffmpeg binaries."""

import stat

import pytest

from speedencode.ffmpeg import reset_cache
from speedencode.models import EncodeRequest

FONT = "/fonts/Menlo.ttc"


@pytest.fixture
def make_request():
    """Build an EncodeRequest with sensible defaults for the fields a test doesn't care about."""
    def _make(**overrides) -> EncodeRequest:
        fields = {
            "input": "run.ts",
            "output": "run.mp4",
            "start_frame": 300,
            "end_frame": 3000,
            "fontfile": FONT,
        }
        fields.update(overrides)
        return EncodeRequest(**fields)
    return _make


@pytest.fixture
def fake_ffmpeg(tmp_path, monkeypatch):
    """Write an executable shell script and point SPEEDENCODE_FFMPEG at it."""
    def _install(body: str) -> str:
        path = tmp_path / "ffmpeg"
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        monkeypatch.setenv("SPEEDENCODE_FFMPEG", str(path))
        reset_cache()
        return str(path)

    yield _install
    reset_cache()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's own configuration out of the tests."""
    for key in ("SPEEDENCODE_FFMPEG", "SPEEDENCODE_FFMPEG_DIR", "SPEEDENCODE_FONTFILE"):
        monkeypatch.delenv(key, raising=False)
    reset_cache()
    yield
    reset_cache()

