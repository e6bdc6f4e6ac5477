"""Unit tests for the ffmpeg runner and output verifier adapters."""

from __future__ import annotations

import os
import stat
import sys
from pathlib import Path

import pytest

from anim_converter.adapters import encoders as encoders_module
from anim_converter.adapters.encoders import (
    FfmpegEncoderRunner,
    ffmpeg_version,
    parse_encoder_listing,
    resolve_ffmpeg_binary,
)
from anim_converter.adapters.verifiers import FileOutputVerifier
from anim_converter.application.results import StageEvent
from anim_converter.errors import EncodeError, VerifyError
from anim_converter.pipeline import EncodeStage, StageInput

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script")

ENCODER_LISTING = """Encoders:
 V..... = Video
 ------
 V....D gif                  GIF (Graphics Interchange Format)
 V....D libvpx-vp9           libvpx VP9 (codec vp9)
 V....D png                  PNG (Portable Network Graphics) image
"""


def _fake_ffmpeg(tmp_path: Path, body: str) -> str:
    """Write an executable script standing in for ffmpeg."""
    script = tmp_path / "fake-ffmpeg"
    script.write_text("#!/bin/sh\nfor last; do :; done\n" + body)
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return str(script)


def _stage(tmp_path: Path) -> EncodeStage:
    return EncodeStage(
        name="encode",
        inputs=(StageInput(tmp_path / "frame_%05d.png", ("-framerate", "10")),),
        output=tmp_path / "out.gif",
        filter_graph="split[s0][s1];[s0]palettegen[p];[s1][p]paletteuse",
        filter_flag="-filter_complex",
    )


def test_parse_encoder_listing() -> None:
    assert parse_encoder_listing(ENCODER_LISTING) == frozenset(
        {"gif", "libvpx-vp9", "png"}
    )


def test_resolve_prefers_configured_binary() -> None:
    assert resolve_ffmpeg_binary("/opt/ffmpeg/bin/ffmpeg") == "/opt/ffmpeg/bin/ffmpeg"


def test_resolve_wraps_missing_bundled_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing() -> str:
        raise RuntimeError("No ffmpeg exe could be found.")

    monkeypatch.setattr(encoders_module.imageio_ffmpeg, "get_ffmpeg_exe", missing)
    with pytest.raises(EncodeError, match="ffmpeg binary not found"):
        resolve_ffmpeg_binary(None)


@posix_only
def test_run_reports_start_progress_and_terminal_events(tmp_path: Path) -> None:
    """Emit start with the resolved command, progress, then terminal."""
    binary = _fake_ffmpeg(
        tmp_path,
        'echo "frame=1"\necho "progress=continue"\n'
        'echo "frame=3"\necho "progress=end"\n'
        "printf 'GIF89a' > \"$last\"\n",
    )
    events: list[StageEvent] = []
    stage = _stage(tmp_path)

    report = FfmpegEncoderRunner(binary, timeout_s=10).run(
        stage, events.append, expected_frames=3
    )

    assert report.returncode == 0
    assert report.command[0] == binary
    assert report.command[-1] == str(stage.output)
    assert "-progress" in report.command
    assert (tmp_path / "out.gif").read_bytes() == b"GIF89a"
    assert [event.kind for event in events] == ["start", "progress", "progress", "terminal"]
    assert events[0].command == report.command
    assert [event.percent for event in events[1:3]] == [pytest.approx(100 / 3), 100.0]
    assert events[-1].message == ""


@posix_only
def test_run_progress_percent_unknown_without_frame_count(tmp_path: Path) -> None:
    binary = _fake_ffmpeg(tmp_path, 'echo "frame=5"\necho "progress=end"\n')
    events: list[StageEvent] = []
    FfmpegEncoderRunner(binary).run(_stage(tmp_path), events.append)
    assert [event.percent for event in events if event.kind == "progress"] == [None]


@posix_only
def test_run_passes_engine_diagnostic_through_on_failure(tmp_path: Path) -> None:
    """Fail with the verbatim stderr text on non-zero exit."""
    binary = _fake_ffmpeg(
        tmp_path, 'echo "Invalid filter graph: paletteuse" >&2\nexit 1\n'
    )
    events: list[StageEvent] = []

    with pytest.raises(EncodeError, match="encode failed \\(exit 1\\)") as excinfo:
        FfmpegEncoderRunner(binary).run(_stage(tmp_path), events.append)

    assert excinfo.value.diagnostic == "Invalid filter graph: paletteuse"
    assert "Invalid filter graph: paletteuse" in str(excinfo.value)
    assert excinfo.value.stage == "encode"
    assert events[-1].kind == "terminal"
    assert "Invalid filter graph" in events[-1].message


@posix_only
def test_run_kills_stage_after_timeout(tmp_path: Path) -> None:
    binary = _fake_ffmpeg(tmp_path, "exec sleep 5\n")
    with pytest.raises(EncodeError, match="timed out after 0.2s"):
        FfmpegEncoderRunner(binary, timeout_s=0.2).run(_stage(tmp_path))


def test_run_reports_missing_binary(tmp_path: Path) -> None:
    runner = FfmpegEncoderRunner(str(tmp_path / "does-not-exist"))
    with pytest.raises(EncodeError, match="could not start"):
        runner.run(_stage(tmp_path))


@posix_only
def test_available_encoders_parses_listing(tmp_path: Path) -> None:
    listing = ENCODER_LISTING.replace("\n", "\\n")
    binary = _fake_ffmpeg(tmp_path, f'printf "{listing}"\n')
    encoders_module.encoder_listing.cache_clear()
    try:
        assert FfmpegEncoderRunner(binary).available_encoders() == frozenset(
            {"gif", "libvpx-vp9", "png"}
        )
    finally:
        encoders_module.encoder_listing.cache_clear()


def test_available_encoders_unknown_when_probe_fails(tmp_path: Path) -> None:
    encoders_module.encoder_listing.cache_clear()
    try:
        assert FfmpegEncoderRunner(str(tmp_path / "missing")).available_encoders() is None
    finally:
        encoders_module.encoder_listing.cache_clear()


@posix_only
def test_failed_encoder_probe_is_retried(tmp_path: Path) -> None:
    """Cache only a successful listing so one failed probe is not permanent."""
    listing = ENCODER_LISTING.replace("\n", "\\n")
    marker = tmp_path / "probed-once"
    binary = _fake_ffmpeg(
        tmp_path,
        f'if [ ! -f "{marker}" ]; then touch "{marker}"; exit 1; fi\nprintf "{listing}"\n',
    )
    encoders_module.encoder_listing.cache_clear()
    try:
        assert encoders_module.probe_encoders(binary) is None
        assert encoders_module.probe_encoders(binary) == frozenset({"gif", "libvpx-vp9", "png"})
        marker.unlink()
        assert encoders_module.probe_encoders(binary) == frozenset({"gif", "libvpx-vp9", "png"})
    finally:
        encoders_module.encoder_listing.cache_clear()


def test_verifier_returns_size_of_non_empty_file(tmp_path: Path) -> None:
    artifact = tmp_path / "out.gif"
    artifact.write_bytes(b"GIF89a")
    assert FileOutputVerifier().verify(artifact) == 6


@pytest.mark.parametrize("state", ["missing", "empty", "directory"])
def test_verifier_rejects_unusable_artifact(tmp_path: Path, state: str) -> None:
    """Treat missing, zero-byte or non-file outputs as not produced."""
    artifact = tmp_path / "out.gif"
    if state == "empty":
        artifact.write_bytes(b"")
    elif state == "directory":
        os.mkdir(artifact)
    with pytest.raises(VerifyError, match="artifact not produced"):
        FileOutputVerifier().verify(artifact)


@posix_only
def test_ffmpeg_version_reads_first_line(tmp_path: Path) -> None:
    binary = _fake_ffmpeg(tmp_path, 'echo "ffmpeg version 7.0 Copyright"\necho "built with gcc"\n')
    assert ffmpeg_version(binary) == "ffmpeg version 7.0 Copyright"


def test_ffmpeg_version_unknown_for_missing_binary(tmp_path: Path) -> None:
    assert ffmpeg_version(str(tmp_path / "missing")) is None
