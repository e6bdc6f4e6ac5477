"""Unit tests for request validation and settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from anim_converter.application.requests import build_request
from anim_converter.errors import InvalidRequestError
from anim_converter.settings import ServiceSettings


def test_build_request_from_frames() -> None:
    request = build_request(frames=[Path("b.png"), Path("a.png")], fps=10)
    assert request.frames == (Path("b.png"), Path("a.png"))
    assert request.video is None
    assert request.output_mode == "gif"
    assert request.is_video is False


def test_build_request_normalizes_format() -> None:
    request = build_request(video=Path("clip.mp4"), output_format="  WEBM ")
    assert request.output_format == "webm"
    assert request.output_mode == "transparent_video"


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({}, "no input provided"),
        ({"frames": []}, "no input provided"),
        ({"video": Path("v.mp4"), "frames": [Path("a.png")]}, "not both"),
        ({"video": Path("v.mp4"), "fps": 0}, "greater than 0"),
        ({"video": Path("v.mp4"), "output_format": "mp4"}, "format must be one of"),
        ({"frames": [Path("x/a.png"), Path("y/a.png")]}, "unique"),
    ],
)
def test_build_request_rejects_invalid_input(
    kwargs: dict[str, object], message: str
) -> None:
    """Reject missing, conflicting or malformed request fields."""
    with pytest.raises(InvalidRequestError, match=message):
        build_request(**kwargs)  # type: ignore[arg-type]


def test_invalid_request_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        build_request()


def test_settings_defaults() -> None:
    settings = ServiceSettings.from_env({})
    assert settings.ffmpeg_binary is None
    assert settings.stage_timeout_s == 120.0
    assert settings.max_upload_bytes == 50 * 1024 * 1024
    assert settings.canvas_size == 300
    assert settings.scratch_dir.name == "anim-converter"


def test_settings_from_env(tmp_path: Path) -> None:
    settings = ServiceSettings.from_env(
        {
            "ANIM_CONVERTER_SCRATCH_DIR": str(tmp_path),
            "ANIM_CONVERTER_FFMPEG": "/opt/ffmpeg",
            "ANIM_CONVERTER_STAGE_TIMEOUT": "5.5",
            "ANIM_CONVERTER_MAX_UPLOAD_BYTES": "1024",
            "ANIM_CONVERTER_CANVAS_SIZE": "128",
            "ANIM_CONVERTER_DEFAULT_FPS": "24",
            "ANIM_CONVERTER_UNRELATED": "ignored",
        }
    )
    assert settings.scratch_dir == tmp_path
    assert settings.ffmpeg_binary == "/opt/ffmpeg"
    assert settings.stage_timeout_s == 5.5
    assert settings.max_upload_bytes == 1024
    assert settings.canvas_size == 128
    assert settings.default_fps == 24


def test_settings_blank_values_use_defaults() -> None:
    settings = ServiceSettings.from_env({"ANIM_CONVERTER_FFMPEG": "   "})
    assert settings.ffmpeg_binary is None


def test_settings_reject_non_positive_timeout() -> None:
    with pytest.raises(ValidationError):
        ServiceSettings.from_env({"ANIM_CONVERTER_STAGE_TIMEOUT": "0"})
