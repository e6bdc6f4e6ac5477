"""Application-layer request objects."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from anim_converter.errors import InvalidRequestError
from anim_converter.schemas import ConversionRequestConfig
from anim_converter.types import OutputFormat, OutputMode


@dataclass(frozen=True)
class ConversionRequest:
    """Inputs of one pipeline run.

    Parameters
    ----------
    video : Path | None
        Single video file, converted in place without staging.
    frames : tuple[Path, ...]
        Uploaded image frames; ordered by filename during staging.
    output_format : {"gif", "avi", "webm"}
        Target container.
    transparent : bool
        Whether alpha transparency should be preserved.
    fps : int
        Target frame rate.
    """

    video: Path | None = None
    frames: tuple[Path, ...] = ()
    output_format: OutputFormat = "gif"
    transparent: bool = False
    fps: int = 10

    @property
    def output_mode(self) -> OutputMode:
        """Return ``"gif"`` for palette output, otherwise ``"transparent_video"``."""
        return "gif" if self.output_format == "gif" else "transparent_video"

    @property
    def is_video(self) -> bool:
        return self.video is not None


def build_request(
    *,
    video: Path | None = None,
    frames: Iterable[Path] = (),
    output_format: str = "gif",
    transparent: bool = False,
    fps: int = 10,
) -> ConversionRequest:
    """Validate raw parameters and build an immutable request.

    Raises
    ------
    InvalidRequestError
        If no input is given, both inputs are given, or a field is invalid.
    """
    try:
        config = ConversionRequestConfig(
            video=video,
            frames=tuple(frames),
            output_format=output_format,
            transparent=transparent,
            fps=fps,
        )
    except ValidationError as exc:
        messages = "; ".join(
            str(error["msg"]).removeprefix("Value error, ") for error in exc.errors()
        )
        raise InvalidRequestError(messages) from exc
    return ConversionRequest(
        video=config.video,
        frames=config.frames,
        output_format=config.output_format,
        transparent=config.transparent,
        fps=config.fps,
    )
