"""Top-level API for video/frame-sequence to animation conversion."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from anim_converter.settings import ServiceSettings

__version__ = "0.1.0"


def convert_video(
    video_path: Path,
    output_path: Path,
    *,
    fps: int = 10,
    output_format: str = "gif",
    transparent: bool = False,
    settings: ServiceSettings | None = None,
) -> Path:
    """Convert a video file to an animated GIF, AVI or WebM.

    Parameters
    ----------
    video_path : Path
        Source video file.
    output_path : Path
        Destination of the animation.
    fps : int, default=10
        Target frame rate; the video is resampled to it.
    output_format : {"gif", "avi", "webm"}, default="gif"
        Output container.
    transparent : bool, default=False
        Preserve alpha. GIF output then uses the two-pass palette pipeline.
    settings : ServiceSettings, optional
        Runtime settings; read from ``ANIM_CONVERTER_*`` variables when omitted.

    Returns
    -------
    Path
        ``output_path`` once the artifact has been written.
    """
    from .api import convert_video_file as _impl

    return _impl(
        video_path,
        output_path,
        fps=fps,
        output_format=output_format,
        transparent=transparent,
        settings=settings,
    )


def convert_frames(
    frame_paths: Iterable[Path],
    output_path: Path,
    *,
    fps: int = 10,
    output_format: str = "gif",
    transparent: bool = False,
    settings: ServiceSettings | None = None,
) -> Path:
    """Convert image frames to an animation.

    Frames play in ordinal filename order, so name them with zero-padded
    numbers (``frame000.png``, ``frame001.png``, ...).
    """
    from .api import convert_frame_files as _impl

    return _impl(
        frame_paths,
        output_path,
        fps=fps,
        output_format=output_format,
        transparent=transparent,
        settings=settings,
    )


__all__ = [
    "ServiceSettings",
    "convert_video",
    "convert_frames",
]
