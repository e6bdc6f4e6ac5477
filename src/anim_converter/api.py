"""Public file-based conversion API (delegates to application use-cases)."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable
from typing import Optional

from anim_converter.application.requests import ConversionRequest, build_request
from anim_converter.converter.core import (
    deliver_file,
    open_session,
    raise_for_outcome,
    run_conversion,
)
from anim_converter.settings import ServiceSettings


def _convert_and_deliver(
    request: ConversionRequest,
    output_path: Path,
    settings: Optional[ServiceSettings],
) -> Path:
    session = open_session(settings or ServiceSettings.from_env())
    try:
        outcome = raise_for_outcome(run_conversion(session, request))
        return deliver_file(outcome, output_path)
    finally:
        session.resources.release_all()


def convert_video_file(
    video_path: Path,
    output_path: Path,
    *,
    fps: int = 10,
    output_format: str = "gif",
    transparent: bool = False,
    settings: Optional[ServiceSettings] = None,
) -> Path:
    """Convert a video file into an animation written to ``output_path``."""
    request = build_request(
        video=video_path,
        output_format=output_format,
        transparent=transparent,
        fps=fps,
    )
    return _convert_and_deliver(request, output_path, settings)


def convert_frame_files(
    frame_paths: Iterable[Path],
    output_path: Path,
    *,
    fps: int = 10,
    output_format: str = "gif",
    transparent: bool = False,
    settings: Optional[ServiceSettings] = None,
) -> Path:
    """Convert image frames, ordered by filename, into an animation."""
    request = build_request(
        frames=frame_paths,
        output_format=output_format,
        transparent=transparent,
        fps=fps,
    )
    return _convert_and_deliver(request, output_path, settings)
