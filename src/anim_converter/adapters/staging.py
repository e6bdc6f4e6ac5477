"""Frame ordering and staging adapter."""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Sequence
from pathlib import Path

from anim_converter.application.results import StagedFrame, StagingResult
from anim_converter.errors import StagingError

logger = logging.getLogger(__name__)

FRAME_PREFIX = "frame_"
INDEX_WIDTH = 5

_DIGITS = re.compile(r"(\d+)")


def order_frames(frames: Sequence[Path]) -> list[Path]:
    """Sort frames by filename using ordinal string comparison."""
    return sorted(frames, key=lambda path: path.name)


def _natural_key(name: str) -> list[tuple[int, int | str]]:
    return [
        (0, int(part)) if part.isdigit() else (1, part)
        for part in _DIGITS.split(name)
        if part
    ]


def ordering_warning(ordered: Sequence[Path]) -> str | None:
    """Describe a likely naming mistake, or ``None`` when order looks sane.

    Flags sequences such as ``frame2.png`` / ``frame10.png`` where ordinal
    order differs from numeric order because of missing zero padding.
    """
    names = [path.name for path in ordered]
    natural = sorted(names, key=_natural_key)
    if names == natural:
        return None
    for position, (actual, expected) in enumerate(zip(names, natural, strict=True)):
        if actual != expected:
            return (
                f"frame order follows filename order; '{actual}' is staged at "
                f"index {position} but numeric order suggests '{expected}'. "
                "Zero-pad frame numbers to avoid this."
            )
    return None  # pragma: no cover


def staged_name(index: int, suffix: str) -> str:
    return f"{FRAME_PREFIX}{index:0{INDEX_WIDTH}d}{suffix}"


class FilesystemFrameStager:
    """Copy ordered frames into a fresh directory under sequential names."""

    def stage(self, frames: Sequence[Path], destination: Path) -> StagingResult:
        """Stage ``frames`` into ``destination``.

        The caller registers ``destination`` for cleanup before calling, so a
        partially populated directory is removed with the rest of the request.

        Raises
        ------
        StagingError
            If no frames are given, frames mix file extensions, the directory
            cannot be created, or a copy fails.
        """
        if not frames:
            raise StagingError("no frames to stage")
        ordered = order_frames(frames)
        suffixes = {path.suffix.lower() for path in ordered}
        if len(suffixes) != 1:
            raise StagingError(
                f"frames must share one file extension, got: {', '.join(sorted(suffixes))}"
            )
        suffix = suffixes.pop()

        try:
            destination.mkdir(parents=False, exist_ok=False)
        except OSError as exc:
            raise StagingError(f"cannot create staging directory {destination}: {exc}") from exc

        staged: list[StagedFrame] = []
        for index, source in enumerate(ordered):
            target = destination / staged_name(index, suffix)
            try:
                shutil.copyfile(source, target)
            except OSError as exc:
                raise StagingError(f"failed to stage frame {source.name}: {exc}") from exc
            staged.append(
                StagedFrame(sequence_index=index, source_path=source, staged_path=target)
            )

        warnings: tuple[str, ...] = ()
        warning = ordering_warning(ordered)
        if warning is not None:
            logger.warning(warning)
            warnings = (warning,)
        logger.debug("staged %d frames into %s", len(staged), destination)
        return StagingResult(
            directory=destination,
            frames=tuple(staged),
            pattern=destination / f"{FRAME_PREFIX}%0{INDEX_WIDTH}d{suffix}",
            warnings=warnings,
        )
