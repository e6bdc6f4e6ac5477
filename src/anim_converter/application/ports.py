"""Application ports for clean architecture boundaries."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from anim_converter.application.results import StageEvent, StageReport, StagingResult

if TYPE_CHECKING:
    from anim_converter.pipeline import EncodeStage


class StageObserver(Protocol):
    """Receive start/progress/terminal events of encoder stages."""

    def __call__(self, event: StageEvent) -> None:
        """Handle one stage event."""


class FrameStager(Protocol):
    """Order frames and copy them into a sequence-input layout."""

    def stage(self, frames: Sequence[Path], destination: Path) -> StagingResult:
        """Stage frames into ``destination`` (which must not exist yet)."""


class EncoderRunner(Protocol):
    """Execute one encoder stage as a blocking subprocess."""

    def available_encoders(self) -> frozenset[str] | None:
        """Return encoder names the engine supports, or ``None`` if unknown."""

    def run(
        self,
        stage: EncodeStage,
        observer: StageObserver | None = None,
        expected_frames: int | None = None,
    ) -> StageReport:
        """Run ``stage`` and return its terminal report; raise on failure."""


class OutputVerifier(Protocol):
    """Gate delivery on the produced artifact."""

    def verify(self, path: Path) -> int:
        """Return the artifact size in bytes; raise if unusable."""
