"""Application-layer result objects."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from anim_converter.types import FailureStage, StageEventKind


@dataclass(frozen=True)
class StagedFrame:
    """One frame copied into the staging directory."""

    sequence_index: int
    source_path: Path
    staged_path: Path


@dataclass(frozen=True)
class StagingResult:
    """Staged frames plus the pattern the encoder reads them through."""

    directory: Path
    frames: tuple[StagedFrame, ...]
    pattern: Path
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class StageEvent:
    """Observable lifecycle event of one encoder stage."""

    kind: StageEventKind
    stage: str
    command: tuple[str, ...] = ()
    percent: float | None = None
    message: str = ""


@dataclass(frozen=True)
class StageReport:
    """Terminal result of one successful encoder stage."""

    stage: str
    command: tuple[str, ...]
    returncode: int
    diagnostic: str
    elapsed_ms: int


@dataclass(frozen=True)
class ConversionSuccess:
    """Verified artifact ready for delivery."""

    artifact_path: Path
    byte_size: int
    media_type: str
    filename: str
    stages: tuple[StageReport, ...] = ()
    warnings: tuple[str, ...] = ()
    transparency_dropped: bool = False

    ok = True


@dataclass(frozen=True)
class ConversionFailure:
    """Terminal failure of a pipeline stage."""

    stage: FailureStage
    message: str

    ok = False


type ConversionOutcome = ConversionSuccess | ConversionFailure
