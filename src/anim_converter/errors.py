"""Exception hierarchy for the conversion pipeline."""

from __future__ import annotations

from anim_converter.types import FailureStage


class ConversionError(Exception):
    """Base error for all conversion failures."""


class InvalidRequestError(ConversionError, ValueError):
    """Raised when a conversion request is rejected before staging."""


class UploadTooLargeError(InvalidRequestError):
    """Raised when an uploaded file exceeds the configured size limit."""


class PipelineError(ConversionError):
    """Terminal failure of one pipeline stage."""

    stage: FailureStage = "encode"


class StagingError(PipelineError):
    """Scratch directory creation or frame copy failed."""

    stage: FailureStage = "staging"


class EncodeError(PipelineError):
    """Encoder subprocess exited non-zero or could not be started."""

    stage: FailureStage = "encode"

    def __init__(
        self,
        message: str,
        *,
        diagnostic: str = "",
        command: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic
        self.command = command


class VerifyError(PipelineError):
    """Encoder reported success but the artifact is missing or empty."""

    stage: FailureStage = "verify"


class CleanupError(ConversionError):
    """A registered temporary path could not be removed.

    Never raised to callers; collected and logged by the resource manager.
    """
