"""Shared conversion-service core utilities."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from anim_converter.adapters.encoders import FfmpegEncoderRunner
from anim_converter.application.options import ConversionOptions
from anim_converter.application.ports import EncoderRunner, StageObserver
from anim_converter.application.results import (
    ConversionFailure,
    ConversionOutcome,
    ConversionSuccess,
)
from anim_converter.application.requests import ConversionRequest
from anim_converter.errors import (
    ConversionError,
    EncodeError,
    InvalidRequestError,
    PipelineError,
    StagingError,
    UploadTooLargeError,
    VerifyError,
)
from anim_converter.infrastructure.resources import ResourceSet, ScratchSpace
from anim_converter.settings import ServiceSettings

UPLOAD_CHUNK_BYTES = 1024 * 1024

_FAILURE_ERRORS: dict[str, type[PipelineError]] = {
    "staging": StagingError,
    "encode": EncodeError,
    "verify": VerifyError,
}


@dataclass(frozen=True)
class ConversionSession:
    """Resources and scratch layout owned by one in-flight request."""

    settings: ServiceSettings
    resources: ResourceSet
    scratch: ScratchSpace

    @property
    def request_id(self) -> str:
        return self.resources.request_id


def open_session(settings: ServiceSettings) -> ConversionSession:
    """Start a request with a fresh, uniquely named resource set."""
    resources = ResourceSet()
    return ConversionSession(
        settings=settings,
        resources=resources,
        scratch=ScratchSpace(settings.scratch_dir, resources),
    )


def options_from_settings(settings: ServiceSettings) -> ConversionOptions:
    from anim_converter.application.use_cases import build_conversion_options

    return build_conversion_options(
        canvas_size=settings.canvas_size,
        stage_timeout_s=settings.stage_timeout_s,
    )


def safe_input_filename(filename: str, default: str = "upload.bin") -> str:
    """Return a filesystem-safe upload filename for scratch-dir writes."""
    raw = filename.strip()
    if not raw:
        return default
    # Normalize Windows-style separators before basename extraction.
    normalized = raw.replace("\\", "/")
    candidate = Path(normalized).name
    if candidate in {"", ".", ".."}:
        return default
    return candidate


def save_upload(
    session: ConversionSession,
    upload_dir: Path,
    filename: str,
    source: BinaryIO,
    *,
    limit: int | None = None,
) -> Path:
    """Copy one uploaded stream to disk under its sanitized name and track it.

    The stream is written in chunks; a partial file left by a rejected upload
    stays registered for release.

    Raises
    ------
    UploadTooLargeError
        If more than ``limit`` bytes are read.
    InvalidRequestError
        If the name collides with an earlier upload or the stream is empty.
    """
    path = upload_dir / safe_input_filename(filename)
    if path.exists():
        raise InvalidRequestError(f"duplicate upload filename: {path.name}")
    session.resources.register(path)
    written = 0
    with path.open("wb") as handle:
        while chunk := source.read(UPLOAD_CHUNK_BYTES):
            written += len(chunk)
            if limit is not None and written > limit:
                raise UploadTooLargeError(f"uploaded file exceeds {limit} bytes")
            handle.write(chunk)
    if written == 0:
        raise InvalidRequestError(f"uploaded file is empty: {path.name}")
    return path


def run_conversion(
    session: ConversionSession,
    request: ConversionRequest,
    *,
    runner: EncoderRunner | None = None,
    observer: StageObserver | None = None,
) -> ConversionOutcome:
    """Run the pipeline for ``request`` inside ``session``'s scratch space."""
    from anim_converter.application.use_cases import convert_request

    settings = session.settings
    return convert_request(
        request,
        scratch=session.scratch,
        options=options_from_settings(settings),
        runner=runner
        or FfmpegEncoderRunner(settings.ffmpeg_binary, timeout_s=settings.stage_timeout_s),
        observer=observer,
    )


def raise_for_outcome(outcome: ConversionOutcome) -> ConversionSuccess:
    """Return a success outcome or raise the matching stage error."""
    if isinstance(outcome, ConversionFailure):
        raise _FAILURE_ERRORS[outcome.stage](outcome.message)
    return outcome


def deliver_file(outcome: ConversionSuccess, destination: Path) -> Path:
    """Copy the verified artifact to ``destination``."""
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(outcome.artifact_path, destination)
    except OSError as exc:
        raise ConversionError(f"failed to write {destination}: {exc}") from exc
    return destination
