"""Application use-cases orchestrating conversion workflows."""

from __future__ import annotations

import logging

from anim_converter.adapters.encoders import FfmpegEncoderRunner
from anim_converter.adapters.staging import FilesystemFrameStager
from anim_converter.adapters.verifiers import FileOutputVerifier
from anim_converter.application.options import (
    CanvasOptions,
    ConversionOptions,
    PaletteOptions,
)
from anim_converter.application.ports import (
    EncoderRunner,
    FrameStager,
    OutputVerifier,
    StageObserver,
)
from anim_converter.application.requests import ConversionRequest
from anim_converter.application.results import (
    ConversionFailure,
    ConversionOutcome,
    ConversionSuccess,
    StageReport,
)
from anim_converter.errors import PipelineError
from anim_converter.infrastructure.resources import ScratchSpace
from anim_converter.pipeline import PipelinePlan, PipelineSource, build_plan
from anim_converter.types import MEDIA_TYPES

logger = logging.getLogger(__name__)


def run_plan(
    plan: PipelinePlan,
    runner: EncoderRunner,
    *,
    observer: StageObserver | None = None,
    expected_frames: int | None = None,
) -> tuple[StageReport, ...]:
    """Run plan stages in order; the first failing stage aborts the rest."""
    reports: list[StageReport] = []
    intermediates = set(plan.intermediates)
    for stage in plan.stages:
        # Intermediate outputs such as the palette are not frame sequences.
        frames = None if stage.output in intermediates else expected_frames
        reports.append(runner.run(stage, observer, frames))
    return tuple(reports)


def convert_request(
    request: ConversionRequest,
    *,
    scratch: ScratchSpace,
    options: ConversionOptions,
    stager: FrameStager | None = None,
    runner: EncoderRunner | None = None,
    verifier: OutputVerifier | None = None,
    observer: StageObserver | None = None,
) -> ConversionOutcome:
    """Use-case: stage, encode and verify one request.

    Every path created here is registered on ``scratch.resources``; releasing
    them stays with the caller, which must do so after delivery or failure.
    Stage failures are returned as :class:`ConversionFailure`; anything else
    propagates.
    """
    stager = stager or FilesystemFrameStager()
    runner = runner or FfmpegEncoderRunner(timeout_s=options.stage_timeout_s)
    verifier = verifier or FileOutputVerifier()
    resources = scratch.resources
    warnings: list[str] = []

    try:
        scratch.ensure_base()
        if request.video is not None:
            source = PipelineSource(path=request.video, is_video=True)
        else:
            staging_dir = resources.register(scratch.frames_dir())
            staging = stager.stage(request.frames, staging_dir)
            warnings.extend(staging.warnings)
            source = PipelineSource(
                path=staging.pattern,
                is_video=False,
                frame_count=len(staging.frames),
            )

        output_path = resources.register(scratch.output_path(request.output_format))
        available = (
            runner.available_encoders()
            if request.output_mode == "transparent_video"
            else None
        )
        plan = build_plan(
            request,
            source,
            output_path=output_path,
            palette_path=scratch.palette_path(),
            options=options,
            available_encoders=available,
        )
        for intermediate in plan.intermediates:
            resources.register(intermediate)
        if plan.transparency_dropped:
            codec = plan.codec.encoder if plan.codec else "default"
            message = (
                f"transparency not supported by the available {request.output_format} "
                f"encoder ({codec}); output is opaque"
            )
            logger.warning("request %s: %s", scratch.request_id, message)
            warnings.append(message)

        logger.info(
            "request %s: running %d-stage %s pipeline",
            scratch.request_id,
            len(plan.stages),
            request.output_format,
        )
        reports = run_plan(
            plan,
            runner,
            observer=observer,
            expected_frames=source.frame_count,
        )
        byte_size = verifier.verify(plan.output)
    except PipelineError as exc:
        logger.error(
            "request %s failed during %s: %s", scratch.request_id, exc.stage, exc
        )
        return ConversionFailure(stage=exc.stage, message=str(exc))

    return ConversionSuccess(
        artifact_path=plan.output,
        byte_size=byte_size,
        media_type=MEDIA_TYPES[request.output_format],
        filename=f"animation.{request.output_format}",
        stages=reports,
        warnings=tuple(warnings),
        transparency_dropped=plan.transparency_dropped,
    )


def build_conversion_options(
    *,
    canvas_size: int = 300,
    stage_timeout_s: float | None = 120.0,
    max_colors: int = 256,
    transparency_color: str = "0x00FF00",
    alpha_threshold: int = 128,
) -> ConversionOptions:
    """Build typed option object from command/API params."""
    return ConversionOptions(
        palette=PaletteOptions(
            max_colors=max_colors,
            transparency_color=transparency_color,
            alpha_threshold=alpha_threshold,
        ),
        canvas=CanvasOptions(size=canvas_size),
        stage_timeout_s=stage_timeout_s,
    )
