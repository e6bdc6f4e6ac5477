"""Application-layer use-cases and option objects."""

from __future__ import annotations

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
from anim_converter.application.requests import ConversionRequest, build_request
from anim_converter.application.results import (
    ConversionFailure,
    ConversionOutcome,
    ConversionSuccess,
    StagedFrame,
    StageEvent,
    StageReport,
)
from anim_converter.infrastructure.resources import ScratchSpace


def build_conversion_options(
    *,
    canvas_size: int = 300,
    stage_timeout_s: float | None = 120.0,
    max_colors: int = 256,
    transparency_color: str = "0x00FF00",
    alpha_threshold: int = 128,
) -> ConversionOptions:
    """Build typed conversion options via lazy use-case import."""
    from anim_converter.application.use_cases import build_conversion_options as _impl

    return _impl(
        canvas_size=canvas_size,
        stage_timeout_s=stage_timeout_s,
        max_colors=max_colors,
        transparency_color=transparency_color,
        alpha_threshold=alpha_threshold,
    )


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
    """Run the conversion pipeline via lazy use-case import."""
    from anim_converter.application.use_cases import convert_request as _impl

    return _impl(
        request,
        scratch=scratch,
        options=options,
        stager=stager,
        runner=runner,
        verifier=verifier,
        observer=observer,
    )


__all__ = [
    "CanvasOptions",
    "ConversionOptions",
    "PaletteOptions",
    "ConversionRequest",
    "ConversionFailure",
    "ConversionOutcome",
    "ConversionSuccess",
    "StagedFrame",
    "StageEvent",
    "StageReport",
    "build_request",
    "build_conversion_options",
    "convert_request",
]
