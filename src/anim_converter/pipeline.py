"""Encoder pipeline planning.

A conversion is described as an explicit :class:`PipelinePlan` value: an ordered
tuple of one or two :class:`EncodeStage` descriptors. Whether a request needs the
two-pass palette pipeline is decided here, as data, and executed later by a
single loop that stops at the first failing stage.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from anim_converter.application.options import (
    CanvasOptions,
    ConversionOptions,
    PaletteOptions,
)
from anim_converter.application.requests import ConversionRequest
from anim_converter.errors import EncodeError
from anim_converter.types import OutputFormat

BASE_ARGS: tuple[str, ...] = ("-hide_banner", "-y", "-v", "error")


@dataclass(frozen=True)
class StageInput:
    """One ``-i`` input of a stage plus the options placed before it."""

    path: Path
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class EncodeStage:
    """One encoder invocation with declared inputs and exactly one output."""

    name: str
    inputs: tuple[StageInput, ...]
    output: Path
    filter_graph: str = ""
    filter_flag: str = "-vf"
    output_args: tuple[str, ...] = ()

    def command(self, binary: str, extra_args: Sequence[str] = ()) -> list[str]:
        """Resolve the full argument list for ``binary``."""
        cmd = [binary, *BASE_ARGS, *extra_args]
        for item in self.inputs:
            cmd.extend(item.options)
            cmd.extend(["-i", str(item.path)])
        if self.filter_graph:
            cmd.extend([self.filter_flag, self.filter_graph])
        cmd.extend(self.output_args)
        cmd.append(str(self.output))
        return cmd


@dataclass(frozen=True)
class CodecProfile:
    """Encoder choice for a container, with its opaque and alpha pixel formats."""

    encoder: str
    pix_fmt: str
    alpha_pix_fmt: str | None = None
    extra_args: tuple[str, ...] = ()

    @property
    def supports_alpha(self) -> bool:
        return self.alpha_pix_fmt is not None


# First available candidate wins.
CODEC_CANDIDATES: dict[OutputFormat, tuple[CodecProfile, ...]] = {
    "avi": (
        CodecProfile("png", "rgb24", alpha_pix_fmt="rgba"),
        CodecProfile("mjpeg", "yuvj420p", extra_args=("-q:v", "3")),
    ),
    "webm": (
        CodecProfile(
            "libvpx-vp9",
            "yuv420p",
            alpha_pix_fmt="yuva420p",
            extra_args=("-b:v", "0", "-crf", "32"),
        ),
        CodecProfile(
            "libvpx",
            "yuv420p",
            alpha_pix_fmt="yuva420p",
            extra_args=("-b:v", "1M", "-auto-alt-ref", "0"),
        ),
    ),
}


@dataclass(frozen=True)
class PipelineSource:
    """Where the encoder reads frames from.

    For video input ``path`` is the uploaded file; for frame input it is the
    staged ``image2`` pattern (e.g. ``frame_%05d.png``).
    """

    path: Path
    is_video: bool
    frame_count: int | None = None

    def stage_input(self, fps: int) -> StageInput:
        if self.is_video:
            return StageInput(self.path)
        return StageInput(self.path, ("-framerate", str(fps)))


@dataclass(frozen=True)
class PipelinePlan:
    """Ordered encoder stages for one request.

    Raises
    ------
    ValueError
        If a stage consumes an output that no earlier stage produces, two stages
        share an output, or more than one inter-stage dependency exists.
    """

    stages: tuple[EncodeStage, ...]
    codec: CodecProfile | None = None
    transparency_dropped: bool = False

    def __post_init__(self) -> None:
        if not 1 <= len(self.stages) <= 2:
            raise ValueError("a pipeline plan has one or two stages.")
        declared = {stage.output for stage in self.stages}
        produced: set[Path] = set()
        edges = 0
        for stage in self.stages:
            for item in stage.inputs:
                if item.path not in declared:
                    continue
                if item.path not in produced:
                    raise ValueError(
                        f"stage '{stage.name}' consumes {item.path} before it is produced."
                    )
                edges += 1
            if stage.output in produced:
                raise ValueError(f"output {stage.output} is produced twice.")
            produced.add(stage.output)
        if edges > 1:
            raise ValueError("a pipeline plan allows at most one stage dependency.")

    @property
    def output(self) -> Path:
        """Final artifact path."""
        return self.stages[-1].output

    @property
    def intermediates(self) -> tuple[Path, ...]:
        return tuple(stage.output for stage in self.stages[:-1])


def source_filters(
    source: PipelineSource,
    *,
    fps: int,
    transparent: bool,
    canvas: CanvasOptions,
) -> list[str]:
    """Resample and letterbox video input onto the square canvas.

    Frame sequences already carry their rate via ``-framerate`` and keep their
    own dimensions, so no filters are added for them.
    """
    if not source.is_video:
        return []
    size = canvas.size
    filters = [
        f"fps={fps}",
        f"scale={size}:{size}:force_original_aspect_ratio=decrease:flags=lanczos",
    ]
    if transparent:
        filters.append("format=rgba")
        filters.append(f"pad={size}:{size}:(ow-iw)/2:(oh-ih)/2:color=black@0")
    else:
        filters.append(f"pad={size}:{size}:(ow-iw)/2:(oh-ih)/2:color=black")
    return filters


def select_codec(
    output_format: OutputFormat,
    *,
    transparent: bool,
    available: frozenset[str] | None,
) -> tuple[CodecProfile, bool]:
    """Pick the codec for a video container.

    Returns the profile and whether a transparency request had to be dropped
    because no alpha-capable encoder is available.
    """
    candidates = CODEC_CANDIDATES[output_format]
    usable = [
        candidate
        for candidate in candidates
        if available is None or candidate.encoder in available
    ]
    if not usable:
        tried = ", ".join(candidate.encoder for candidate in candidates)
        raise EncodeError(f"no encoder available for {output_format} output (tried: {tried})")
    if not transparent:
        return usable[0], False
    for candidate in usable:
        if candidate.supports_alpha:
            return candidate, False
    return usable[0], True


def _gif_single_pass(
    source: PipelineSource,
    request: ConversionRequest,
    output_path: Path,
    options: ConversionOptions,
) -> PipelinePlan:
    palette = options.palette
    prefix = source_filters(
        source, fps=request.fps, transparent=False, canvas=options.canvas
    )
    graph = (
        ",".join([*prefix, "split[s0][s1]"])
        + f";[s0]palettegen=max_colors={palette.max_colors}:reserve_transparent=0[p]"
        + f";[s1][p]paletteuse=dither={palette.dither}"
    )
    stage = EncodeStage(
        name="encode",
        inputs=(source.stage_input(request.fps),),
        output=output_path,
        filter_graph=graph,
        filter_flag="-filter_complex",
        output_args=("-loop", "0"),
    )
    return PipelinePlan(stages=(stage,))


def _gif_two_pass(
    source: PipelineSource,
    request: ConversionRequest,
    output_path: Path,
    palette_path: Path,
    options: ConversionOptions,
) -> PipelinePlan:
    palette: PaletteOptions = options.palette
    prefix = source_filters(
        source, fps=request.fps, transparent=True, canvas=options.canvas
    )
    generate = EncodeStage(
        name="palettegen",
        inputs=(source.stage_input(request.fps),),
        output=palette_path,
        filter_graph=",".join(
            [
                *prefix,
                f"palettegen=max_colors={palette.max_colors}:reserve_transparent=1"
                f":transparency_color={palette.transparency_color}:stats_mode=full",
            ]
        ),
        output_args=("-frames:v", "1"),
    )
    apply_filter = (
        f"paletteuse=dither={palette.dither}:alpha_threshold={palette.alpha_threshold}"
    )
    if prefix:
        graph = f"[0:v]{','.join(prefix)}[x];[x][1:v]{apply_filter}"
    else:
        graph = f"[0:v][1:v]{apply_filter}"
    apply = EncodeStage(
        name="paletteuse",
        inputs=(source.stage_input(request.fps), StageInput(palette_path)),
        output=output_path,
        filter_graph=graph,
        filter_flag="-filter_complex",
        output_args=("-loop", "0"),
    )
    return PipelinePlan(stages=(generate, apply))


def _video_container(
    source: PipelineSource,
    request: ConversionRequest,
    output_path: Path,
    options: ConversionOptions,
    available_encoders: frozenset[str] | None,
) -> PipelinePlan:
    codec, dropped = select_codec(
        request.output_format,
        transparent=request.transparent,
        available=available_encoders,
    )
    keep_alpha = request.transparent and not dropped
    prefix = source_filters(
        source, fps=request.fps, transparent=keep_alpha, canvas=options.canvas
    )
    pix_fmt = codec.alpha_pix_fmt if keep_alpha and codec.alpha_pix_fmt else codec.pix_fmt
    stage = EncodeStage(
        name="encode",
        inputs=(source.stage_input(request.fps),),
        output=output_path,
        filter_graph=",".join(prefix),
        output_args=("-an", "-c:v", codec.encoder, "-pix_fmt", pix_fmt, *codec.extra_args),
    )
    return PipelinePlan(stages=(stage,), codec=codec, transparency_dropped=dropped)


def build_plan(
    request: ConversionRequest,
    source: PipelineSource,
    *,
    output_path: Path,
    palette_path: Path,
    options: ConversionOptions,
    available_encoders: frozenset[str] | None = None,
) -> PipelinePlan:
    """Build the stage plan for ``request``.

    GIF output uses the two-pass palettegen/paletteuse pipeline when
    transparency is requested and a single fused pass otherwise. AVI and WebM
    always use one stage with the first available codec for the container.
    """
    if request.output_format == "gif":
        if request.transparent:
            return _gif_two_pass(source, request, output_path, palette_path, options)
        return _gif_single_pass(source, request, output_path, options)
    return _video_container(source, request, output_path, options, available_encoders)
