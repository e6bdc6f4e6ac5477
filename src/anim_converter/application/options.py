"""Typed option objects shared across conversion use-cases."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PaletteOptions:
    """Palette generation/application tuning for GIF output."""

    max_colors: int = 256
    transparency_color: str = "0x00FF00"
    alpha_threshold: int = 128
    dither: str = "sierra2_4a"


@dataclass(frozen=True)
class CanvasOptions:
    """Fixed square canvas applied to video input."""

    size: int = 300


@dataclass(frozen=True)
class ConversionOptions:
    """Shared conversion options passed through use-cases."""

    palette: PaletteOptions = PaletteOptions()
    canvas: CanvasOptions = CanvasOptions()
    stage_timeout_s: float | None = 120.0
