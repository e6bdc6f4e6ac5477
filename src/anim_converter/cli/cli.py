#!/usr/bin/env python3
"""
anim_converter.cli.cli

Typer-based CLI for turning a video or a set of image frames into an animated
GIF, AVI or WebM.

Examples
--------
Convert a clip into a 300x300 GIF at 15 fps:

    anim-converter video clip.mp4 clip.gif --fps 15

Convert zero-padded frames into a transparent GIF:

    anim-converter frames frame000.png frame001.png frame002.png \\
        --output anim.gif --transparent
"""

from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path

import typer

from anim_converter.errors import ConversionError

app = typer.Typer(
    name="anim-converter",
    help="Convert videos or image frames to animated GIF / AVI / WebM.",
    no_args_is_help=True,
)

FPS_HELP = "Target frame rate."
FORMAT_HELP = "Output format: gif, avi or webm."
TRANSPARENT_HELP = "Preserve alpha transparency (two-pass palette for GIF)."

ALPHA_ENCODERS = ("png", "libvpx-vp9", "libvpx")


def _print_conversion_error(exc: Exception, debug: bool) -> int:
    """Print a user-friendly conversion error.

    Parameters
    ----------
    exc : Exception
        Exception raised during conversion.
    debug : bool
        Whether to include traceback details.

    Returns
    -------
    int
        Process exit code.
    """
    stage = getattr(exc, "stage", None)
    label = f"{type(exc).__name__} ({stage})" if stage else type(exc).__name__
    typer.echo(f"✗ {label}: {exc}", err=True)
    if debug:
        typer.echo("\nTraceback:", err=True)
        typer.echo("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)), err=True)
    return 1


# -----------------------------
# Global options
# -----------------------------
@app.callback()
def _main(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Show full tracebacks on error."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log encoder stages."),
) -> None:
    """Initialize shared CLI state.

    Parameters
    ----------
    ctx : typer.Context
        Typer context object used to store shared state.
    debug : bool, default=False
        Whether to enable debug error output.
    verbose : bool, default=False
        Whether to log stage start/finish events.
    """
    if verbose or debug:
        logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)
    ctx.obj = {"debug": debug}


# -----------------------------
# Commands
# -----------------------------
@app.command("video")
def video_cmd(
    ctx: typer.Context,
    video_path: Path = typer.Argument(
        ...,
        exists=True,
        readable=True,
        dir_okay=False,
        help="Source video file.",
    ),
    output_path: Path = typer.Argument(..., help="Where to write the animation."),
    fps: int = typer.Option(10, "--fps", min=1, help=FPS_HELP),
    output_format: str = typer.Option("gif", "--format", help=FORMAT_HELP),
    transparent: bool = typer.Option(False, "--transparent", help=TRANSPARENT_HELP),
) -> None:
    """Convert a video to an animation on a fixed square canvas."""
    debug: bool = bool(ctx.obj.get("debug", False))
    try:
        from anim_converter.api import convert_video_file

        out = convert_video_file(
            video_path,
            output_path,
            fps=fps,
            output_format=output_format,
            transparent=transparent,
        )
        typer.echo(f"✓ Saved: {out}")
    except ConversionError as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))
    except Exception as exc:
        # Unexpected crash: still show a clean message; debug prints traceback.
        raise typer.Exit(code=_print_conversion_error(exc, debug))


@app.command("frames")
def frames_cmd(
    ctx: typer.Context,
    frame_paths: list[Path] = typer.Argument(
        ...,
        exists=True,
        readable=True,
        dir_okay=False,
        help="Image frames; played in filename order.",
    ),
    output_path: Path = typer.Option(..., "--output", "-o", help="Where to write the animation."),
    fps: int = typer.Option(10, "--fps", min=1, help=FPS_HELP),
    output_format: str = typer.Option("gif", "--format", help=FORMAT_HELP),
    transparent: bool = typer.Option(False, "--transparent", help=TRANSPARENT_HELP),
) -> None:
    """Convert image frames to an animation.

    Notes
    -----
    - Frames are ordered by ordinal filename comparison, so ``frame10.png``
      sorts before ``frame2.png``; zero-pad frame numbers.
    """
    debug: bool = bool(ctx.obj.get("debug", False))
    try:
        from anim_converter.api import convert_frame_files

        out = convert_frame_files(
            frame_paths,
            output_path,
            fps=fps,
            output_format=output_format,
            transparent=transparent,
        )
        typer.echo(f"✓ Saved: {out}")
    except ConversionError as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))
    except Exception as exc:
        raise typer.Exit(code=_print_conversion_error(exc, debug))


@app.command("doctor")
def doctor_cmd() -> None:
    """Print the ffmpeg toolchain and alpha-capable encoder availability."""
    from anim_converter.adapters.encoders import (
        ffmpeg_version,
        probe_encoders,
        resolve_ffmpeg_binary,
    )
    from anim_converter.settings import ServiceSettings

    typer.echo(f"Python: {sys.version.split()[0]}")
    settings = ServiceSettings.from_env()
    typer.echo(f"scratch dir: {settings.scratch_dir}")
    try:
        binary = resolve_ffmpeg_binary(settings.ffmpeg_binary)
    except ConversionError as exc:
        typer.echo(f"ffmpeg: <not found> ({exc})")
        raise typer.Exit(code=1)
    typer.echo(f"ffmpeg: {binary}")
    typer.echo(f"ffmpeg version: {ffmpeg_version(binary) or '<unknown>'}")

    encoders = probe_encoders(binary)
    if encoders is None:
        typer.echo("encoders: <unavailable>")
        return
    for name in ALPHA_ENCODERS:
        state = "yes" if name in encoders else "no"
        typer.echo(f"{name}: {state}")


if __name__ == "__main__":
    app()
