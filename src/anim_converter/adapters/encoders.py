"""FFmpeg subprocess adapter for encoder stages."""

from __future__ import annotations

import functools
import logging
import shlex
import subprocess
import tempfile
import threading
import time
from typing import IO, cast

import imageio_ffmpeg

from anim_converter.application.ports import StageObserver
from anim_converter.application.results import StageEvent, StageReport
from anim_converter.errors import EncodeError
from anim_converter.pipeline import EncodeStage

logger = logging.getLogger(__name__)

PROGRESS_ARGS: tuple[str, ...] = ("-nostats", "-progress", "pipe:1")


def resolve_ffmpeg_binary(configured: str | None = None) -> str:
    """Return the configured ffmpeg path, else the ``imageio-ffmpeg`` one.

    Raises
    ------
    EncodeError
        If no ffmpeg executable can be located.
    """
    if configured:
        return configured
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError as exc:
        raise EncodeError(f"ffmpeg binary not found: {exc}") from exc


@functools.lru_cache(maxsize=8)
def encoder_listing(binary: str) -> frozenset[str]:
    """List encoder names reported by ``ffmpeg -encoders``.

    Only successful listings are cached; failures raise and are retried on the
    next call.
    """
    completed = subprocess.run(
        [binary, "-hide_banner", "-encoders"],
        capture_output=True,
        text=True,
        timeout=30,
        check=True,
    )
    return parse_encoder_listing(completed.stdout)


def probe_encoders(binary: str) -> frozenset[str] | None:
    """Return the encoder listing, or ``None`` when it cannot be obtained.

    Callers fall back to their first preferred encoder on ``None``.
    """
    try:
        return encoder_listing(binary)
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("could not list ffmpeg encoders: %s", exc)
        return None


def ffmpeg_version(binary: str) -> str | None:
    """Return the first line of ``ffmpeg -version``, or ``None``."""
    try:
        completed = subprocess.run(
            [binary, "-version"],
            capture_output=True,
            text=True,
            timeout=30,
            check=False,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    lines = completed.stdout.splitlines()
    if completed.returncode != 0 or not lines:
        return None
    return lines[0].strip()


def parse_encoder_listing(text: str) -> frozenset[str]:
    """Parse the table printed by ``ffmpeg -encoders``."""
    names: set[str] = set()
    in_table = False
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith("------"):
            in_table = True
            continue
        if not in_table or not stripped:
            continue
        parts = stripped.split()
        if len(parts) >= 2:
            names.add(parts[1])
    return frozenset(names)


def log_stage_event(event: StageEvent) -> None:
    """Default observer: report stage events through logging."""
    if event.kind == "start":
        logger.info("stage %s started: %s", event.stage, shlex.join(event.command))
    elif event.kind == "progress":
        if event.percent is not None:
            logger.debug("stage %s progress: %.1f%%", event.stage, event.percent)
    elif event.message:
        logger.warning("stage %s failed: %s", event.stage, event.message)
    else:
        logger.info("stage %s finished", event.stage)


def _progress_percent(frame: int | None, expected_frames: int | None) -> float | None:
    if frame is None or not expected_frames:
        return None
    return min(100.0, frame * 100.0 / expected_frames)


class FfmpegEncoderRunner:
    """Run encoder stages as blocking ffmpeg subprocesses.

    Each stage is bounded by ``timeout_s``; on expiry the process is killed and
    the stage fails. Engine stderr is passed through verbatim as diagnostic.
    """

    def __init__(
        self,
        binary: str | None = None,
        *,
        timeout_s: float | None = 120.0,
    ) -> None:
        self._configured_binary = binary
        self._binary: str | None = None
        self.timeout_s = timeout_s

    @property
    def binary(self) -> str:
        if self._binary is None:
            self._binary = resolve_ffmpeg_binary(self._configured_binary)
        return self._binary

    def available_encoders(self) -> frozenset[str] | None:
        return probe_encoders(self.binary)

    def run(
        self,
        stage: EncodeStage,
        observer: StageObserver | None = None,
        expected_frames: int | None = None,
    ) -> StageReport:
        """Execute ``stage`` and return its terminal report.

        Raises
        ------
        EncodeError
            If the process cannot start, exits non-zero, or times out.
        """
        emit = observer or log_stage_event
        command = tuple(stage.command(self.binary, PROGRESS_ARGS))
        emit(StageEvent(kind="start", stage=stage.name, command=command))

        started = time.perf_counter()
        timed_out = threading.Event()
        with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as stderr:
            try:
                process = subprocess.Popen(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=stderr,
                    text=True,
                    errors="replace",
                )
            except OSError as exc:
                message = f"{stage.name} could not start: {exc}"
                emit(StageEvent(kind="terminal", stage=stage.name, command=command, message=message))
                raise EncodeError(message, command=command) from exc

            def _kill() -> None:
                timed_out.set()
                process.kill()

            timer: threading.Timer | None = None
            if self.timeout_s is not None:
                timer = threading.Timer(self.timeout_s, _kill)
                timer.daemon = True
                timer.start()
            try:
                frame: int | None = None
                stdout = cast(IO[str], process.stdout)
                for line in stdout:
                    key, _, value = line.strip().partition("=")
                    if key == "frame" and value.isdigit():
                        frame = int(value)
                    elif key == "progress":
                        emit(
                            StageEvent(
                                kind="progress",
                                stage=stage.name,
                                command=command,
                                percent=_progress_percent(frame, expected_frames),
                            )
                        )
                returncode = process.wait()
            finally:
                if timer is not None:
                    timer.cancel()
                if process.poll() is None:
                    process.kill()
                    process.wait()
            stderr.seek(0)
            diagnostic = stderr.read().strip()

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        if timed_out.is_set():
            message = f"{stage.name} timed out after {self.timeout_s:g}s"
            if diagnostic:
                message = f"{message}: {diagnostic}"
        elif returncode != 0:
            message = f"{stage.name} failed (exit {returncode})"
            if diagnostic:
                message = f"{message}: {diagnostic}"
        else:
            emit(StageEvent(kind="terminal", stage=stage.name, command=command))
            return StageReport(
                stage=stage.name,
                command=command,
                returncode=returncode,
                diagnostic=diagnostic,
                elapsed_ms=elapsed_ms,
            )
        emit(StageEvent(kind="terminal", stage=stage.name, command=command, message=message))
        raise EncodeError(message, diagnostic=diagnostic, command=command)
