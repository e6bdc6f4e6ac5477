"""Shared type aliases for converter modules."""

from __future__ import annotations

from typing import Literal

type OutputFormat = Literal["gif", "avi", "webm"]
type OutputMode = Literal["gif", "transparent_video"]
type FailureStage = Literal["staging", "encode", "verify"]
type StageEventKind = Literal["start", "progress", "terminal"]

OUTPUT_FORMATS: tuple[OutputFormat, ...] = ("gif", "avi", "webm")

MEDIA_TYPES: dict[OutputFormat, str] = {
    "gif": "image/gif",
    "avi": "video/x-msvideo",
    "webm": "video/webm",
}
