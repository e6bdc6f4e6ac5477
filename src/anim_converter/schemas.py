"""Pydantic schemas for runtime validation of conversion inputs."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from anim_converter.types import OUTPUT_FORMATS, OutputFormat


class ConversionRequestConfig(BaseModel):
    """Validated input for one conversion request."""

    model_config = ConfigDict(extra="forbid")

    video: Path | None = None
    frames: tuple[Path, ...] = ()
    output_format: OutputFormat = "gif"
    transparent: bool = False
    fps: int = Field(default=10, gt=0)

    @field_validator("output_format", mode="before")
    @classmethod
    def _normalize_format(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized not in OUTPUT_FORMATS:
                raise ValueError(
                    f"format must be one of: {', '.join(OUTPUT_FORMATS)}"
                )
            return normalized
        return value

    @field_validator("frames")
    @classmethod
    def _validate_frame_names(cls, value: tuple[Path, ...]) -> tuple[Path, ...]:
        names = [path.name for path in value]
        if len(set(names)) != len(names):
            raise ValueError("frame filenames must be unique.")
        return value

    @model_validator(mode="after")
    def _validate_input_kind(self) -> ConversionRequestConfig:
        if self.video is not None and self.frames:
            raise ValueError("provide either a video or frames, not both.")
        if self.video is None and not self.frames:
            raise ValueError("no input provided: a video or at least one frame is required.")
        return self
