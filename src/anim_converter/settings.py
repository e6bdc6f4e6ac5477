"""Service settings loaded from environment variables."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "ANIM_CONVERTER_"

_ENV_FIELDS: dict[str, str] = {
    "SCRATCH_DIR": "scratch_dir",
    "FFMPEG": "ffmpeg_binary",
    "STAGE_TIMEOUT": "stage_timeout_s",
    "MAX_UPLOAD_BYTES": "max_upload_bytes",
    "CANVAS_SIZE": "canvas_size",
    "DEFAULT_FPS": "default_fps",
}


def _default_scratch_dir() -> Path:
    return Path(tempfile.gettempdir()) / "anim-converter"


class ServiceSettings(BaseModel):
    """Validated runtime configuration shared by every request.

    ``scratch_dir`` is the base directory under which each request creates its
    own uniquely named uploads, staging directory, palette and output.
    ``ffmpeg_binary`` overrides the bundled ``imageio-ffmpeg`` executable.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    scratch_dir: Path = Field(default_factory=_default_scratch_dir)
    ffmpeg_binary: str | None = None
    stage_timeout_s: float = Field(default=120.0, gt=0.0)
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, gt=0)
    canvas_size: int = Field(default=300, gt=0)
    default_fps: int = Field(default=10, gt=0)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServiceSettings:
        """Build settings from ``ANIM_CONVERTER_*`` variables.

        Blank values are treated as unset so the field default applies.
        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for suffix, field_name in _ENV_FIELDS.items():
            raw = env.get(f"{ENV_PREFIX}{suffix}", "").strip()
            if raw:
                values[field_name] = raw
        return cls.model_validate(values)
