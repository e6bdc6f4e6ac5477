"""Output verification adapter."""

from __future__ import annotations

from pathlib import Path

from anim_converter.errors import VerifyError


class FileOutputVerifier:
    """Require the artifact to exist as a regular, non-empty file."""

    def verify(self, path: Path) -> int:
        try:
            size = path.stat().st_size if path.is_file() else 0
        except OSError:
            size = 0
        if size <= 0:
            raise VerifyError("artifact not produced")
        return size
