"""Per-request temporary resource tracking and scratch-space layout."""

from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path
from types import TracebackType

from anim_converter.errors import CleanupError, StagingError
from anim_converter.types import OutputFormat

logger = logging.getLogger(__name__)


class ResourceSet:
    """Paths created while handling one request.

    Every registered path is removed by :meth:`release_all`, files and
    directories alike, in reverse registration order. Removal failures are
    logged and returned, never raised, so one stuck path does not block the
    others. Releasing twice is a no-op the second time.
    """

    def __init__(self, request_id: str | None = None) -> None:
        self.request_id = request_id or uuid.uuid4().hex
        self._paths: list[Path] = []

    def register(self, path: Path) -> Path:
        """Track ``path`` for removal and return it unchanged."""
        if path not in self._paths:
            self._paths.append(path)
        return path

    @property
    def paths(self) -> tuple[Path, ...]:
        return tuple(self._paths)

    def release_all(self) -> list[CleanupError]:
        """Remove every registered path; return the non-fatal failures."""
        errors: list[CleanupError] = []
        for path in reversed(self._paths):
            try:
                _remove_path(path)
            except OSError as exc:
                error = CleanupError(f"failed to remove {path}: {exc}")
                logger.warning("request %s: %s", self.request_id, error)
                errors.append(error)
        if not errors:
            logger.debug(
                "request %s: released %d temporary paths",
                self.request_id,
                len(self._paths),
            )
        return errors

    def __enter__(self) -> ResourceSet:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release_all()


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


class ScratchSpace:
    """Namespaced temporary paths under a configured base directory.

    Every name carries the request id, so concurrent requests sharing the base
    directory never collide. The base directory itself is never removed.
    """

    def __init__(self, base_dir: Path, resources: ResourceSet) -> None:
        self.base_dir = base_dir
        self.resources = resources

    @property
    def request_id(self) -> str:
        return self.resources.request_id

    def ensure_base(self) -> Path:
        """Create the base directory if needed."""
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StagingError(f"cannot create scratch directory {self.base_dir}: {exc}") from exc
        return self.base_dir

    def _path(self, suffix: str) -> Path:
        return self.base_dir / f"{self.request_id}-{suffix}"

    def uploads_dir(self) -> Path:
        """Create and register the directory holding uploaded originals."""
        path = self._path("uploads")
        self.ensure_base()
        try:
            path.mkdir(exist_ok=False)
        except OSError as exc:
            raise StagingError(f"cannot create upload directory {path}: {exc}") from exc
        return self.resources.register(path)

    def frames_dir(self) -> Path:
        """Return the (not yet created) staging directory path."""
        return self._path("frames")

    def palette_path(self) -> Path:
        return self._path("palette.png")

    def output_path(self, output_format: OutputFormat) -> Path:
        return self._path(f"output.{output_format}")
