"""Shared pytest configuration, marker assignment and fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from anim_converter.settings import ServiceSettings


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Attach suite markers based on test file path."""
    del config
    for item in items:
        path = Path(str(item.fspath))
        parts = set(path.parts)
        if "e2e_tests" in parts:
            item.add_marker(pytest.mark.e2e)
        elif "integration_tests" in parts:
            item.add_marker(pytest.mark.integration)
        elif "unit_tests" in parts:
            item.add_marker(pytest.mark.unit)


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Base scratch directory; tests assert it is empty after each request."""
    return tmp_path / "scratch"


@pytest.fixture
def settings(scratch_dir: Path) -> ServiceSettings:
    return ServiceSettings(scratch_dir=scratch_dir, stage_timeout_s=60.0)


@pytest.fixture
def make_files(tmp_path: Path) -> Callable[..., list[Path]]:
    """Create small placeholder files in an ``uploads`` directory."""

    def _make(*names: str, content: bytes = b"frame") -> list[Path]:
        directory = tmp_path / "uploads"
        directory.mkdir(exist_ok=True)
        paths = []
        for name in names:
            path = directory / name
            path.write_bytes(content)
            paths.append(path)
        return paths

    return _make


@pytest.fixture
def leftovers(scratch_dir: Path) -> Callable[[], list[str]]:
    """Return a callable listing what is left in the scratch base directory."""

    def _list() -> list[str]:
        if not scratch_dir.exists():
            return []
        return sorted(entry.name for entry in scratch_dir.iterdir())

    return _list
