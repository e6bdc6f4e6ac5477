"""Unit tests for temporary resource release and scratch naming."""

from __future__ import annotations

from pathlib import Path

import pytest

from anim_converter.errors import CleanupError, StagingError
from anim_converter.infrastructure import resources as resources_module
from anim_converter.infrastructure.resources import ResourceSet, ScratchSpace


def test_release_removes_files_and_directories(tmp_path: Path) -> None:
    directory = tmp_path / "frames"
    directory.mkdir()
    (directory / "frame_00000.png").write_bytes(b"x")
    artifact = tmp_path / "output.gif"
    artifact.write_bytes(b"GIF89a")

    resources = ResourceSet("rid")
    resources.register(directory)
    resources.register(artifact)

    assert resources.release_all() == []
    assert not directory.exists()
    assert not artifact.exists()


def test_release_ignores_paths_never_created(tmp_path: Path) -> None:
    resources = ResourceSet()
    resources.register(tmp_path / "palette.png")
    assert resources.release_all() == []


def test_release_twice_is_a_no_op(tmp_path: Path) -> None:
    artifact = tmp_path / "output.gif"
    artifact.write_bytes(b"GIF89a")
    resources = ResourceSet()
    resources.register(artifact)

    assert resources.release_all() == []
    assert resources.release_all() == []


def test_register_deduplicates(tmp_path: Path) -> None:
    resources = ResourceSet()
    resources.register(tmp_path / "a")
    resources.register(tmp_path / "a")
    assert resources.paths == (tmp_path / "a",)


def test_one_failed_removal_does_not_block_the_rest(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Log and return the failure; keep removing the other paths."""
    stuck = tmp_path / "stuck.png"
    others = [tmp_path / "a.gif", tmp_path / "b.png"]
    for path in [stuck, *others]:
        path.write_bytes(b"x")

    original = resources_module._remove_path

    def flaky_remove(path: Path) -> None:
        if path == stuck:
            raise PermissionError("read-only")
        original(path)

    monkeypatch.setattr(resources_module, "_remove_path", flaky_remove)
    resources = ResourceSet("rid")
    resources.register(others[0])
    resources.register(stuck)
    resources.register(others[1])

    errors = resources.release_all()

    assert len(errors) == 1
    assert isinstance(errors[0], CleanupError)
    assert "stuck.png" in str(errors[0])
    assert not any(path.exists() for path in others)
    assert stuck.exists()


def test_context_manager_releases_on_exception(tmp_path: Path) -> None:
    artifact = tmp_path / "output.gif"
    artifact.write_bytes(b"GIF89a")

    with pytest.raises(RuntimeError):
        with ResourceSet() as resources:
            resources.register(artifact)
            raise RuntimeError("boom")

    assert not artifact.exists()


def test_scratch_names_are_namespaced_by_request_id(tmp_path: Path) -> None:
    scratch = ScratchSpace(tmp_path, ResourceSet("abc123"))

    assert scratch.frames_dir() == tmp_path / "abc123-frames"
    assert scratch.palette_path() == tmp_path / "abc123-palette.png"
    assert scratch.output_path("webm") == tmp_path / "abc123-output.webm"


def test_concurrent_requests_get_distinct_paths(tmp_path: Path) -> None:
    first = ScratchSpace(tmp_path, ResourceSet())
    second = ScratchSpace(tmp_path, ResourceSet())
    assert first.request_id != second.request_id
    assert first.output_path("gif") != second.output_path("gif")


def test_uploads_dir_is_created_and_registered(tmp_path: Path) -> None:
    base = tmp_path / "nested" / "scratch"
    resources = ResourceSet("rid")
    scratch = ScratchSpace(base, resources)

    uploads = scratch.uploads_dir()

    assert uploads == base / "rid-uploads"
    assert uploads.is_dir()
    assert resources.paths == (uploads,)
    resources.release_all()
    assert not uploads.exists()
    assert base.is_dir()


def test_uploads_dir_refuses_to_reuse_existing_directory(tmp_path: Path) -> None:
    (tmp_path / "rid-uploads").mkdir()
    resources = ResourceSet("rid")
    with pytest.raises(StagingError, match="cannot create upload directory"):
        ScratchSpace(tmp_path, resources).uploads_dir()
    assert resources.paths == ()


def test_ensure_base_reports_unusable_location(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_bytes(b"x")
    scratch = ScratchSpace(blocker / "scratch", ResourceSet())
    with pytest.raises(StagingError, match="cannot create scratch directory"):
        scratch.ensure_base()
