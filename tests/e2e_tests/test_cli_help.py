"""End-to-end smoke test for CLI help output."""

from __future__ import annotations

import subprocess

import anim_converter


def test_package_import_smoke() -> None:
    """Ensure package can be imported in the test process."""
    assert anim_converter.__version__


def test_cli_help_smoke() -> None:
    """Ensure the installed CLI entrypoint responds to --help."""
    result = subprocess.run(
        ["anim-converter", "--help"],
        capture_output=True,
        text=True,
        check=False,
    )

    assert result.returncode == 0, result.stderr
    assert "Convert videos or image frames" in result.stdout


def test_cli_missing_video_path_fails_cleanly() -> None:
    """Ensure CLI returns a user-facing validation error for a missing video."""
    result = subprocess.run(
        [
            "anim-converter",
            "video",
            "/tmp/no-clip.mp4",
            "/tmp/out.gif",
        ],
        capture_output=True,
        text=True,
        check=False,
    )

    assert result.returncode != 0
    assert "does not exist" in result.stderr.lower()
