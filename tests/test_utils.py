from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from svclife.errors import CommandError, RelocationError
from svclife.utils import is_regular_file, move_file, relocation_target, run_command


def test_relocation_target_file_or_directory() -> None:
    assert relocation_target("/tmp/out.zip", "/dest/app.zip") == Path("/dest/app.zip")
    assert relocation_target("/tmp/out.zip", "/dest") == Path("/dest/out.zip")


def test_move_file_creates_destination(tmp_path: Path) -> None:
    source = tmp_path / "out.zip"
    source.write_text("payload")
    moved = move_file(source, tmp_path / "nested" / "dir" / "app.zip")
    assert moved == tmp_path / "nested" / "dir" / "app.zip"
    assert moved.read_text() == "payload"
    assert not source.exists()


def test_move_file_into_own_directory_is_a_no_op(tmp_path: Path) -> None:
    source = tmp_path / "out.zip"
    source.write_text("payload")
    assert move_file(source, tmp_path) == source
    assert move_file(source, source) == source
    assert source.read_text() == "payload"


def test_move_file_copy_failure_keeps_source(tmp_path: Path) -> None:
    source = tmp_path / "out.zip"
    source.write_text("payload")
    (tmp_path / "blocked.zip").mkdir()
    with pytest.raises(RelocationError):
        move_file(source, tmp_path / "blocked.zip")
    assert source.exists()


def test_move_file_cleanup_failure_is_not_fatal(tmp_path: Path, monkeypatch, caplog) -> None:
    source = tmp_path / "out.zip"
    source.write_text("payload")

    def refuse(self, missing_ok=False):
        raise PermissionError("read-only volume")

    monkeypatch.setattr(Path, "unlink", refuse)
    with caplog.at_level(logging.WARNING, logger="svclife.utils"):
        moved = move_file(source, tmp_path / "dest")
    assert moved.read_text() == "payload"
    assert "could not remove the source" in caplog.text


def test_is_regular_file(tmp_path: Path) -> None:
    (tmp_path / "a.zip").write_text("x")
    assert is_regular_file(tmp_path / "a.zip")
    assert not is_regular_file(tmp_path)
    assert not is_regular_file("registry.example.com/web:latest")
    assert not is_regular_file("")


def test_run_command_raises_on_failure() -> None:
    with pytest.raises(CommandError) as excinfo:
        run_command([sys.executable, "-c", "import sys; sys.exit(3)"])
    assert excinfo.value.returncode == 3
    result = run_command([sys.executable, "-c", "import sys; sys.exit(3)"], check=False)
    assert result.returncode == 3
