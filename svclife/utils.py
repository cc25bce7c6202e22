from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Sequence

from .errors import CommandError, RelocationError

logger = logging.getLogger(__name__)


def run_command(
    command: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a subprocess command and return the completed process."""

    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    result = subprocess.run(
        list(command),
        cwd=str(cwd) if cwd else None,
        env=process_env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode, result.stdout, result.stderr)
    return result


def ensure_directory(path: str | Path) -> Path:
    """Create a directory and return its Path object."""

    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_regular_file(path: str | Path | None) -> bool:
    if not path:
        return False
    try:
        return Path(path).is_file()
    except OSError:
        return False


def relocation_target(source: str | Path, destination: str | Path) -> Path:
    """Return the final file path for moving ``source`` into ``destination``.

    A destination with a file extension is taken as the target file itself,
    anything else is a directory that receives the source's base name.
    """

    destination = Path(destination)
    if destination.suffix:
        return destination
    return destination / Path(source).name


def move_file(source: str | Path, destination: str | Path) -> Path:
    """Move a file by copying it and then deleting the source.

    Works across volumes. The destination directory is created when missing.
    A failed copy leaves the source untouched; a failed delete of the source
    is only logged.
    """

    source = Path(source)
    target = relocation_target(source, destination)
    if target.resolve() == source.resolve():
        return target

    try:
        ensure_directory(target.parent)
    except OSError as exc:
        raise RelocationError(f"failed creating output directory '{target.parent}': {exc}") from exc

    try:
        shutil.copyfile(source, target)
    except OSError as exc:
        raise RelocationError(f"failed moving package file '{source}' to '{target}': {exc}") from exc

    try:
        source.unlink()
    except OSError as exc:
        logger.warning("Copied '%s' to '%s' but could not remove the source: %s", source, target, exc)

    return target
