"""File finding utilities for nsipro."""

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import List

from nsipro.config import settings

_logger = logging.getLogger(__name__)


def _files_in_directory(path: Path, extension: str, *, recursive: bool) -> List[Path]:
    """List files in ``path`` with ``extension``, optionally descending into subdirectories."""
    pattern = f"*{extension}"
    candidates = path.rglob(pattern) if recursive else path.glob(pattern)
    return sorted(p for p in candidates if p.is_file())


def find_nsipro_files(
    paths: Iterable[str | os.PathLike],
    *,
    recursive: bool = False,
    extension: str | None = None,
) -> List[Path]:
    """
    Collect the project files to parse from a mix of files and directories.

    Files given directly are always kept, whatever their extension. For
    directories, only files with the project file extension are collected,
    and subdirectories are searched only if ``recursive`` is set. Every path
    is resolved, so the same file reached twice (e.g. through a symbolic link
    or a repeated argument) is only returned once.

    Parameters
    ----------
    paths
        Files and/or directories to search
    recursive
        Whether to descend into subdirectories of the given directories
    extension
        Extension (with leading dot) to match in directories; defaults to
        ``settings.NSIPRO_FILE_EXTENSION``

    Returns
    -------
    list of pathlib.Path
        Resolved file paths in the order they were first found

    Raises
    ------
    FileNotFoundError
        If one of ``paths`` does not exist
    PermissionError
        If one of the collected files cannot be read
    """
    if extension is None:
        extension = settings.NSIPRO_FILE_EXTENSION

    found: List[Path] = []
    for p in paths:
        fpath = Path(p).resolve()
        _logger.debug("fpath='%s'", fpath)
        if fpath.is_file():
            found.append(fpath)
        elif fpath.is_dir():
            in_dir = _files_in_directory(fpath, extension, recursive=recursive)
            _logger.info("Found %d %s files in %s", len(in_dir), extension, fpath)
            found.extend(in_dir)
        else:
            msg = f"No such file or directory: '{p}'"
            raise FileNotFoundError(msg)

    # dict.fromkeys keeps first-seen order
    files = list(dict.fromkeys(f.resolve() for f in found))

    for f in files:
        if not os.access(f, os.R_OK):
            _logger.error("Cannot read %s", f)
            msg = f"Permission denied: '{f}'"
            raise PermissionError(msg)

    return files
