"""Recursive collection of file paths under a set of roots."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from diag_bundler.gather.errors import TraversalError

logger = logging.getLogger(__name__)


def collect_file_paths(roots: Iterable[str | Path]) -> tuple[list[Path], list[TraversalError]]:
    """Collect every non-directory entry under each root.

    Roots are walked in input order and entries in lexical order. A root that
    is a file collects itself. A root that cannot be walked contributes one
    error; paths found before the error are kept and later roots are still
    visited.
    """

    file_paths: list[Path] = []
    errors: list[TraversalError] = []
    for root in roots:
        root_path = Path(root)
        try:
            _walk(root_path, file_paths)
        except OSError as error:
            logger.warning("Cannot walk %s: %s", root_path, error)
            errors.append(
                TraversalError(
                    f"{error.filename or root_path}: {error.strerror or error}",
                    root=str(root_path),
                ),
            )
    return file_paths, errors


def _walk(path: Path, file_paths: list[Path]) -> None:
    # lstat: symlinks are recorded, never followed
    if not os.path.isdir(path) or os.path.islink(path):
        os.lstat(path)
        file_paths.append(path)
        return

    with os.scandir(path) as scanner:
        entries = sorted(scanner, key=lambda entry: entry.name)
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            _walk(Path(entry.path), file_paths)
        else:
            file_paths.append(Path(entry.path))
