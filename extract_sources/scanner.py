"""
Directory scanning for the Source Extractor.

Walks a source tree, prunes excluded directories and yields the files that
carry the target extension.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generator, Iterable

from .utils import EXCLUDED_DIRS, DEFAULT_EXTENSION


class InvalidInputError(ValueError):
    """The scan root is missing or is not a directory."""


@dataclass(frozen=True)
class FileEntry:
    """
    A matched source file.

    Both paths are absolute and normalized (symlinks are not resolved), so
    ``rel_path`` is always computable.
    """
    path: Path
    root: Path = field(repr=False)

    @property
    def rel_path(self) -> Path:
        return self.path.relative_to(self.root)

    @property
    def rel_posix(self) -> str:
        return self.rel_path.as_posix()

    @property
    def name(self) -> str:
        return self.path.name


def is_excluded_path(path: str | Path, excluded_dirs: Iterable[str] = EXCLUDED_DIRS) -> bool:
    """
    Check whether any component of a path is an excluded directory name.

    Matching is exact and case-sensitive: "build" excludes ``a/build/X.kt``
    but not ``a/buildSrc/X.kt``. Every component is checked, including the
    ones belonging to the scan root as it was passed in.

    Args:
        path: The path to check.
        excluded_dirs: Directory names to exclude.

    Returns:
        True if at least one component matches.
    """
    excluded = set(excluded_dirs)
    return any(part in excluded for part in Path(path).parts)


def validate_root(root: str | Path) -> Path:
    """Raise InvalidInputError unless ``root`` is an existing directory."""
    root = Path(root)
    if not root.exists():
        raise InvalidInputError(f"Directory does not exist: {root}")
    if not root.is_dir():
        raise InvalidInputError(f"Path is not a directory: {root}")
    return root


def scan_source_files(
    root: str | Path,
    extension: str = DEFAULT_EXTENSION,
    excluded_dirs: Iterable[str] = EXCLUDED_DIRS,
    progress_callback: Callable[[int, Path], None] | None = None,
) -> Generator[FileEntry, None, None]:
    """
    Recursively scan a directory and yield the matching source files.

    Siblings are visited in lexicographic order, and the files of a directory
    come before those of its subdirectories, so the output order is the same
    on every run.

    Args:
        root: The root directory to scan.
        extension: Case-sensitive file name suffix to match (e.g. ".kt").
        excluded_dirs: Directory names whose subtree is skipped.
        progress_callback: Called with (match count, path) for every match.

    Yields:
        FileEntry for each matched regular file.

    Raises:
        InvalidInputError: If root is missing or not a directory. Raised on
            the first ``next()``, before anything is yielded.
    """
    root = validate_root(root)
    excluded = frozenset(excluded_dirs)
    abs_root = Path(os.path.abspath(root))

    if is_excluded_path(root, excluded):
        return

    matched_count = 0

    for dirpath, dirnames, filenames in os.walk(root):
        # Prune in place so excluded subtrees are never entered
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)

        for filename in sorted(filenames):
            if filename in excluded or not filename.endswith(extension):
                continue

            filepath = os.path.join(dirpath, filename)
            if not os.path.isfile(filepath):
                continue

            matched_count += 1
            entry = FileEntry(path=Path(os.path.abspath(filepath)), root=abs_root)
            if progress_callback is not None:
                progress_callback(matched_count, entry.path)
            yield entry
