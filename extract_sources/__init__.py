"""
Source Extractor
================

A command-line tool that collects source files (Kotlin by default) from a
project tree, skipping build/test/IDE directories, and copies them either into
a mirrored tree or into a single flat directory.
"""

__version__ = "1.0.0"

from .scanner import scan_source_files, is_excluded_path, FileEntry, InvalidInputError
from .metadata import extract_package, package_prefix, count_lines, NO_PACKAGE
from .executor import (
    copy_mirrored,
    copy_flattened,
    relocate,
    flattened_destination,
    CopyReport,
    CopyResult,
    MIRROR,
    FLATTEN,
    OVERWRITE_IN_PLACE,
    WIPE_AND_RECREATE,
)
from .utils import EXCLUDED_DIRS, DEFAULT_EXTENSION

__all__ = [
    "scan_source_files",
    "is_excluded_path",
    "FileEntry",
    "InvalidInputError",
    "extract_package",
    "package_prefix",
    "count_lines",
    "NO_PACKAGE",
    "copy_mirrored",
    "copy_flattened",
    "relocate",
    "flattened_destination",
    "CopyReport",
    "CopyResult",
    "MIRROR",
    "FLATTEN",
    "OVERWRITE_IN_PLACE",
    "WIPE_AND_RECREATE",
    "EXCLUDED_DIRS",
    "DEFAULT_EXTENSION",
]
