"""
Package metadata for matched source files.

The package declaration is found with a plain regex over the file text. It is
not aware of comments or string literals, so ``// package foo`` also matches.
"""

import re
from collections import defaultdict
from pathlib import Path
from typing import Generator, Iterable

from .scanner import FileEntry

NO_PACKAGE = "No package"

PACKAGE_PATTERN = re.compile(r"package\s+([a-zA-Z0-9_.]+)")


def read_source_text(path: str | Path) -> str:
    """Read a source file as text, replacing undecodable bytes."""
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def extract_package(path: str | Path) -> str:
    """
    Extract the package name declared in a source file.

    Args:
        path: The source file.

    Returns:
        The first dotted identifier following ``package``, or NO_PACKAGE.

    Raises:
        OSError: If the file cannot be read.
    """
    match = PACKAGE_PATTERN.search(read_source_text(path))
    return match.group(1) if match else NO_PACKAGE


def package_prefix(package: str) -> str:
    """Turn ``com.example`` into ``com_example_``; NO_PACKAGE gives an empty prefix."""
    if package == NO_PACKAGE:
        return ""
    return package.replace(".", "_") + "_"


def count_lines(path: str | Path) -> int:
    """Count the lines of a source file."""
    return len(read_source_text(path).splitlines())


def build_file_records(entries: Iterable[FileEntry]) -> Generator[dict, None, None]:
    """
    Yield a metadata dict for every entry.

    Read failures do not stop the iteration; the record carries an ``error``
    field instead of ``package``/``line_count``.
    """
    for entry in entries:
        record = {"rel_path": entry.rel_posix, "path": str(entry.path)}
        try:
            text = read_source_text(entry.path)
        except OSError as e:
            record["error"] = str(e)
            yield record
            continue

        match = PACKAGE_PATTERN.search(text)
        record["package"] = match.group(1) if match else NO_PACKAGE
        record["line_count"] = len(text.splitlines())
        yield record


def summarize_records(records: Iterable[dict]) -> dict:
    """
    Build totals and per-package counts from file records.

    Returns:
        {
            "total_files": 12,
            "total_lines": 840,
            "packages": {"com.example": 7, "No package": 5},
            "failures": [{"rel_path": ..., "error": ...}]
        }
    """
    package_counts: dict[str, int] = defaultdict(int)
    failures = []
    total_files = 0
    total_lines = 0

    for record in records:
        total_files += 1
        if "error" in record:
            failures.append({"rel_path": record["rel_path"], "error": record["error"]})
            continue
        package_counts[record["package"]] += 1
        total_lines += record["line_count"]

    return {
        "total_files": total_files,
        "total_lines": total_lines,
        "packages": dict(sorted(package_counts.items(), key=lambda x: (-x[1], x[0]))),
        "failures": failures,
    }
