"""
Copy execution for the Source Extractor.

Builds a destination plan for the scanned files (mirror or flatten layout)
and copies them, isolating per-file failures.
"""

import os
import shutil
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable

from tqdm import tqdm

from .metadata import extract_package, package_prefix
from .scanner import FileEntry, InvalidInputError, scan_source_files, validate_root
from .utils import DEFAULT_EXTENSION, DEFAULT_WORKERS, EXCLUDED_DIRS, FLATTEN_SUFFIX

# Layouts
MIRROR = "mirror"
FLATTEN = "flatten"

# What happens to an existing destination directory
OVERWRITE_IN_PLACE = "overwrite"
WIPE_AND_RECREATE = "wipe"

DEFAULT_POLICIES = {
    MIRROR: OVERWRITE_IN_PLACE,
    FLATTEN: WIPE_AND_RECREATE,
}


@dataclass
class CopyResult:
    """Outcome for a single source file. Status is planned, copied or failed."""
    source: Path
    target: Path | None
    rel_path: str
    package: str | None = None
    status: str = "planned"
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "source": str(self.source),
            "target": str(self.target) if self.target else None,
            "rel_path": self.rel_path,
            "package": self.package,
            "status": self.status,
            "error": self.error,
        }


@dataclass
class CopyReport:
    source_root: Path | None
    dest_root: Path
    layout: str
    policy: str
    dry_run: bool = False
    results: list[CopyResult] = field(default_factory=list)
    executed_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec='seconds'))

    @property
    def copied_count(self) -> int:
        return sum(1 for r in self.results if r.status == "copied")

    @property
    def failures(self) -> list[CopyResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def to_dict(self) -> dict:
        return {
            "source_root": str(self.source_root) if self.source_root else None,
            "dest_root": str(self.dest_root),
            "layout": self.layout,
            "policy": self.policy,
            "dry_run": self.dry_run,
            "executed_at": self.executed_at,
            "total_files": len(self.results),
            "copied_count": self.copied_count,
            "failed_count": self.failed_count,
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# Planning
# =============================================================================

def flattened_destination(source_dir: str | Path) -> Path:
    """Default flatten target: ``<parent>/<name>-files`` next to the source."""
    source = Path(os.path.abspath(source_dir))
    return source.parent / f"{source.name}{FLATTEN_SUFFIX}"


def flattened_name(prefix: str, filename: str, taken: set[str]) -> str:
    """
    Pick a flat file name that is not in ``taken``.

    ``Foo.kt`` becomes ``Foo_1.kt``, ``Foo_2.kt``... until free. The prefix
    stays in front: ``a_Foo.kt`` -> ``a_Foo_1.kt``.
    """
    candidate = prefix + filename
    if candidate not in taken:
        return candidate

    if "." in filename:
        stem, _, ext = filename.rpartition(".")
        ext = "." + ext
    else:
        stem, ext = filename, ""

    counter = 1
    while True:
        candidate = f"{prefix}{stem}_{counter}{ext}"
        if candidate not in taken:
            return candidate
        counter += 1


def plan_mirrored(entries: Iterable[FileEntry], dest_root: Path) -> list[CopyResult]:
    """Target = dest_root / path relative to the scan root."""
    return [
        CopyResult(source=entry.path, target=dest_root / entry.rel_path, rel_path=entry.rel_posix)
        for entry in entries
    ]


def plan_flattened(entries: Iterable[FileEntry], dest_root: Path) -> list[CopyResult]:
    """
    Assign every entry a unique name directly under dest_root.

    Names are assigned in entry order, so the order decides which of two
    same-named files gets the ``_1`` suffix. An entry whose package cannot be
    read is marked failed and reserves no name.
    """
    taken: set[str] = set()
    plan = []

    for entry in entries:
        try:
            package = extract_package(entry.path)
        except OSError as e:
            tqdm.write(f"[ERROR] Failed to read package from {entry.path}: {e}", file=sys.stderr)
            plan.append(CopyResult(
                source=entry.path, target=None, rel_path=entry.rel_posix,
                status="failed", error=str(e),
            ))
            continue

        name = flattened_name(package_prefix(package), entry.name, taken)
        taken.add(name)
        plan.append(CopyResult(
            source=entry.path, target=dest_root / name, rel_path=entry.rel_posix, package=package,
        ))

    return plan


# =============================================================================
# Execution
# =============================================================================

def _copy_file(result: CopyResult) -> CopyResult:
    """Copy one planned file, overwriting the target. Safe for threads."""
    try:
        result.target.parent.mkdir(parents=True, exist_ok=True)
        # Copying a file onto itself leaves it in place and still counts
        if not (result.target.exists() and os.path.samefile(result.source, result.target)):
            shutil.copyfile(result.source, result.target)
        result.status = "copied"
    except (OSError, shutil.Error) as e:
        result.status = "failed"
        result.error = str(e)
    return result


def _prepare_destination(dest_root: Path, policy: str, source_root: Path | None) -> None:
    if dest_root.exists() and not dest_root.is_dir():
        raise InvalidInputError(f"Destination is not a directory: {dest_root}")

    if policy == WIPE_AND_RECREATE and dest_root.exists():
        if source_root is not None:
            if source_root == dest_root or dest_root in source_root.parents:
                raise InvalidInputError(
                    f"Refusing to wipe {dest_root}: it contains the source directory {source_root}"
                )
            if source_root in dest_root.parents:
                raise InvalidInputError(
                    f"Refusing to wipe {dest_root}: it is inside the source directory {source_root}"
                )
        print(f"[INFO] Removing existing destination {dest_root}")
        shutil.rmtree(dest_root)

    dest_root.mkdir(parents=True, exist_ok=True)


def relocate(
    entries: Iterable[FileEntry],
    dest_root: str | Path,
    layout: str = MIRROR,
    policy: str | None = None,
    workers: int = DEFAULT_WORKERS,
    dry_run: bool = False,
    source_root: str | Path | None = None,
) -> CopyReport:
    """
    Copy scanned files into dest_root.

    The full plan, including flatten-mode collision suffixes, is built
    sequentially first; only the copies run on the thread pool.

    Args:
        entries: Scanned files, in the order that decides collision suffixes.
        dest_root: Destination directory.
        layout: MIRROR or FLATTEN.
        policy: OVERWRITE_IN_PLACE or WIPE_AND_RECREATE. Defaults per layout.
        workers: Number of copy threads.
        dry_run: If True, only build the plan.
        source_root: Scan root; used to refuse wiping a destination that
            contains it or lies inside it. Defaults to the entries' root.

    Returns:
        CopyReport with one CopyResult per entry, in entry order.
    """
    if layout not in DEFAULT_POLICIES:
        raise ValueError(f"Unknown layout: {layout}")
    if policy is None:
        policy = DEFAULT_POLICIES[layout]
    if policy not in (OVERWRITE_IN_PLACE, WIPE_AND_RECREATE):
        raise ValueError(f"Unknown destination policy: {policy}")

    entries = list(entries)
    dest_root = Path(os.path.abspath(dest_root))
    if source_root is not None:
        source_root = Path(os.path.abspath(source_root))
    elif entries:
        source_root = entries[0].root

    if layout == FLATTEN:
        results = plan_flattened(entries, dest_root)
    else:
        results = plan_mirrored(entries, dest_root)

    report = CopyReport(
        source_root=source_root, dest_root=dest_root, layout=layout,
        policy=policy, dry_run=dry_run, results=results,
    )

    mode = "DRY-RUN" if dry_run else "COPY"
    pending = [r for r in results if r.status == "planned"]

    if dry_run:
        print(f"\n[{mode}] {len(pending)} files would be copied to {dest_root} ({layout}, {policy})")
        for r in pending[:10]:
            print(f"  [WOULD COPY] {r.rel_path} -> {r.target.relative_to(dest_root).as_posix()}")
        if len(pending) > 10:
            print(f"  ... and {len(pending) - 10} more")
        return report

    _prepare_destination(dest_root, policy, source_root)

    print(f"\n[{mode}] Copying {len(pending)} files to {dest_root} ({layout})...")

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        with tqdm(total=len(pending), unit="file") as pbar:
            futures = [executor.submit(_copy_file, r) for r in pending]
            for future in as_completed(futures):
                res = future.result()
                if res.status == "failed":
                    tqdm.write(f"[ERROR] Failed to copy {res.source}: {res.error}", file=sys.stderr)
                pbar.update(1)

    print(f"[{mode}] Complete: {report.copied_count} copied, {report.failed_count} failed")
    return report


def copy_mirrored(
    source_dir: str | Path,
    dest_dir: str | Path,
    extension: str = DEFAULT_EXTENSION,
    excluded_dirs: Iterable[str] = EXCLUDED_DIRS,
    workers: int = DEFAULT_WORKERS,
    dry_run: bool = False,
    policy: str = OVERWRITE_IN_PLACE,
) -> CopyReport:
    """
    Copy matched files into dest_dir, preserving their relative paths.

    An existing dest_dir is kept and same-named files are overwritten.

    Raises:
        InvalidInputError: If source_dir is missing or not a directory.
    """
    source = validate_root(source_dir)
    entries = list(scan_source_files(source, extension, excluded_dirs))
    return relocate(
        entries, dest_dir, layout=MIRROR, policy=policy,
        workers=workers, dry_run=dry_run, source_root=source,
    )


def copy_flattened(
    source_dir: str | Path,
    dest_dir: str | Path | None = None,
    extension: str = DEFAULT_EXTENSION,
    excluded_dirs: Iterable[str] = EXCLUDED_DIRS,
    workers: int = DEFAULT_WORKERS,
    dry_run: bool = False,
    policy: str = WIPE_AND_RECREATE,
) -> CopyReport:
    """
    Copy matched files into one directory, prefixing names with their package.

    dest_dir defaults to ``<source>-files`` next to the source and is wiped
    before copying.

    Raises:
        InvalidInputError: If source_dir is missing or not a directory.
    """
    source = validate_root(source_dir)
    if dest_dir is None:
        dest_dir = flattened_destination(source)
    entries = list(scan_source_files(source, extension, excluded_dirs))
    return relocate(
        entries, dest_dir, layout=FLATTEN, policy=policy,
        workers=workers, dry_run=dry_run, source_root=source,
    )
