#!/usr/bin/env python3
"""
Source Extractor - CLI Entry Point
==================================

Usage:
    python -m extract_sources scan ./myproject -o files.json
    python -m extract_sources mirror ./myproject ./kotlin-files-backup
    python -m extract_sources flatten ./myproject --dry-run
"""

import argparse
import sys
from pathlib import Path

from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .scanner import scan_source_files, validate_root, FileEntry, InvalidInputError
from .metadata import build_file_records, summarize_records
from .executor import copy_mirrored, copy_flattened, CopyReport
from .utils import (
    EXCLUDED_DIRS,
    DEFAULT_EXTENSION,
    DEFAULT_WORKERS,
    console,
    normalize_extension,
    parse_name_list,
    print_error,
    print_header,
    print_package_table,
    print_success,
    print_warning,
    save_json,
)


def resolve_excluded_dirs(args) -> frozenset[str]:
    """Default exclusion set, extended by --exclude and optionally dropped by --no-default-excludes."""
    base = set() if args.no_default_excludes else set(EXCLUDED_DIRS)
    return frozenset(base | parse_name_list(args.exclude))


def print_file_info(entries: list, records: list[dict], verbose: bool = False) -> dict:
    """List matched files, group them by package and print totals."""
    console.print(f"[INFO] Found {len(entries)} source files")
    if verbose:
        for entry in entries:
            console.print(f"  - {entry.path}", markup=False)

    summary = summarize_records(records)
    print_package_table(summary)
    console.print(f"\nTotal lines of code: {summary['total_lines']}")

    if summary["failures"]:
        print_warning(f"Could not read {len(summary['failures'])} files:")
        for failure in summary["failures"][:5]:
            console.print(f"  - {failure['rel_path']}: {failure['error']}", markup=False)
        if len(summary["failures"]) > 5:
            console.print(f"  ... and {len(summary['failures']) - 5} more")

    return summary


def report_copy(report: CopyReport, args) -> int:
    entries = [FileEntry(path=r.source, root=report.source_root) for r in report.results]
    summary = summarize_records(build_file_records(entries))
    console.print(f"[INFO] Found {summary['total_files']} source files")

    if args.report_out:
        save_json(report.to_dict(), args.report_out)

    if report.dry_run:
        print_warning("This was a DRY-RUN. No files were copied.")
    else:
        print_success(f"Copied {report.copied_count} of {len(report.results)} files to {report.dest_root}")
        if report.failed_count:
            print_warning(f"{report.failed_count} files failed (see errors above)")

    console.print(f"\nTotal lines of code: {summary['total_lines']}")
    return 0


# =============================================================================
# Subcommands
# =============================================================================

def cmd_scan(args) -> int:
    """Scan command - list matched files and print statistics."""
    root = validate_root(args.root)
    print(f"[SCAN] Scanning {root}...")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("Scanning...", total=None)

        def progress_cb(count, path):
            short_path = str(path)
            if len(short_path) > 40:
                short_path = "..." + short_path[-37:]
            progress.update(task_id, description=f"Scanning: {count} files... {short_path}")

        entries = list(scan_source_files(
            root, args.ext, resolve_excluded_dirs(args), progress_callback=progress_cb,
        ))

    records = list(build_file_records(entries))
    summary = print_file_info(entries, records, args.verbose)

    if args.output:
        save_json({"root": str(root.resolve()), "summary": summary, "files": records}, args.output)

    return 0


def cmd_mirror(args) -> int:
    """Mirror command - copy matched files preserving relative paths."""
    print_header("MIRROR", f"{args.source} -> {args.dest}")
    report = copy_mirrored(
        args.source,
        args.dest,
        extension=args.ext,
        excluded_dirs=resolve_excluded_dirs(args),
        workers=args.workers,
        dry_run=args.dry_run,
    )
    return report_copy(report, args)


def cmd_flatten(args) -> int:
    """Flatten command - copy matched files into a single directory."""
    print_header("FLATTEN", f"{args.source} -> {args.dest or '<source>-files'}")
    report = copy_flattened(
        args.source,
        args.dest,
        extension=args.ext,
        excluded_dirs=resolve_excluded_dirs(args),
        workers=args.workers,
        dry_run=args.dry_run,
    )
    return report_copy(report, args)


# =============================================================================
# Main
# =============================================================================

def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--ext", type=normalize_extension, default=DEFAULT_EXTENSION,
                        help=f"File extension to collect, case-sensitive (default: {DEFAULT_EXTENSION})")
    parser.add_argument("--exclude", type=str, metavar="NAMES",
                        help="Extra directory names to skip (comma-separated)")
    parser.add_argument("--no-default-excludes", action="store_true",
                        help=f"Do not skip the default directories ({', '.join(sorted(EXCLUDED_DIRS))})")


def _add_copy_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS,
                        help=f"Parallel copy threads (default: {DEFAULT_WORKERS})")
    parser.add_argument("--dry-run", action="store_true",
                        help="Show what would be copied without touching the filesystem")
    parser.add_argument("--report-out", type=Path, metavar="FILE",
                        help="Write a JSON report of every copy")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="extract-sources",
        description="Source Extractor - collect source files from a project tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # --- SCAN command ---
    scan_parser = subparsers.add_parser("scan", help="List source files with package and line statistics")
    scan_parser.add_argument("root", type=Path, nargs="?", help="Directory to scan")
    scan_parser.add_argument("-o", "--output", type=Path,
                             help="Write per-file metadata to a JSON file")
    scan_parser.add_argument("-v", "--verbose", action="store_true", help="List every matched file")
    _add_filter_args(scan_parser)
    scan_parser.set_defaults(func=cmd_scan, required=("root",), usage_parser=scan_parser)

    # --- MIRROR command ---
    mirror_parser = subparsers.add_parser("mirror", help="Copy files into DEST preserving relative paths")
    mirror_parser.add_argument("source", type=Path, nargs="?", help="Source directory")
    mirror_parser.add_argument("dest", type=Path, nargs="?", help="Destination directory (kept, files overwritten)")
    _add_filter_args(mirror_parser)
    _add_copy_args(mirror_parser)
    mirror_parser.set_defaults(func=cmd_mirror, required=("source", "dest"), usage_parser=mirror_parser)

    # --- FLATTEN command ---
    flatten_parser = subparsers.add_parser("flatten", help="Copy files into one directory with package-prefixed names")
    flatten_parser.add_argument("source", type=Path, nargs="?", help="Source directory")
    flatten_parser.add_argument("--dest", type=Path,
                                help="Destination directory, wiped first (default: <source>-files)")
    _add_filter_args(flatten_parser)
    _add_copy_args(flatten_parser)
    flatten_parser.set_defaults(func=cmd_flatten, required=("source",), usage_parser=flatten_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    # Missing positionals print usage and exit cleanly instead of argparse's status 2
    missing = [name for name in args.required if getattr(args, name) is None]
    if missing:
        args.usage_parser.print_usage()
        print(f"Missing: {', '.join(missing)}")
        print("Example: extract-sources mirror ./myproject ./kotlin-files-backup")
        return 0

    try:
        return args.func(args)
    except InvalidInputError as e:
        print_error(str(e))
        return 1
    except KeyboardInterrupt:
        print("\n[ABORT] Operation cancelled by user")
        return 130
    except Exception as e:
        print(f"\n[ERROR] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
