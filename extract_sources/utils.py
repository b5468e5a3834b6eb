"""
Utility functions for the Source Extractor.

Includes:
- Default configuration (excluded directories, extension, naming)
- JSON save/load helpers
- UI helpers
"""

import json
from pathlib import Path
from typing import Any
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Global console instances
console = Console()
err_console = Console(stderr=True)


# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------

# Directory names whose whole subtree is skipped (build output, tests, VCS/IDE metadata)
EXCLUDED_DIRS = frozenset({
    "build",
    "test",
    ".gradle",
    ".idea",
    "generated",
})

DEFAULT_EXTENSION = ".kt"

# Flatten mode writes next to the source: <parent>/<name>-files
FLATTEN_SUFFIX = "-files"

DEFAULT_WORKERS = 4


def parse_name_list(value: str | None) -> set[str]:
    """Split a comma-separated CLI value into a set of non-empty names."""
    if not value:
        return set()
    return {part.strip() for part in value.split(",") if part.strip()}


def normalize_extension(ext: str) -> str:
    """Ensure an extension starts with a dot. Case is kept (matching is case-sensitive)."""
    ext = ext.strip()
    return ext if ext.startswith(".") else f".{ext}"


# -----------------------------------------------------------------------------
# Console output
# -----------------------------------------------------------------------------

def print_header(title: str, subtitle: str = ""):
    """Print a styled header."""
    console.print(Panel(f"[bold blue]{title}[/bold blue]\n[italic]{subtitle}[/italic]", expand=False))


def print_package_table(summary: dict):
    """Print the per-package file counts of a metadata summary."""
    table = Table(title="Files by package")
    table.add_column("Package", style="cyan")
    table.add_column("Files", style="magenta", justify="right")

    for package, count in summary.get("packages", {}).items():
        table.add_row(package, str(count))

    console.print(table)


def print_error(msg: str):
    err_console.print(f"[bold red]ERROR:[/bold red] {msg}")

def print_warning(msg: str):
    console.print(f"[bold yellow]WARNING:[/bold yellow] {msg}")

def print_success(msg: str):
    console.print(f"[bold green]SUCCESS:[/bold green] {msg}")


# -----------------------------------------------------------------------------
# JSON
# -----------------------------------------------------------------------------

def save_json(data: Any, path: Path) -> None:
    """
    Save data to a JSON file with pretty formatting.

    Args:
        data: The data to serialize.
        path: The output file path.
    """
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    print(f"[INFO] Saved: {path}")
