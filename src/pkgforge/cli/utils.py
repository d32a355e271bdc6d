#!/usr/bin/env python3
"""
Utility functions for pkgforge CLI
"""

import json
import logging
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pkgforge.core.errors import ErrorHandler, set_error_handler
from .constants import ExitCode


# Initialize Rich console
console = Console()


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Setup Rich logging, an optional plain log file and the error handler."""
    log_level = logging.DEBUG if verbose else logging.INFO

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    handlers: List[logging.Handler] = [rich_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s pkgforge %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )

    error_handler = ErrorHandler(console=console, verbose=verbose)
    set_error_handler(error_handler)


def split_comma_separated(values: List[str]) -> List[str]:
    """Split comma-separated values into individual values.

    Handles both formats:
    - Multiple flags: --only-build a --only-build b → ['a', 'b']
    - Comma-separated: --only-build a,b → ['a', 'b']
    """
    if not values:
        return []

    processed = []
    for value in values:
        processed.extend(v.strip() for v in value.split(",") if v.strip())
    return processed


def save_summary_with_feedback(summary: Dict, output_path: Optional[str]) -> None:
    """Save summary to file with user feedback."""
    if output_path:
        try:
            with open(output_path, "w") as f:
                json.dump(summary, f, indent=2)
            console.print(f"💾 Build summary saved to: [cyan]{output_path}[/cyan]")
        except IOError as e:
            console.print(f"❌ Failed to save build summary: [red]{e}[/red]")
            raise typer.Exit(ExitCode.FAILURE)


def display_results_table(results: List[Dict], title: str) -> None:
    """Display one row per platform build."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Status", style="bold")
    table.add_column("Platform", style="cyan")
    table.add_column("Engine", style="yellow")
    table.add_column("Build Host")
    table.add_column("Result")

    for index, result in enumerate(results, 1):
        status = "✅ Success" if result.get("success") else "❌ Failed"
        table.add_row(
            str(index),
            status,
            result.get("platform", "unknown"),
            result.get("engine", "-"),
            result.get("host", "-"),
            result.get("artifacts") or result.get("error", ""),
        )

    console.print(table)
