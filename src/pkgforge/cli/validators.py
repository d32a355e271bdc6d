#!/usr/bin/env python3
"""
Validation functions for pkgforge CLI

Checks operator input before any driver is created, so mistakes surface
as a clear message instead of a half-started build.
"""

import os
from pathlib import Path

import typer

from pkgforge.core.errors import ConfigurationError
from pkgforge.core.retry import RetryContext
from pkgforge.engines.factory import EngineFactory

from .constants import ExitCode
from .utils import console


def validate_configdir(configdir: str) -> Path:
    """Ensure configdir holds platforms/ and projects/ directories."""
    path = Path(configdir)
    missing = [sub for sub in ("platforms", "projects") if not (path / sub).is_dir()]
    if missing:
        console.print(
            f"❌ [bold red]Config directory {path} is missing: {', '.join(missing)}[/bold red]"
        )
        console.print("💡 [dim]Use --configdir to point at your configs directory[/dim]")
        raise typer.Exit(ExitCode.INVALID_ARGS)
    return path


def validate_engine(engine: str) -> str:
    """Ensure the default engine is a registered engine kind."""
    available = EngineFactory.available_engines()
    if engine not in available:
        console.print(f"❌ [bold red]Unknown engine '{engine}'[/bold red]")
        console.print(f"💡 [dim]Available engines: {', '.join(available)}[/dim]")
        raise typer.Exit(ExitCode.INVALID_ARGS)
    return engine


def validate_retry_environment() -> RetryContext:
    """Parse the RETRY_COUNT/TIMEOUT environment overrides up front."""
    try:
        return RetryContext.resolve(None, os.environ)
    except ConfigurationError as e:
        console.print(f"❌ [bold red]{e.message}[/bold red]")
        raise typer.Exit(ExitCode.CONFIGURATION_ERROR)
