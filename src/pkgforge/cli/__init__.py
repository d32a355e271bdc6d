#!/usr/bin/env python3
"""
CLI Package for pkgforge

Typer application with one module per command.
"""

from .app import app, cli_main
from .constants import ExitCode, DEFAULT_CONFIGDIR, DEFAULT_OUTPUT_DIR
from .utils import (
    setup_logging,
    split_comma_separated,
    save_summary_with_feedback,
    display_results_table,
)
from .validators import validate_configdir, validate_engine, validate_retry_environment

__all__ = [
    "app",
    "cli_main",
    "ExitCode",
    "DEFAULT_CONFIGDIR",
    "DEFAULT_OUTPUT_DIR",
    "setup_logging",
    "split_comma_separated",
    "save_summary_with_feedback",
    "display_results_table",
    "validate_configdir",
    "validate_engine",
    "validate_retry_environment",
]
