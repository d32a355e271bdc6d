#!/usr/bin/env python3
"""
Constants and configuration for pkgforge CLI
"""


# Exit codes
class ExitCode:
    """Exit codes for CLI commands."""

    SUCCESS = 0
    FAILURE = 1
    BUILD_FAILURE = 2
    CONFIGURATION_ERROR = 3
    INVALID_ARGS = 4
    INTERRUPTED = 130


# Default file paths and values
DEFAULT_CONFIGDIR = "configs"
DEFAULT_OUTPUT_DIR = "output"
