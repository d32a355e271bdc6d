"""
Orchestration layer for pkgforge workflows.

Sits between the CLI (presentation) and the engine layer.

Architecture:
- dependencies: build dependency set and install command
- BuildDriver: run (full package build) and prepare (devkit) workflows
"""

from .dependencies import install_command, list_build_dependencies
from .build_driver import BuildDriver, DriverOptions

__all__ = ["BuildDriver", "DriverOptions", "install_command", "list_build_dependencies"]
