#!/usr/bin/env python3
"""
Dependencies command for pkgforge CLI
"""

from typing import Annotated, List

import typer
from rich.table import Table

from pkgforge.core.errors import ConfigurationError, handle_error
from pkgforge.descriptors.loader import load_platform, load_project
from pkgforge.orchestration.dependencies import install_command, list_build_dependencies

from ..constants import DEFAULT_CONFIGDIR, ExitCode
from ..utils import console, setup_logging, split_comma_separated
from ..validators import validate_configdir


def dependencies(
    project: Annotated[str, typer.Argument(help="Project to inspect")],
    platform: Annotated[str, typer.Argument(help="Platform to inspect it for")],
    configdir: Annotated[
        str,
        typer.Option("--configdir", "-c", help="Directory holding platforms/ and projects/"),
    ] = DEFAULT_CONFIGDIR,
    only_build: Annotated[
        List[str],
        typer.Option("--only-build", help="Components to consider (can specify multiple)"),
    ] = [],
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    📋 Show the external build dependencies and how they would be installed.
    """
    setup_logging(verbose)
    validate_configdir(configdir)

    try:
        loaded_platform = load_platform(platform, configdir)
        loaded_project = load_project(
            project, configdir, loaded_platform, split_comma_separated(only_build) or None
        )
        deps = list_build_dependencies(loaded_project.components)
        command = install_command(loaded_platform, deps)
    except ConfigurationError as e:
        handle_error(e)
        raise typer.Exit(ExitCode.CONFIGURATION_ERROR)

    table = Table(
        title=f"Build dependencies of {project} on {platform}",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Dependency", style="cyan")
    for dep in deps:
        table.add_row(dep)
    console.print(table)

    if command:
        console.print(f"📦 Install command: [yellow]{command}[/yellow]")
    else:
        console.print("✅ [green]Nothing to install[/green]")
