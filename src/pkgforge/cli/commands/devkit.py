#!/usr/bin/env python3
"""
Devkit command for pkgforge CLI
"""

from typing import Annotated, List, Optional

import typer
from rich.panel import Panel

from pkgforge.core.errors import PkgForgeError, create_error_context, handle_error
from pkgforge.orchestration.build_driver import BuildDriver, DriverOptions

from ..constants import DEFAULT_CONFIGDIR, ExitCode
from ..utils import console, setup_logging, split_comma_separated
from ..validators import validate_configdir, validate_engine


def _release_provisioned_host(driver: BuildDriver) -> None:
    """Tear down a hardware or ec2 host left behind by a failed prepare."""
    if not driver.engine.PROVISIONS_RESOURCES:
        return
    try:
        driver.teardown()
    except Exception as e:
        handle_error(
            e,
            context=create_error_context(
                operation="teardown", engine=driver.engine.name, platform=driver.platform.name
            ),
        )


def devkit(
    project: Annotated[str, typer.Argument(help="Project to prepare")],
    platform: Annotated[str, typer.Argument(help="Platform to prepare it on")],
    workdir: Annotated[
        Optional[str],
        typer.Option("--workdir", "-w", help="Local workdir to use (created if missing)"),
    ] = None,
    target: Annotated[
        Optional[str],
        typer.Option("--target", "-t", help="Build host to use, as [user@]host"),
    ] = None,
    engine: Annotated[
        str,
        typer.Option("--engine", "-e", help="Engine used when the platform does not pick one"),
    ] = "local",
    configdir: Annotated[
        str,
        typer.Option("--configdir", "-c", help="Directory holding platforms/ and projects/"),
    ] = DEFAULT_CONFIGDIR,
    only_build: Annotated[
        List[str],
        typer.Option("--only-build", help="Components to prepare (can specify multiple)"),
    ] = [],
    skipcheck: Annotated[
        bool, typer.Option("--skipcheck", help="Skip the check step of every component")
    ] = False,
    log_file: Annotated[
        Optional[str], typer.Option("--log-file", help="Also write the log to this file")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    🛠️  Prepare a development build without packaging it.

    Sources are fetched and built on the build host; nothing is torn down
    so the workdir and the host stay available for iteration. If the
    prepare fails, hardware and ec2 hosts are released.
    """
    setup_logging(verbose, log_file)
    validate_configdir(configdir)
    validate_engine(engine)

    options = DriverOptions(
        configdir=configdir,
        target=target,
        engine=engine,
        components=split_comma_separated(only_build),
        skipcheck=skipcheck,
        verbose=verbose,
        preserve=True,
    )

    try:
        driver = BuildDriver.from_config(platform, project, options)
    except PkgForgeError as e:
        handle_error(
            e,
            context=create_error_context(operation="load", platform=platform, project=project),
        )
        raise typer.Exit(ExitCode.CONFIGURATION_ERROR)

    try:
        prepared = driver.prepare(workdir)
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Devkit cancelled by user[/yellow]")
        _release_provisioned_host(driver)
        raise typer.Exit(ExitCode.INTERRUPTED)
    except PkgForgeError:
        # already reported by the driver
        _release_provisioned_host(driver)
        raise typer.Exit(ExitCode.BUILD_FAILURE)

    host = driver.build_host_info()
    console.print(
        Panel(
            f"✅ [bold green]{project} prepared on {platform}[/bold green]\n"
            f"Local workdir: [cyan]{prepared}[/cyan]\n"
            f"Remote workdir: [cyan]{driver.engine.remote_workdir}[/cyan]\n"
            f"Build host: [yellow]{host['name']}[/yellow] ({host['engine']})",
            title="Devkit Ready",
            border_style="green",
        )
    )
