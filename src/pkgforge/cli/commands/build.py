#!/usr/bin/env python3
"""
Build command for pkgforge CLI
"""

from typing import Annotated, Dict, List, Optional

import typer
from rich.panel import Panel

from pkgforge.core.errors import (
    ConfigurationError,
    PkgForgeError,
    create_error_context,
    handle_error,
)
from pkgforge.orchestration.build_driver import BuildDriver, DriverOptions

from ..constants import DEFAULT_CONFIGDIR, DEFAULT_OUTPUT_DIR, ExitCode
from ..utils import (
    console,
    display_results_table,
    save_summary_with_feedback,
    setup_logging,
    split_comma_separated,
)
from ..validators import validate_configdir, validate_engine, validate_retry_environment


def _build_one(project: str, platform: str, options: DriverOptions) -> Dict:
    """Build project for one platform and describe the outcome."""
    result: Dict = {"platform": platform, "success": False}

    try:
        driver = BuildDriver.from_config(platform, project, options)
    except PkgForgeError as e:
        handle_error(
            e,
            context=create_error_context(operation="load", platform=platform, project=project),
        )
        result.update(error=e.message, configuration=isinstance(e, ConfigurationError))
        return result

    host = driver.build_host_info()
    result.update(engine=host["engine"], host=host["name"])

    try:
        artifacts = driver.run()
    except PkgForgeError as e:
        # already reported by the driver
        result.update(error=e.message, configuration=isinstance(e, ConfigurationError))
        return result
    except Exception as e:
        result.update(error=str(e), configuration=False)
        return result

    result.update(success=True, artifacts=str(artifacts), host=driver.build_host_info()["name"])
    return result


def build(
    project: Annotated[str, typer.Argument(help="Project to build")],
    platforms: Annotated[
        str, typer.Argument(help="Platform(s) to build for, comma separated")
    ],
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
        typer.Option("--only-build", help="Components to build (can specify multiple)"),
    ] = [],
    preserve: Annotated[
        bool,
        typer.Option("--preserve", "-p", help="Keep the workdir and build host after the build"),
    ] = False,
    skipcheck: Annotated[
        bool, typer.Option("--skipcheck", help="Skip the check step of every component")
    ] = False,
    output_dir: Annotated[
        str, typer.Option("--output-dir", "-o", help="Where built artifacts are retrieved to")
    ] = DEFAULT_OUTPUT_DIR,
    summary_output: Annotated[
        Optional[str],
        typer.Option("--summary-output", "-s", help="Output file for build summary JSON"),
    ] = None,
    log_file: Annotated[
        Optional[str], typer.Option("--log-file", help="Also write the log to this file")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose logging")
    ] = False,
) -> None:
    """
    🔨 Build a project into packages for one or more platforms.

    Every platform gets its own build; a failure on one platform does not
    stop the others.
    """
    setup_logging(verbose, log_file)

    platform_names = split_comma_separated([platforms])
    if not platform_names:
        console.print("❌ [bold red]No platform given[/bold red]")
        raise typer.Exit(ExitCode.INVALID_ARGS)

    validate_configdir(configdir)
    validate_engine(engine)
    validate_retry_environment()

    components = split_comma_separated(only_build)
    console.print(
        Panel(
            f"🔨 [bold cyan]Building {project}[/bold cyan]\n"
            f"Platforms: [yellow]{', '.join(platform_names)}[/yellow]\n"
            f"Components: [yellow]{', '.join(components) if components else 'All components'}[/yellow]\n"
            f"Target: [yellow]{target or 'Chosen by platform'}[/yellow]",
            title="Build Configuration",
            border_style="blue",
        )
    )

    options = DriverOptions(
        configdir=configdir,
        target=target,
        engine=engine,
        components=components,
        skipcheck=skipcheck,
        verbose=verbose,
        preserve=preserve,
        output_dir=output_dir,
    )

    results: List[Dict] = []
    try:
        for platform in platform_names:
            console.print(f"\n📦 [bold]{project}[/bold] on [cyan]{platform}[/cyan]")
            results.append(_build_one(project, platform, options))
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Build cancelled by user[/yellow]")
        raise typer.Exit(ExitCode.INTERRUPTED)

    display_results_table(results, "Build Results")
    save_summary_with_feedback({"project": project, "builds": results}, summary_output)

    failed = [r for r in results if not r["success"]]
    if not failed:
        console.print("🎉 [bold green]All builds completed successfully![/bold green]")
        raise typer.Exit(ExitCode.SUCCESS)

    if len(failed) < len(results):
        console.print(
            f"⚠️  [bold yellow]Partial success: "
            f"{len(results) - len(failed)} built, {len(failed)} failed[/bold yellow]"
        )
    else:
        console.print("💥 [bold red]All builds failed[/bold red]")

    if all(r.get("configuration") for r in failed):
        raise typer.Exit(ExitCode.CONFIGURATION_ERROR)
    raise typer.Exit(ExitCode.BUILD_FAILURE)
