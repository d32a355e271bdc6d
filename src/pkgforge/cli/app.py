#!/usr/bin/env python3
"""
pkgforge command line.

Commands:
    build         build a project for one or more platforms
    devkit        prepare a development build and leave it running
    dependencies  show the packages a build would install
"""

import sys
from typing import Annotated

import typer

from pkgforge import __version__

from .commands import build, dependencies, devkit
from .constants import ExitCode
from .utils import console

app = typer.Typer(
    name="pkgforge",
    help="📦 pkgforge - Build package recipes on local, remote, cloud or container hosts",
    rich_markup_mode="rich",
    add_completion=False,
    no_args_is_help=True,
)

for command in (build, devkit, dependencies):
    app.command()(command)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """
    📦 pkgforge

    Descriptors are read from --configdir (default: ./configs): one file
    per platform under platforms/, one per project under projects/.
    """
    if version:
        console.print(f"📦 [bold cyan]pkgforge[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit()


def cli_main() -> None:
    """Entry point for the CLI application."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Operation cancelled by user[/yellow]")
        sys.exit(ExitCode.INTERRUPTED)
    except Exception as e:
        console.print(f"💥 [bold red]Unexpected error: {e}[/bold red]")
        console.print_exception()
        sys.exit(ExitCode.FAILURE)


if __name__ == "__main__":
    cli_main()
