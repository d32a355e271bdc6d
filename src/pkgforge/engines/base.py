#!/usr/bin/env python3
"""
Base classes for the engine layer.

Defines the abstract contract every execution engine satisfies. The build
driver only ever talks to engines through this interface:

1. start(workdir)          - acquire the build host and a remote workdir
2. ship_workdir(workdir)   - copy the local workdir to the remote side
3. dispatch(command)       - run a command on the build host
4. retrieve_built_artifact - copy the produced packages back
5. teardown()              - release whatever start() acquired
"""

import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Type, Union

from pkgforge.core.console import Console, ShellCommandError
from pkgforge.core.errors import (
    BackendError,
    PkgForgeError,
    TransientExecutionError,
    create_error_context,
)
from pkgforge.descriptors.platform import Platform

logger = logging.getLogger(__name__)


class Engine(ABC):
    """
    Abstract base class for all execution engines.

    Subclasses set ENGINE_NAME (the stable identifier the factory registers
    them under) and PROVISIONS_RESOURCES (True for engines whose resources
    must be released even when the operator asked to preserve them).
    """

    ENGINE_NAME: str = ""
    PROVISIONS_RESOURCES: bool = False
    REQUIRED_TOOLS: List[str] = []

    def __init__(
        self,
        platform: Platform,
        target: Optional[str] = None,
        console: Optional[Console] = None,
        output_dir: Union[str, Path] = "output",
    ):
        """
        Initialize engine.

        Args:
            platform: Platform being built for
            target: Operator supplied build host address, if any
            console: Shell runner used for every command
            output_dir: Local directory receiving the built artifacts
        """
        self.platform = platform
        self._target = target
        self.console = console or Console()
        self.output_dir = Path(output_dir)
        self._remote_workdir: Optional[str] = None

    @property
    def name(self) -> str:
        return self.ENGINE_NAME

    @property
    def target(self) -> Optional[str]:
        """Resolved connection address of the build host."""
        return self._target

    @property
    def remote_workdir(self) -> str:
        """Workdir on the build host; valid after start()."""
        if self._remote_workdir is None:
            raise BackendError(
                f"Engine '{self.name}' has no remote workdir before start()",
                context=self._context("remote_workdir"),
            )
        return self._remote_workdir

    @property
    def started(self) -> bool:
        return self._remote_workdir is not None

    def build_host_name(self) -> str:
        """Name of the build host, for build host info records."""
        return self._target or self.name

    def check_required_tools(self) -> None:
        """Raise BackendError if a local tool this engine needs is missing."""
        missing = [tool for tool in self.REQUIRED_TOOLS if shutil.which(tool) is None]
        if missing:
            raise BackendError(
                f"Required tool(s) not found for engine '{self.name}': {', '.join(missing)}",
                context=self._context("check_required_tools"),
                suggestions=[f"Install {tool} and make sure it is on PATH" for tool in missing],
            )

    def _context(self, operation: str, **kwargs):
        return create_error_context(
            operation=operation,
            component=type(self).__name__,
            engine=self.name,
            platform=self.platform.name,
            **kwargs,
        )

    def _sh(
        self,
        command: str,
        operation: str,
        error_class: Type[PkgForgeError] = BackendError,
        timeout: Optional[int] = None,
    ) -> str:
        """Run a local command, mapping shell failures onto error_class."""
        try:
            return self.console.sh(command, timeout=timeout)
        except ShellCommandError as e:
            kwargs = {"command": command} if error_class is TransientExecutionError else {}
            raise error_class(
                f"{operation} failed on {self.build_host_name()}: {e}",
                context=self._context(operation, additional_info={"output": e.output[-2000:]}),
                cause=e,
                **kwargs,
            ) from e

    @abstractmethod
    def start(self, workdir: Union[str, Path]) -> None:
        """
        Acquire the build host and create the remote workdir.

        Args:
            workdir: Local workdir; engines may use it to seed remote state

        Raises:
            BackendError: If the build host cannot be acquired
        """
        pass

    @abstractmethod
    def ship_workdir(self, workdir: Union[str, Path]) -> None:
        """
        Copy the local workdir contents into remote_workdir.

        Raises:
            BackendError: If the transfer fails
        """
        pass

    @abstractmethod
    def dispatch(self, command: str, return_output: bool = False) -> Optional[str]:
        """
        Run command on the build host.

        Args:
            command: Shell command line
            return_output: Return the captured output

        Returns:
            Command output when return_output is set

        Raises:
            TransientExecutionError: If the command fails
        """
        pass

    @abstractmethod
    def retrieve_built_artifact(self) -> Path:
        """
        Copy <remote_workdir>/output into output_dir.

        Returns:
            The local output directory

        Raises:
            BackendError: If the transfer fails
        """
        pass

    def teardown(self) -> None:
        """Release whatever start() acquired. No-op by default."""
        logger.debug("Nothing to tear down for engine '%s'", self.name)
