#!/usr/bin/env python3
"""
Direct-connection engine: builds on an operator supplied host over SSH.

Uses the ssh and rsync CLIs; no Python SSH library is required. The host
is not provisioned by pkgforge, so teardown leaves it untouched.
"""

import logging
import shlex
from pathlib import Path
from typing import List, Optional, Union

from pkgforge.core.errors import ConfigurationError, TransientExecutionError

from .base import Engine

logger = logging.getLogger(__name__)

SSH_OPTIONS = [
    "-o", "StrictHostKeyChecking=no",
    "-o", "UserKnownHostsFile=/dev/null",
    "-o", "LogLevel=ERROR",
    "-o", "BatchMode=yes",
]


class DirectEngine(Engine):
    """Builds on an existing host reached through ssh/rsync."""

    ENGINE_NAME = "base"
    REQUIRED_TOOLS = ["ssh", "rsync"]

    def __init__(self, platform, target: Optional[str] = None, **kwargs):
        super().__init__(platform, target, **kwargs)
        if self.ENGINE_NAME == DirectEngine.ENGINE_NAME and not target:
            raise ConfigurationError(
                "The base engine requires a target host",
                context=self._context("init"),
                suggestions=["Pass --target <host>"],
            )

    @property
    def target(self) -> Optional[str]:
        if self._target and "@" not in self._target:
            return f"{self.platform.target_user}@{self._target}"
        return self._target

    def build_host_name(self) -> str:
        if self._target:
            return self._target.split("@", 1)[-1]
        return self.name

    def _ssh_args(self) -> List[str]:
        args = ["-p", str(self.platform.ssh_port)] + SSH_OPTIONS
        if self.platform.ssh_key:
            args += ["-i", self.platform.ssh_key]
        return args

    def ssh_command(self, command: str) -> str:
        """Local command line running command on the target."""
        args = " ".join(shlex.quote(arg) for arg in self._ssh_args())
        return f"ssh {args} {shlex.quote(self.target)} {shlex.quote(command)}"

    def _rsync_shell(self) -> str:
        return "ssh " + " ".join(shlex.quote(arg) for arg in self._ssh_args())

    def rsync_command(self, source: str, destination: str) -> str:
        return (
            f"rsync -rHl --no-perms --no-owner --no-group "
            f"-e {shlex.quote(self._rsync_shell())} "
            f"{shlex.quote(source)} {shlex.quote(destination)}"
        )

    def start(self, workdir: Union[str, Path]) -> None:
        self.check_required_tools()
        remote = self._sh(
            self.ssh_command("mktemp -d -p /var/tmp 2>/dev/null || mktemp -d"),
            "start",
        )
        self._remote_workdir = remote.strip().splitlines()[-1]
        logger.info("Remote workdir on %s is %s", self.build_host_name(), self._remote_workdir)

    def ship_workdir(self, workdir: Union[str, Path]) -> None:
        source = str(Path(workdir).resolve()) + "/"
        self._sh(
            self.rsync_command(source, f"{self.target}:{self.remote_workdir}/"),
            "ship_workdir",
        )

    def dispatch(self, command: str, return_output: bool = False) -> Optional[str]:
        output = self._sh(self.ssh_command(command), "dispatch", TransientExecutionError)
        return output if return_output else None

    def retrieve_built_artifact(self) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._sh(
            self.rsync_command(
                f"{self.target}:{self.remote_workdir}/output/",
                str(self.output_dir.resolve()) + "/",
            ),
            "retrieve_built_artifact",
        )
        logger.info("Artifacts copied to %s", self.output_dir)
        return self.output_dir
