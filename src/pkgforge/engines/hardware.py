#!/usr/bin/env python3
"""
Hardware engine: builds on a dedicated host from the platform's pool.

The first reachable entry of platform.build_hosts is claimed at start().
Teardown removes the remote workdir so the host is returned clean; it runs
even when the operator asked to preserve the build.
"""

import logging
import shlex
from pathlib import Path
from typing import Optional, Union

from pkgforge.core.console import ShellCommandError
from pkgforge.core.errors import BackendError

from .direct import DirectEngine

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 30


class HardwareEngine(DirectEngine):
    """Dedicated build host selected from platform.build_hosts."""

    ENGINE_NAME = "hardware"
    PROVISIONS_RESOURCES = True

    def __init__(self, platform, target: Optional[str] = None, **kwargs):
        super().__init__(platform, None, **kwargs)
        if target:
            logger.warning(
                "Ignoring target %s, %s builds on its build_hosts", target, platform.name
            )

    def build_host_name(self) -> str:
        if self._target:
            return super().build_host_name()
        return ",".join(self.platform.build_hosts) or self.name

    def select_target(self) -> str:
        """Return the first build host answering over ssh."""
        for host in self.platform.build_hosts:
            self._target = host
            try:
                self.console.sh(self.ssh_command("true"), timeout=PROBE_TIMEOUT)
            except ShellCommandError as e:
                logger.warning("Build host %s is unreachable: %s", host, e)
                continue
            logger.info("Selected build host %s", host)
            return host

        self._target = None
        raise BackendError(
            f"No reachable build host for {self.platform.name}",
            context=self._context(
                "select_target", additional_info={"build_hosts": list(self.platform.build_hosts)}
            ),
            suggestions=["Check the build_hosts entries of the platform", "Check ssh access"],
        )

    def start(self, workdir: Union[str, Path]) -> None:
        self.check_required_tools()
        self.select_target()
        super().start(workdir)

    def teardown(self) -> None:
        if not self.started:
            logger.debug("Hardware engine was never started, nothing to clean")
            return
        logger.info("Cleaning %s on %s", self.remote_workdir, self.build_host_name())
        self._sh(self.ssh_command(f"rm -rf {shlex.quote(self.remote_workdir)}"), "teardown")
        self._remote_workdir = None
