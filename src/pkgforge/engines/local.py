#!/usr/bin/env python3
"""
Local engine: builds on the machine running pkgforge.

The local workdir doubles as the remote workdir, so shipping is a no-op
and nothing needs tearing down.
"""

import logging
import shlex
import shutil
from pathlib import Path
from typing import Optional, Union

from pkgforge.core.errors import BackendError, TransientExecutionError

from .base import Engine

logger = logging.getLogger(__name__)


class LocalEngine(Engine):
    """Runs every command through bash on this host."""

    ENGINE_NAME = "local"
    REQUIRED_TOOLS = ["bash"]

    @property
    def target(self) -> str:
        return "localhost"

    def build_host_name(self) -> str:
        return "localhost"

    def start(self, workdir: Union[str, Path]) -> None:
        self.check_required_tools()
        self._remote_workdir = str(Path(workdir).resolve())
        logger.info("Building locally in %s", self._remote_workdir)

    def ship_workdir(self, workdir: Union[str, Path]) -> None:
        source = Path(workdir).resolve()
        if str(source) != self.remote_workdir:
            shutil.copytree(source, self.remote_workdir, dirs_exist_ok=True)

    def dispatch(self, command: str, return_output: bool = False) -> Optional[str]:
        output = self._sh(
            f"bash -c {shlex.quote(command)}", "dispatch", TransientExecutionError
        )
        return output if return_output else None

    def retrieve_built_artifact(self) -> Path:
        source = Path(self.remote_workdir) / "output"
        if not source.is_dir():
            raise BackendError(
                f"No output directory produced in {self.remote_workdir}",
                context=self._context("retrieve_built_artifact"),
                suggestions=["Check that the package target writes into $(OUTPUT)"],
            )
        self.output_dir.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, self.output_dir, dirs_exist_ok=True)
        logger.info("Artifacts copied to %s", self.output_dir)
        return self.output_dir
