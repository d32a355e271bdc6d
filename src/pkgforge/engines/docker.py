#!/usr/bin/env python3
"""
Docker engine: builds inside a throwaway container of platform.docker_image.

The container is kept alive with a no-op foreground process; commands run
through docker exec and files move with docker cp.
"""

import logging
import shlex
import uuid
from pathlib import Path
from typing import Optional, Union

from pkgforge.core.errors import TransientExecutionError

from .base import Engine

logger = logging.getLogger(__name__)

REMOTE_WORKDIR = "/var/tmp/pkgforge"


class DockerEngine(Engine):
    """Container engine driven by the docker CLI."""

    ENGINE_NAME = "docker"
    REQUIRED_TOOLS = ["docker"]

    def __init__(self, platform, target: Optional[str] = None, **kwargs):
        super().__init__(platform, target, **kwargs)
        self.container_name: Optional[str] = None

    @property
    def target(self) -> Optional[str]:
        return self.container_name

    def build_host_name(self) -> str:
        return self.container_name or self.platform.docker_image

    def start(self, workdir: Union[str, Path]) -> None:
        self.check_required_tools()
        name = f"pkgforge-{self.platform.name}-{uuid.uuid4().hex[:8]}"
        run_args = " ".join(shlex.quote(arg) for arg in self.platform.docker_run_args)
        command = f"docker run -d --name {shlex.quote(name)} "
        if run_args:
            command += run_args + " "
        command += f"{shlex.quote(self.platform.docker_image)} tail -f /dev/null"
        self._sh(command, "start")
        self.container_name = name

        self._sh(self._exec(f"mkdir -p {REMOTE_WORKDIR}"), "start")
        self._remote_workdir = REMOTE_WORKDIR
        logger.info("Started container %s from %s", name, self.platform.docker_image)

    def _exec(self, command: str) -> str:
        return f"docker exec {shlex.quote(self.container_name)} bash -c {shlex.quote(command)}"

    def ship_workdir(self, workdir: Union[str, Path]) -> None:
        source = str(Path(workdir).resolve()) + "/."
        self._sh(
            f"docker cp {shlex.quote(source)} {shlex.quote(self.container_name + ':' + self.remote_workdir)}",
            "ship_workdir",
        )

    def dispatch(self, command: str, return_output: bool = False) -> Optional[str]:
        output = self._sh(self._exec(command), "dispatch", TransientExecutionError)
        return output if return_output else None

    def retrieve_built_artifact(self) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        source = f"{self.container_name}:{self.remote_workdir}/output/."
        self._sh(
            f"docker cp {shlex.quote(source)} {shlex.quote(str(self.output_dir))}",
            "retrieve_built_artifact",
        )
        logger.info("Artifacts copied to %s", self.output_dir)
        return self.output_dir

    def teardown(self) -> None:
        if not self.container_name:
            return
        logger.info("Removing container %s", self.container_name)
        self._sh(f"docker rm -f {shlex.quote(self.container_name)}", "teardown")
        self.container_name = None
        self._remote_workdir = None
