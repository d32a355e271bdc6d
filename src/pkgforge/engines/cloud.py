#!/usr/bin/env python3
"""
Cloud engine: builds on an ephemeral EC2 instance.

Drives the aws CLI to launch an instance from platform.aws_ami, waits for
it to accept ssh connections and then behaves like the direct engine.
Teardown terminates the instance; it runs even when the operator asked to
preserve the build.
"""

import logging
import shlex
from pathlib import Path
from typing import List, Optional, Union

from pkgforge.core.errors import BackendError, RetryExhaustedError
from pkgforge.core.retry import RetryStrategy, retry_with_timeout

from .direct import DirectEngine

logger = logging.getLogger(__name__)

SSH_WAIT_ATTEMPTS = 30
SSH_WAIT_TIMEOUT = 600


class CloudEngine(DirectEngine):
    """Ephemeral EC2 instance launched from platform.aws_ami."""

    ENGINE_NAME = "ec2"
    PROVISIONS_RESOURCES = True
    REQUIRED_TOOLS = ["aws", "ssh", "rsync"]

    def __init__(self, platform, target: Optional[str] = None, **kwargs):
        super().__init__(platform, None, **kwargs)
        self.instance_id: Optional[str] = None

    def build_host_name(self) -> str:
        if self._target:
            return super().build_host_name()
        return self.platform.aws_ami or self.name

    def _aws(self, *args: str) -> str:
        parts: List[str] = ["aws", "ec2"] + list(args)
        if self.platform.aws_region:
            parts += ["--region", self.platform.aws_region]
        return " ".join(shlex.quote(part) for part in parts)

    def launch_instance(self) -> str:
        """Run the instance and return its id."""
        args = [
            "run-instances",
            "--image-id", self.platform.aws_ami,
            "--instance-type", self.platform.aws_instance_type,
            "--count", "1",
            "--tag-specifications",
            f"ResourceType=instance,Tags=[{{Key=Name,Value=pkgforge-{self.platform.name}}}]",
            "--query", "Instances[0].InstanceId",
            "--output", "text",
        ]
        if self.platform.aws_key_name:
            args[1:1] = ["--key-name", self.platform.aws_key_name]
        self.instance_id = self._sh(self._aws(*args), "launch_instance").strip()
        logger.info("Launched instance %s from %s", self.instance_id, self.platform.aws_ami)
        return self.instance_id

    def wait_for_instance(self) -> str:
        """Wait until the instance runs and return its public DNS name."""
        self._sh(self._aws("wait", "instance-running", "--instance-ids", self.instance_id), "wait_for_instance")
        address = self._sh(
            self._aws(
                "describe-instances",
                "--instance-ids", self.instance_id,
                "--query", "Reservations[0].Instances[0].PublicDnsName",
                "--output", "text",
            ),
            "describe_instance",
        ).strip()
        if not address or address == "None":
            raise BackendError(
                f"Instance {self.instance_id} has no public address",
                context=self._context("wait_for_instance"),
                suggestions=["Launch the AMI in a subnet that assigns public addresses"],
            )
        return address

    def start(self, workdir: Union[str, Path]) -> None:
        self.check_required_tools()
        self.launch_instance()
        address = self.wait_for_instance()
        self._target = f"{self.platform.aws_user}@{address}"

        try:
            retry_with_timeout(
                SSH_WAIT_ATTEMPTS,
                SSH_WAIT_TIMEOUT,
                lambda: self.console.sh(self.ssh_command("true"), timeout=30),
                description=f"ssh to {address}",
                strategy=RetryStrategy.LINEAR_BACKOFF,
                base_delay=5.0,
                max_delay=20.0,
            )
        except RetryExhaustedError as e:
            raise BackendError(
                f"Instance {self.instance_id} never accepted ssh connections",
                context=self._context("start"),
                cause=e,
            ) from e
        super().start(workdir)

    def teardown(self) -> None:
        if not self.instance_id:
            logger.debug("No instance was launched, nothing to terminate")
            return
        logger.info("Terminating instance %s", self.instance_id)
        self._sh(
            self._aws("terminate-instances", "--instance-ids", self.instance_id),
            "teardown",
        )
        self.instance_id = None
        self._remote_workdir = None
