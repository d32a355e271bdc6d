#!/usr/bin/env python3
"""
Platform descriptor.

A Platform names the target OS/architecture and tells the driver how to
build on it: which engine it needs (dedicated hosts, a cloud image or a
container image), the make invocation, and how build dependencies are
installed.
"""

import shlex
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class BuildDependencies:
    """Literal install command template: '<command> <deps...> <suffix>'."""

    command: Optional[str] = None
    suffix: Optional[str] = None


def _quoted(dependencies: List[str]) -> str:
    return " ".join(shlex.quote(dep) for dep in dependencies)


def apt_install(dependencies: List[str]) -> str:
    return (
        "apt-get update -qq && DEBIAN_FRONTEND=noninteractive "
        f"apt-get install -y --no-install-recommends {_quoted(dependencies)}"
    )


def yum_install(dependencies: List[str]) -> str:
    return f"yum install -y {_quoted(dependencies)}"


def dnf_install(dependencies: List[str]) -> str:
    return f"dnf install -y {_quoted(dependencies)}"


def zypper_install(dependencies: List[str]) -> str:
    return f"zypper --non-interactive install {_quoted(dependencies)}"


def brew_install(dependencies: List[str]) -> str:
    return f"brew install {_quoted(dependencies)}"


INSTALL_COMMAND_BUILDERS: Dict[str, Callable[[List[str]], str]] = {
    "apt": apt_install,
    "yum": yum_install,
    "dnf": dnf_install,
    "zypper": zypper_install,
    "brew": brew_install,
}


@dataclass(frozen=True)
class Platform:
    """Immutable description of a build platform."""

    name: str
    make: str = "make"
    build_hosts: Tuple[str, ...] = ()
    aws_ami: Optional[str] = None
    aws_instance_type: str = "t3.large"
    aws_key_name: Optional[str] = None
    aws_region: Optional[str] = None
    aws_user: str = "root"
    docker_image: Optional[str] = None
    docker_run_args: Tuple[str, ...] = ()
    ssh_port: int = 22
    ssh_key: Optional[str] = None
    target_user: str = "root"
    build_dependencies: Optional[BuildDependencies] = None
    install_command_builder: Optional[Callable[[List[str]], str]] = field(
        default=None, compare=False
    )
    package_manager: Optional[str] = None
    settings: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def has_install_command(self) -> bool:
        """True when a literal install command template is configured."""
        return bool(self.build_dependencies and self.build_dependencies.command)
