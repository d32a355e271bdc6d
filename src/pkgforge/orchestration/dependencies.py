#!/usr/bin/env python3
"""
Build dependency resolution.

Computes the external packages a project needs installed before it can be
built, and turns them into the platform's install command.
"""

import logging
from typing import Iterable, List, Optional

from pkgforge.core.errors import ConfigurationError, create_error_context
from pkgforge.descriptors.platform import Platform
from pkgforge.descriptors.project import Component

logger = logging.getLogger(__name__)


def list_build_dependencies(components: Iterable[Component]) -> List[str]:
    """
    External build requirements of components, sorted by name.

    Requirements satisfied by another component of the same project are
    excluded; they are built, not installed.
    """
    components = list(components)
    required = {req for component in components for req in component.build_requires}
    in_project = {component.name for component in components}
    return sorted(required - in_project)


def install_command(platform: Platform, dependencies: List[str]) -> Optional[str]:
    """
    Command installing dependencies on platform, or None if there are none.

    Raises:
        ConfigurationError: If the platform has no way to install packages
    """
    if not dependencies:
        return None

    if platform.has_install_command:
        parts = [platform.build_dependencies.command] + list(dependencies)
        if platform.build_dependencies.suffix:
            parts.append(platform.build_dependencies.suffix)
        return " ".join(parts)

    if platform.install_command_builder is not None:
        return platform.install_command_builder(list(dependencies))

    raise ConfigurationError(
        f"No method defined to install build dependencies for {platform.name}",
        context=create_error_context(
            operation="install_build_dependencies",
            platform=platform.name,
            additional_info={"dependencies": list(dependencies)},
        ),
        suggestions=[
            "Set build_dependencies.command in the platform file",
            "Or set package_manager to apt, yum, dnf, zypper or brew",
        ],
    )


def install_build_dependencies(platform: Platform, engine, components: Iterable[Component]) -> Optional[str]:
    """Dispatch the install command for components on engine, if needed."""
    dependencies = list_build_dependencies(components)
    command = install_command(platform, dependencies)
    if command is None:
        logger.info("No external build dependencies to install")
        return None
    logger.info("Installing build dependencies: %s", " ".join(dependencies))
    engine.dispatch(command)
    return command
