#!/usr/bin/env python3
"""
Engine Factory - selects and creates execution engines.

Implements the selection policy mapping a platform (and an optional
operator supplied target) onto an engine kind, and a registry mapping each
kind onto the class implementing it.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from pkgforge.core.errors import ConfigurationError, create_error_context
from pkgforge.descriptors.platform import Platform

from .base import Engine

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "local"


def select_engine_kind(
    platform: Platform, target: Optional[str] = None, default: str = DEFAULT_ENGINE
) -> str:
    """
    Pick the engine kind for a platform.

    Precedence, highest first: dedicated build hosts, cloud image, container
    image, explicit target address, then the caller supplied default.

    Args:
        platform: Platform being built for
        target: Operator supplied build host address, if any
        default: Kind used when nothing else applies

    Returns:
        Engine kind identifier
    """
    if platform.build_hosts:
        return "hardware"
    if platform.aws_ami:
        return "ec2"
    if platform.docker_image:
        return "docker"
    if target:
        return "base"
    return default


class EngineFactory:
    """
    Registry of engine classes keyed by kind.

    Built-in engines: local, base, hardware, ec2, docker
    """

    _engines: Dict[str, Type[Engine]] = {}

    @classmethod
    def register(cls, kind: str, engine_class: Type[Engine]) -> None:
        """
        Register an engine kind.

        Args:
            kind: Identifier the selection policy returns
            engine_class: Class implementing Engine
        """
        cls._engines[kind] = engine_class

    @classmethod
    def unregister(cls, kind: str) -> None:
        cls._engines.pop(kind, None)

    @classmethod
    def create(
        cls, kind: str, platform: Platform, target: Optional[str] = None, **kwargs: Any
    ) -> Engine:
        """
        Create an engine instance of the given kind.

        Raises:
            ConfigurationError: If the kind is not registered
        """
        engine_class = cls._engines.get(kind)
        if engine_class is None:
            available = ", ".join(sorted(cls._engines))
            raise ConfigurationError(
                f"No such engine '{kind}'",
                context=create_error_context(
                    operation="create_engine",
                    component="EngineFactory",
                    platform=platform.name,
                ),
                suggestions=[f"Available engines: {available}"],
            )
        logger.debug("Creating %s engine for %s", kind, platform.name)
        return engine_class(platform, target, **kwargs)

    @classmethod
    def for_platform(
        cls,
        platform: Platform,
        target: Optional[str] = None,
        default: str = DEFAULT_ENGINE,
        **kwargs: Any,
    ) -> Engine:
        """Apply the selection policy, then create the engine."""
        kind = select_engine_kind(platform, target, default)
        return cls.create(kind, platform, target, **kwargs)

    @classmethod
    def available_engines(cls) -> List[str]:
        return sorted(cls._engines)


def register_default_engines() -> None:
    """Register the built-in engines."""
    from .cloud import CloudEngine
    from .direct import DirectEngine
    from .docker import DockerEngine
    from .hardware import HardwareEngine
    from .local import LocalEngine

    for engine_class in (LocalEngine, DirectEngine, HardwareEngine, CloudEngine, DockerEngine):
        EngineFactory.register(engine_class.ENGINE_NAME, engine_class)


register_default_engines()
