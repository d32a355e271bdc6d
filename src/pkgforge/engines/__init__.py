"""
Engine layer: where builds actually run.

Architecture:
- Engine: abstract contract used by the build driver
- LocalEngine: this machine
- DirectEngine ("base"): an operator supplied host over ssh/rsync
- HardwareEngine: a dedicated host from the platform's pool
- CloudEngine ("ec2"): an ephemeral EC2 instance
- DockerEngine: a throwaway container
- EngineFactory: selection policy and registry
"""

from .base import Engine
from .factory import DEFAULT_ENGINE, EngineFactory, select_engine_kind

__all__ = ["Engine", "EngineFactory", "select_engine_kind", "DEFAULT_ENGINE"]
