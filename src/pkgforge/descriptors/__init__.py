"""
Platform and project descriptors.

- Platform: target OS/architecture and how to build on it
- Project: the package being built and its delegated operations
- loader: reads descriptors from YAML/JSON data files
"""

from .platform import BuildDependencies, Platform
from .project import Component, Project
from .loader import load_platform, load_project

__all__ = [
    "BuildDependencies",
    "Platform",
    "Component",
    "Project",
    "load_platform",
    "load_project",
]
