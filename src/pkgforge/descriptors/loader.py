#!/usr/bin/env python3
"""
Descriptor loader.

Loads platform and project descriptors from YAML or JSON data files laid
out as <configdir>/platforms/<name>.{yaml,yml,json} and
<configdir>/projects/<name>.{yaml,yml,json}.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml

from pkgforge.core.errors import ConfigurationError, create_error_context
from pkgforge.descriptors.platform import (
    INSTALL_COMMAND_BUILDERS,
    BuildDependencies,
    Platform,
)
from pkgforge.descriptors.project import Component, Project

SUFFIXES = (".yaml", ".yml", ".json")

PathLike = Union[str, Path]


def _find(name: str, directory: Path, kind: str) -> Path:
    for suffix in SUFFIXES:
        candidate = directory / f"{name}{suffix}"
        if candidate.exists():
            return candidate
    raise ConfigurationError(
        f"Could not find {kind} '{name}' in {directory}",
        context=create_error_context(operation=f"load_{kind}", file_path=str(directory)),
        suggestions=[
            f"Create {directory / (name + '.yaml')}",
            "Check the --configdir option",
        ],
    )


def load_file(path: PathLike) -> Dict[str, Any]:
    """
    Load a YAML or JSON descriptor file.

    Args:
        path: Path to the descriptor file

    Returns:
        Mapping loaded from the file

    Raises:
        ConfigurationError: If the file is missing, malformed or not a mapping
    """
    path = Path(path)
    context = create_error_context(operation="load_descriptor", file_path=str(path))
    if not path.exists():
        raise ConfigurationError(f"Descriptor file not found: {path}", context=context)

    try:
        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            elif path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported descriptor format: {path.suffix}", context=context
                )
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Malformed descriptor {path}: {e}", context=context, cause=e
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Descriptor {path} must contain a mapping", context=context
        )
    return data


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def platform_from_dict(data: Dict[str, Any]) -> Platform:
    """Build a Platform from a loaded mapping."""
    if not data.get("name"):
        raise ConfigurationError(
            "Platform descriptor requires a 'name'",
            suggestions=["Add name: <os>-<version>-<arch> to the platform file"],
        )

    deps = data.get("build_dependencies")
    build_dependencies = None
    if isinstance(deps, dict):
        build_dependencies = BuildDependencies(
            command=deps.get("command"), suffix=deps.get("suffix")
        )
    elif isinstance(deps, str):
        build_dependencies = BuildDependencies(command=deps)

    package_manager = data.get("package_manager")
    builder = None
    if package_manager:
        builder = INSTALL_COMMAND_BUILDERS.get(package_manager)
        if builder is None:
            raise ConfigurationError(
                f"Unknown package manager '{package_manager}' for platform {data['name']}",
                suggestions=[f"Use one of: {', '.join(sorted(INSTALL_COMMAND_BUILDERS))}"],
            )

    return Platform(
        name=data["name"],
        make=data.get("make", "make"),
        build_hosts=tuple(_as_list(data.get("build_hosts"))),
        aws_ami=data.get("aws_ami"),
        aws_instance_type=data.get("aws_instance_type", "t3.large"),
        aws_key_name=data.get("aws_key_name"),
        aws_region=data.get("aws_region"),
        aws_user=data.get("aws_user", "root"),
        docker_image=data.get("docker_image"),
        docker_run_args=tuple(_as_list(data.get("docker_run_args"))),
        ssh_port=int(data.get("ssh_port", 22)),
        ssh_key=data.get("ssh_key"),
        target_user=data.get("target_user", "root"),
        build_dependencies=build_dependencies,
        install_command_builder=builder,
        package_manager=package_manager,
        settings=dict(data.get("settings") or {}),
    )


def load_platform(name: str, configdir: PathLike) -> Platform:
    """Load <configdir>/platforms/<name>.*"""
    path = _find(name, Path(configdir) / "platforms", "platform")
    return platform_from_dict(load_file(path))


def _component_from_dict(data: Dict[str, Any]) -> Component:
    if not data.get("name"):
        raise ConfigurationError("Every component requires a 'name'")
    return Component(
        name=data["name"],
        version=data.get("version"),
        build_requires=[str(req) for req in _as_list(data.get("build_requires"))],
        source=data.get("source"),
        ref=data.get("ref"),
        configure=_as_list(data.get("configure")),
        build=_as_list(data.get("build")),
        check=_as_list(data.get("check")),
        install=_as_list(data.get("install")),
        environment={str(k): str(v) for k, v in (data.get("environment") or {}).items()},
    )


def select_components(components: List[Component], wanted: Iterable[str]) -> List[Component]:
    """
    Keep only the wanted components and, transitively, the in-project
    components they require. Descriptor order is preserved.

    Raises:
        ConfigurationError: If a wanted component does not exist
    """
    by_name = {component.name: component for component in components}
    unknown = [name for name in wanted if name not in by_name]
    if unknown:
        raise ConfigurationError(
            f"Unknown component(s): {', '.join(unknown)}",
            suggestions=[f"Available components: {', '.join(by_name) or 'none'}"],
        )

    keep = set()
    pending = list(wanted)
    while pending:
        name = pending.pop()
        if name in keep:
            continue
        keep.add(name)
        pending.extend(req for req in by_name[name].build_requires if req in by_name)

    return [component for component in components if component.name in keep]


def project_from_dict(
    data: Dict[str, Any],
    platform: Optional[Platform] = None,
    components: Optional[Iterable[str]] = None,
    source_root: Optional[PathLike] = None,
) -> Project:
    """Build a Project from a loaded mapping."""
    if not data.get("name"):
        raise ConfigurationError("Project descriptor requires a 'name'")

    version = data.get("version")
    project_components = [_component_from_dict(c) for c in _as_list(data.get("components"))]
    if components:
        project_components = select_components(project_components, list(components))

    return Project(
        name=data["name"],
        version=str(version) if version is not None else None,
        release=str(data.get("release", "1")),
        components=project_components,
        retry_count=data.get("retry_count"),
        timeout=data.get("timeout"),
        settings=dict(data.get("settings") or {}),
        platform=platform,
        package_command=data.get("package_command"),
        source_root=Path(source_root) if source_root else Path.cwd(),
    )


def load_project(
    name: str,
    configdir: PathLike,
    platform: Optional[Platform] = None,
    components: Optional[Iterable[str]] = None,
) -> Project:
    """Load <configdir>/projects/<name>.*; relative sources resolve against configdir."""
    path = _find(name, Path(configdir) / "projects", "project")
    return project_from_dict(
        load_file(path), platform=platform, components=components, source_root=configdir
    )
