#!/usr/bin/env python3
"""
Project descriptor.

A Project is the package being built: its name and version, its ordered
components, optional retry overrides and a settings map. It also performs
the operations the build driver delegates to it, each of which writes into
the local workdir:

- fetch_sources: copy, clone or download every component's source
- generate_build_files: render the Makefile driving the remote build
- generate_manifest: write the bill of materials
- generate_packaging_artifacts: write packaging metadata
"""

import json
import logging
import shlex
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined

from pkgforge.core.console import Console, ShellCommandError
from pkgforge.core.errors import BuildError, create_error_context
from pkgforge.descriptors.platform import Platform

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2", ".tar")


@dataclass
class Component:
    """One buildable piece of a project."""

    name: str
    version: Optional[str] = None
    build_requires: List[str] = field(default_factory=list)
    source: Optional[str] = None
    ref: Optional[str] = None
    configure: List[str] = field(default_factory=list)
    build: List[str] = field(default_factory=list)
    check: List[str] = field(default_factory=list)
    install: List[str] = field(default_factory=list)
    environment: Dict[str, str] = field(default_factory=dict)

    @property
    def dirname(self) -> str:
        """Directory of the component inside the workdir."""
        return self.name


def _is_git_url(source: str) -> bool:
    return source.startswith(("git://", "git@", "git+")) or source.endswith(".git")


def _is_http_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


@dataclass
class Project:
    """The package being built and the operations the driver delegates."""

    name: str
    version: Optional[str] = None
    release: str = "1"
    components: List[Component] = field(default_factory=list)
    retry_count: Optional[Any] = None
    timeout: Optional[Any] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    platform: Optional[Platform] = None
    package_command: Optional[str] = None
    source_root: Path = field(default_factory=Path.cwd)
    console: Console = field(default_factory=Console, repr=False, compare=False)

    @property
    def component_names(self) -> List[str]:
        return [component.name for component in self.components]

    def in_project_requires(self, component: Component) -> List[str]:
        """Build requirements of component satisfied by this project."""
        names = set(self.component_names)
        return [req for req in component.build_requires if req in names]

    # Delegated operations

    def fetch_sources(self, workdir) -> None:
        """Fetch every component source into <workdir>/<component>."""
        workdir = Path(workdir)
        for component in self.components:
            if not component.source:
                (workdir / component.dirname).mkdir(parents=True, exist_ok=True)
                continue
            logger.info("Fetching %s from %s", component.name, component.source)
            try:
                self._fetch_component(component, workdir / component.dirname)
            except (ShellCommandError, OSError) as e:
                raise BuildError(
                    f"Could not fetch source for {component.name}: {e}",
                    context=create_error_context(
                        operation="fetch_sources",
                        component=component.name,
                        project=self.name,
                    ),
                    suggestions=["Check that the source URL or path is reachable"],
                    cause=e,
                ) from e

    def _fetch_component(self, component: Component, dest: Path) -> None:
        source = component.source
        if _is_git_url(source):
            url = source[len("git+"):] if source.startswith("git+") else source
            self.console.sh(f"git clone --quiet {shlex.quote(url)} {shlex.quote(str(dest))}")
            if component.ref:
                self.console.sh(
                    f"git -C {shlex.quote(str(dest))} checkout --quiet {shlex.quote(component.ref)}"
                )
        elif _is_http_url(source):
            dest.mkdir(parents=True, exist_ok=True)
            filename = source.rstrip("/").rsplit("/", 1)[-1] or component.name
            archive = dest / filename
            self.console.sh(
                f"curl -fsSL -o {shlex.quote(str(archive))} {shlex.quote(source)}"
            )
            if filename.endswith(ARCHIVE_SUFFIXES):
                self.console.sh(
                    f"tar -xf {shlex.quote(str(archive))} -C {shlex.quote(str(dest))} --strip-components=1"
                )
                archive.unlink()
        else:
            path = Path(source)
            if not path.is_absolute():
                path = self.source_root / path
            if path.is_dir():
                shutil.copytree(path, dest, dirs_exist_ok=True)
            elif path.is_file():
                dest.mkdir(parents=True, exist_ok=True)
                shutil.copy2(path, dest / path.name)
            else:
                raise FileNotFoundError(f"Source path not found: {path}")

    def generate_build_files(self, workdir) -> Path:
        """Render the Makefile into the workdir."""
        env = Environment(
            loader=PackageLoader("pkgforge", "templates"),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        env.filters["quote"] = shlex.quote
        template = env.get_template("Makefile.j2")

        platform_name = self.platform.name if self.platform else "generic"
        content = template.render(
            project=self,
            platform_name=platform_name,
            components=[
                {
                    "component": component,
                    "requires": self.in_project_requires(component),
                }
                for component in self.components
            ],
            skipcheck=bool(self.settings.get("skipcheck")),
            package_command=self.package_command,
            artifact=f"{self.name}-{self.version}-{self.release}.{platform_name}.tar.gz",
        )

        makefile = Path(workdir) / "Makefile"
        makefile.write_text(content)
        logger.debug("Wrote %s", makefile)
        return makefile

    def generate_manifest(self, workdir) -> Path:
        """Write the bill of materials, one 'name version' line per component."""
        lines = sorted(
            f"{component.name} {component.version or self.version}"
            for component in self.components
        )
        bom = Path(workdir) / "bill-of-materials"
        bom.write_text("\n".join(lines) + ("\n" if lines else ""))
        return bom

    def generate_packaging_artifacts(self, workdir) -> Path:
        """Write packaging/metadata.json describing the package."""
        packaging_dir = Path(workdir) / "packaging"
        packaging_dir.mkdir(parents=True, exist_ok=True)
        metadata = {
            "name": self.name,
            "version": self.version,
            "release": self.release,
            "platform": self.platform.name if self.platform else None,
            "components": [
                {"name": component.name, "version": component.version or self.version}
                for component in self.components
            ],
        }
        path = packaging_dir / "metadata.json"
        with open(path, "w") as f:
            json.dump(metadata, f, indent=2)
        return path
