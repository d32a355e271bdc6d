#!/usr/bin/env python3
"""
Build Driver - Coordinates the end-to-end build of one project on one platform.

Selects the execution engine for the platform, then drives one of two
workflows against it:

run:     validate -> start engine -> install build dependencies (retried)
         -> fetch sources -> build files -> bill of materials
         -> packaging artifacts -> ship workdir -> remote build (retried)
         -> retrieve artifact -> teardown
prepare: validate -> start engine -> install build dependencies
         -> fetch sources -> build files -> bill of materials
         -> ship workdir -> remote build of the project target only

Engines that provision resources (hardware, ec2) are always torn down at
the end of run, whatever the outcome and whatever the preserve flag says.
"""

import logging
import shlex
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Mapping, Optional, TypeVar

from pkgforge.core.console import Console
from pkgforge.core.errors import (
    ConfigurationError,
    create_error_context,
    handle_error,
)
from pkgforge.core.retry import RetryContext, retry_with_timeout
from pkgforge.core.workdir import WorkdirManager
from pkgforge.descriptors.loader import load_platform, load_project
from pkgforge.descriptors.platform import Platform
from pkgforge.descriptors.project import Project
from pkgforge.engines.factory import DEFAULT_ENGINE, EngineFactory
from pkgforge.orchestration import dependencies

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DriverOptions:
    """Operator supplied options for one build."""

    configdir: str = "configs"
    target: Optional[str] = None
    engine: str = DEFAULT_ENGINE
    components: List[str] = field(default_factory=list)
    skipcheck: bool = False
    verbose: bool = False
    preserve: bool = False
    output_dir: str = "output"


class BuildDriver:
    """
    Orchestrates the build workflow.

    Responsibilities:
    - Select and create the engine for the platform
    - Drive the run and prepare workflows
    - Retry dependency installation and the remote build
    - Guarantee teardown of resource-provisioning engines
    - Own the local workdir
    """

    def __init__(
        self,
        platform: Platform,
        project: Project,
        options: Optional[DriverOptions] = None,
        console: Optional[Console] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize build driver.

        Args:
            platform: Loaded platform descriptor
            project: Loaded project descriptor
            options: Operator options
            console: Shell runner handed to the engine
            environ: Environment for retry overrides (os.environ if None)

        Raises:
            ConfigurationError: If no engine can be created for the platform
        """
        self.options = options or DriverOptions()
        self.platform = platform
        self.project = project
        self.verbose = self.options.verbose
        self.preserve = self.options.preserve
        self.environ = environ

        self.project.settings["verbose"] = self.options.verbose
        self.project.settings["skipcheck"] = self.options.skipcheck

        self.engine = EngineFactory.for_platform(
            platform,
            self.options.target,
            self.options.engine,
            console=console or Console(shellVerbose=True),
            output_dir=self.options.output_dir,
        )
        logger.info(
            "Using %s engine for %s (%s)", self.engine.name, platform.name, project.name
        )

        self.workdir: Optional[Path] = None
        self._workdir_manager = WorkdirManager(preserve=self.preserve)
        self._torn_down = False
        self.state: Optional[str] = None
        self.timeout: Optional[float] = None
        self.retry_count: Optional[int] = None

    @classmethod
    def from_config(
        cls, platform_name: str, project_name: str, options: Optional[DriverOptions] = None, **kwargs
    ) -> "BuildDriver":
        """Load both descriptors from options.configdir and build a driver."""
        options = options or DriverOptions()
        platform = load_platform(platform_name, options.configdir)
        project = load_project(
            project_name, options.configdir, platform, options.components or None
        )
        return cls(platform, project, options, **kwargs)

    def build_host_info(self) -> Dict[str, str]:
        return {"name": self.engine.build_host_name(), "engine": self.engine.name}

    def list_build_dependencies(self) -> List[str]:
        return dependencies.list_build_dependencies(self.project.components)

    def install_build_dependencies(self) -> Optional[str]:
        return dependencies.install_build_dependencies(
            self.platform, self.engine, self.project.components
        )

    def run(self) -> Path:
        """
        Execute the full build workflow.

        Returns:
            Local directory holding the retrieved artifacts

        Raises:
            ConfigurationError: If the project has no version
            RetryExhaustedError: If dependency installation or the remote
                build kept failing
            BackendError: If the engine failed to start, ship or retrieve
        """
        with self._reporting("run"):
            self._validate()
            with self._engine_session():
                self._start_engine()
                logger.info("Target is %s", self.engine.target)

                self._enter("install_dependencies")
                self._retry_task("install build dependencies", self.install_build_dependencies)

                self._enter("fetch_sources")
                self.project.fetch_sources(self.workdir)
                self._enter("generate_build_files")
                self.project.generate_build_files(self.workdir)
                self._enter("generate_manifest")
                self.project.generate_manifest(self.workdir)
                self._enter("generate_packaging_artifacts")
                self.project.generate_packaging_artifacts(self.workdir)

                self._enter("ship_workdir")
                self.engine.ship_workdir(self.workdir)

                self._enter("remote_build")
                self._retry_task("remote build", lambda: self.engine.dispatch(self._make_command()))

                self._enter("retrieve_artifact")
                artifacts = self.engine.retrieve_built_artifact()
        self._enter("done")
        return artifacts

    def prepare(self, workdir: Optional[str] = None) -> Path:
        """
        Set up a development build of the project without packaging it.

        The engine is left running; call teardown() when finished.

        Args:
            workdir: Local workdir to use (created if absent); a temporary
                one is allocated when None

        Returns:
            The local workdir
        """
        with self._reporting("prepare"):
            self._validate()
            self._start_engine(workdir)
            logger.info("Devkit on %s", self.engine.target)

            self._enter("install_dependencies")
            self.install_build_dependencies()

            self._enter("fetch_sources")
            self.project.fetch_sources(self.workdir)
            self._enter("generate_build_files")
            self.project.generate_build_files(self.workdir)
            self._enter("generate_manifest")
            self.project.generate_manifest(self.workdir)

            self._enter("ship_workdir")
            self.engine.ship_workdir(self.workdir)

            self._enter("remote_build")
            self.engine.dispatch(self._make_command(f"{self.project.name}-project"))
        self._enter("done")
        return self.workdir

    def teardown(self) -> None:
        """Tear the engine down; later calls until the next start are no-ops."""
        if self._torn_down:
            return
        self._torn_down = True
        self.engine.teardown()

    def cleanup_workdir(self) -> bool:
        return self._workdir_manager.cleanup()

    def _enter(self, state: str) -> None:
        self.state = state
        logger.debug("[%s] %s", self.project.name, state)

    def _validate(self) -> None:
        self._enter("validate")
        if not self.project.version:
            raise ConfigurationError(
                "Project requires a version set, all is lost.",
                context=create_error_context(
                    operation="validate", project=self.project.name
                ),
                suggestions=["Set version in the project descriptor"],
            )

    def _start_engine(self, workdir: Optional[str] = None) -> None:
        self._enter("start_engine")
        self.workdir = self._workdir_manager.create(workdir)
        self._torn_down = False
        self.engine.start(self.workdir)

    def _make_command(self, make_target: Optional[str] = None) -> str:
        make = self.platform.make
        if make_target:
            make = f"{make} {make_target}"
        return f"(cd {shlex.quote(self.engine.remote_workdir)}; {make})"

    def _retry_task(self, description: str, work: Callable[[], T]) -> T:
        """Run work under the retry parameters resolved right now."""
        context = RetryContext.resolve(self.project, self.environ)
        self.timeout = context.timeout
        self.retry_count = context.retry_count
        return retry_with_timeout(
            context.retry_count, context.timeout, work, description=description
        )

    @contextmanager
    def _reporting(self, flow: str) -> Iterator[None]:
        """Report any failure of flow to the operator, then re-raise it."""
        try:
            yield
        except KeyboardInterrupt:
            logger.warning("%s of %s interrupted during %s", flow, self.project.name, self.state)
            raise
        except Exception as e:
            handle_error(
                e,
                context=create_error_context(
                    operation=flow,
                    phase=self.state,
                    component="BuildDriver",
                    engine=self.engine.name,
                    platform=self.platform.name,
                    project=self.project.name,
                ),
            )
            raise

    @contextmanager
    def _engine_session(self) -> Iterator[None]:
        """
        Release the engine and the workdir on every exit path of run.

        Resource-provisioning engines are torn down unconditionally; other
        engines unless preserve is set. The workdir is removed unless
        preserve is set. After a failure, state keeps the failed phase.
        """
        succeeded = False
        try:
            yield
            succeeded = True
        finally:
            must_teardown = self.engine.PROVISIONS_RESOURCES or not self.preserve
            try:
                if must_teardown:
                    if succeeded:
                        self._enter("teardown")
                    else:
                        logger.debug("[%s] teardown after failure in %s", self.project.name, self.state)
                    self.teardown()
                elif self.preserve:
                    logger.info(
                        "Preserving %s on %s", self.engine.name, self.engine.build_host_name()
                    )
            except Exception as teardown_error:
                if succeeded:
                    raise
                # the build failure keeps propagating
                handle_error(
                    teardown_error,
                    context=create_error_context(
                        operation="teardown",
                        component="BuildDriver",
                        engine=self.engine.name,
                        platform=self.platform.name,
                    ),
                )
            finally:
                self.cleanup_workdir()
