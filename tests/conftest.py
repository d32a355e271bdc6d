"""
Pytest configuration and shared fixtures for pkgforge tests.

Provides a recording engine that stands in for real build hosts, plus
platform, project and config directory fixtures.
"""

import json
from typing import Optional

import pytest
import yaml

from pkgforge.core.errors import TransientExecutionError, set_error_handler
from pkgforge.descriptors.platform import BuildDependencies, Platform
from pkgforge.descriptors.project import Component, Project
from pkgforge.engines.base import Engine
from pkgforge.engines.factory import EngineFactory


REMOTE_WORKDIR = "/remote/work"


# ============================================================================
# Recording Engines
# ============================================================================

class RecordingEngine(Engine):
    """Engine that records every call instead of touching a build host.

    Attributes:
        calls: (method, *args) tuples in call order.
        fail_on: method name -> exception raised when that method is called.
        hooks: method name -> callable invoked before the method records.
    """

    ENGINE_NAME = "recording"

    def __init__(self, platform, target=None, **kwargs):
        super().__init__(platform, target, **kwargs)
        self.calls = []
        self.fail_on = {}
        self.hooks = {}
        self._dispatch_failures = []

    def fail_dispatch(self, fragment: str, times: int = 1, error: Optional[Exception] = None):
        """Make the next `times` dispatches containing fragment fail."""
        self._dispatch_failures.append([fragment, times, error])

    def calls_named(self, name):
        return [call for call in self.calls if call[0] == name]

    def dispatched(self, fragment=""):
        return [call[1] for call in self.calls_named("dispatch") if fragment in call[1]]

    def _record(self, name, *args):
        hook = self.hooks.get(name)
        if hook:
            hook()
        self.calls.append((name,) + args)
        error = self.fail_on.get(name)
        if error is not None:
            raise error

    def start(self, workdir):
        self._record("start", str(workdir))
        self._remote_workdir = REMOTE_WORKDIR

    def ship_workdir(self, workdir):
        self._record("ship_workdir", str(workdir))

    def dispatch(self, command, return_output=False):
        self._record("dispatch", command)
        for entry in self._dispatch_failures:
            fragment, remaining, error = entry
            if fragment in command and remaining > 0:
                entry[1] -= 1
                raise error or TransientExecutionError(f"'{command}' failed", command=command)
        return "" if return_output else None

    def retrieve_built_artifact(self):
        self._record("retrieve_built_artifact")
        return self.output_dir

    def teardown(self):
        self._record("teardown")


class ProvisioningRecordingEngine(RecordingEngine):
    """Recording engine whose resources must always be released."""

    ENGINE_NAME = "recording-provisioned"
    PROVISIONS_RESOURCES = True


@pytest.fixture
def recording_engines():
    """Register the recording engines for the duration of a test."""
    for engine_class in (RecordingEngine, ProvisioningRecordingEngine):
        EngineFactory.register(engine_class.ENGINE_NAME, engine_class)
    yield RecordingEngine, ProvisioningRecordingEngine
    for engine_class in (RecordingEngine, ProvisioningRecordingEngine):
        EngineFactory.unregister(engine_class.ENGINE_NAME)


@pytest.fixture(autouse=True)
def reset_error_handler():
    """Keep the global error handler from leaking between tests."""
    yield
    set_error_handler(None)


# ============================================================================
# Descriptor Fixtures
# ============================================================================

@pytest.fixture
def platform():
    """Platform with a literal install command and no engine hints."""
    return Platform(
        name="el-9-x86_64",
        build_dependencies=BuildDependencies(command="yum install -y"),
    )


@pytest.fixture
def components():
    """Two components, b requiring a; external requirements x, y, z."""
    return [
        Component(
            name="a",
            version="2.1",
            build_requires=["x", "y"],
            configure=["./configure --prefix=/usr"],
            build=["make"],
            check=["make test"],
            install=["make install"],
        ),
        Component(
            name="b",
            build_requires=["a", "z"],
            build=["make"],
            install=["make install"],
            environment={"CFLAGS": "-O2 -g"},
        ),
    ]


@pytest.fixture
def project(platform, components, tmp_path):
    """Versioned project built from the components fixture."""
    return Project(
        name="demo",
        version="1.0.0",
        components=components,
        platform=platform,
        source_root=tmp_path,
    )


# ============================================================================
# Config Directory Fixtures
# ============================================================================

@pytest.fixture
def configdir(tmp_path):
    """Config directory with one YAML platform and one JSON project."""
    root = tmp_path / "configs"
    (root / "platforms").mkdir(parents=True)
    (root / "projects").mkdir(parents=True)

    with open(root / "platforms" / "el-9-x86_64.yaml", "w") as f:
        yaml.safe_dump(
            {
                "name": "el-9-x86_64",
                "package_manager": "yum",
                "settings": {"arch": "x86_64"},
            },
            f,
        )

    with open(root / "projects" / "demo.json", "w") as f:
        json.dump(
            {
                "name": "demo",
                "version": "1.0.0",
                "components": [
                    {"name": "a", "build_requires": ["x", "y"], "build": ["make"]},
                    {"name": "b", "build_requires": ["a", "z"], "build": ["make"]},
                ],
            },
            f,
        )

    return root


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (may be slow)"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as fast unit tests"
    )
