#!/usr/bin/env python3
"""
Unit tests for loading platform and project descriptors.
"""

import json

import pytest
import yaml

from pkgforge.core.errors import ConfigurationError
from pkgforge.descriptors import load_platform, load_project
from pkgforge.descriptors.loader import (
    load_file,
    platform_from_dict,
    project_from_dict,
    select_components,
)
from pkgforge.descriptors.platform import yum_install
from pkgforge.descriptors.project import Component


@pytest.mark.unit
class TestLoadFile:
    """Test reading descriptor files."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "p.yaml"
        path.write_text("name: el-9\nbuild_hosts:\n  - h1\n")

        assert load_file(path) == {"name": "el-9", "build_hosts": ["h1"]}

    def test_json(self, tmp_path):
        path = tmp_path / "p.json"
        path.write_text(json.dumps({"name": "el-9"}))

        assert load_file(path) == {"name": "el-9"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_file(tmp_path / "nope.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "p.yaml"
        path.write_text("name: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Malformed"):
            load_file(path)

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "p.json"
        path.write_text("{name")

        with pytest.raises(ConfigurationError, match="Malformed"):
            load_file(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "p.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_file(path)

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "p.toml"
        path.write_text("name = 'x'")

        with pytest.raises(ConfigurationError, match="Unsupported"):
            load_file(path)


@pytest.mark.unit
class TestPlatformFromDict:
    """Test platform construction."""

    def test_defaults(self):
        platform = platform_from_dict({"name": "el-9"})

        assert platform.make == "make"
        assert platform.build_hosts == ()
        assert platform.aws_ami is None
        assert platform.docker_image is None
        assert platform.has_install_command is False
        assert platform.install_command_builder is None

    def test_name_required(self):
        with pytest.raises(ConfigurationError, match="name"):
            platform_from_dict({"make": "gmake"})

    def test_build_dependencies_mapping(self):
        platform = platform_from_dict(
            {"name": "el-9", "build_dependencies": {"command": "yum install -y", "suffix": "--nogpgcheck"}}
        )

        assert platform.build_dependencies.command == "yum install -y"
        assert platform.build_dependencies.suffix == "--nogpgcheck"
        assert platform.has_install_command is True

    def test_build_dependencies_string(self):
        platform = platform_from_dict({"name": "el-9", "build_dependencies": "yum install -y"})

        assert platform.build_dependencies.command == "yum install -y"
        assert platform.build_dependencies.suffix is None

    def test_package_manager(self):
        platform = platform_from_dict({"name": "el-9", "package_manager": "yum"})

        assert platform.install_command_builder is yum_install

    def test_unknown_package_manager(self):
        with pytest.raises(ConfigurationError, match="Unknown package manager 'pacman'"):
            platform_from_dict({"name": "arch", "package_manager": "pacman"})

    def test_single_build_host_becomes_tuple(self):
        assert platform_from_dict({"name": "el-9", "build_hosts": "h1"}).build_hosts == ("h1",)


@pytest.mark.unit
class TestSelectComponents:
    """Test --only-build component selection."""

    @pytest.fixture
    def chain(self):
        return [
            Component(name="zlib"),
            Component(name="openssl", build_requires=["zlib", "perl"]),
            Component(name="curl", build_requires=["openssl"]),
            Component(name="docs"),
        ]

    def test_requirements_pulled_in_transitively(self, chain):
        selected = select_components(chain, ["curl"])

        assert [c.name for c in selected] == ["zlib", "openssl", "curl"]

    def test_descriptor_order_kept(self, chain):
        selected = select_components(chain, ["docs", "zlib"])

        assert [c.name for c in selected] == ["zlib", "docs"]

    def test_unknown_component(self, chain):
        with pytest.raises(ConfigurationError, match="Unknown component"):
            select_components(chain, ["wget"])


@pytest.mark.unit
class TestProjectFromDict:
    """Test project construction."""

    def test_version_coerced_to_string(self):
        project = project_from_dict({"name": "demo", "version": 7})

        assert project.version == "7"

    def test_missing_version_allowed_at_load(self):
        assert project_from_dict({"name": "demo"}).version is None

    def test_retry_overrides_passed_through(self):
        project = project_from_dict({"name": "demo", "retry_count": 3, "timeout": 600})

        assert project.retry_count == 3
        assert project.timeout == 600

    def test_component_fields(self):
        project = project_from_dict(
            {
                "name": "demo",
                "version": "1.0",
                "components": [
                    {
                        "name": "a",
                        "build_requires": "x",
                        "build": "make",
                        "environment": {"JOBS": 4},
                    }
                ],
            }
        )

        component = project.components[0]
        assert component.build_requires == ["x"]
        assert component.build == ["make"]
        assert component.environment == {"JOBS": "4"}

    def test_component_name_required(self):
        with pytest.raises(ConfigurationError):
            project_from_dict({"name": "demo", "components": [{"version": "1"}]})


@pytest.mark.unit
class TestLoadFromConfigdir:
    """Test loading by name from a config directory."""

    def test_load_platform(self, configdir):
        platform = load_platform("el-9-x86_64", configdir)

        assert platform.name == "el-9-x86_64"
        assert platform.settings == {"arch": "x86_64"}

    def test_load_project(self, configdir):
        platform = load_platform("el-9-x86_64", configdir)

        project = load_project("demo", configdir, platform)

        assert project.platform is platform
        assert project.component_names == ["a", "b"]
        assert project.source_root == configdir

    def test_yml_suffix(self, configdir):
        with open(configdir / "platforms" / "deb-12.yml", "w") as f:
            yaml.safe_dump({"name": "deb-12", "docker_image": "debian:12"}, f)

        assert load_platform("deb-12", configdir).docker_image == "debian:12"

    def test_unknown_platform(self, configdir):
        with pytest.raises(ConfigurationError, match="Could not find platform 'sles-15'"):
            load_platform("sles-15", configdir)
