"""
Tests for installation plan generation (envsetup/install_plan.py).
"""

import json

import pytest

from envsetup.catalog import get_requirement
from envsetup.install_plan import (
    InstallPlan,
    InstallStep,
    format_plans,
    generate_install_plan,
)
from envsetup.platforms import DebianPlatform, MacOSPlatform, UnsupportedPlatform


class TestInstallStep:
    """Tests for InstallStep dataclass."""

    def test_argv_with_sudo(self):
        step = InstallStep("Install git", ("apt-get", "install", "-y", "git"), requires_sudo=True)
        assert step.argv == ["sudo", "apt-get", "install", "-y", "git"]

    def test_argv_without_sudo(self):
        step = InstallStep("Install git", ("brew", "install", "git"))
        assert step.argv == ["brew", "install", "git"]

    def test_to_dict(self):
        step = InstallStep("Install git", ("brew", "install", "git"), estimated_time_seconds=30)
        assert step.to_dict() == {
            "description": "Install git",
            "command": ["brew", "install", "git"],
            "requires_sudo": False,
            "estimated_time_seconds": 30,
        }


class TestInstallPlan:
    """Tests for InstallPlan dataclass."""

    def _plan(self):
        return InstallPlan(
            capability="version-control",
            label="Git",
            os_family="debian",
            package_manager="apt-get",
            steps=(
                InstallStep("Install Git", ("apt-get", "install", "-y", "git"), True, 40),
                InstallStep("Check", ("git", "--version"), False, 2),
            ),
        )

    def test_total_time(self):
        assert self._plan().estimated_total_time == 42

    def test_requires_sudo(self):
        assert self._plan().requires_sudo is True

    def test_to_json(self):
        data = json.loads(self._plan().to_json())
        assert data["capability"] == "version-control"
        assert len(data["steps"]) == 2

    def test_to_script(self):
        script = self._plan().to_script()
        assert script.startswith("#!/bin/bash\nset -eu")
        assert "sudo apt-get install -y git" in script

    def test_to_table(self):
        table = self._plan().to_table()
        assert "Install Git [SUDO]" in table
        assert "This is a dry-run" in table


class TestGenerateInstallPlan:
    """Tests for plan generation from the platform tables."""

    def test_debian_runtime(self):
        plan = generate_install_plan(get_requirement("runtime"), DebianPlatform())

        assert plan.label == "Java"
        assert plan.package_manager == "apt-get"
        assert plan.steps[0].command == ("apt-get", "install", "-y", "openjdk-21-jdk")
        assert plan.warnings == ("This installation requires sudo/root privileges",)

    def test_macos_has_no_sudo_warning(self):
        plan = generate_install_plan(get_requirement("version-control"), MacOSPlatform())
        assert plan.warnings == ()

    def test_dependencies_recorded(self):
        plan = generate_install_plan(get_requirement("service-generator"), DebianPlatform())
        assert plan.dependencies == ("js-package-manager",)
        assert plan.package_manager == "npm-global"

    def test_no_action(self):
        assert generate_install_plan(get_requirement("runtime"), UnsupportedPlatform()) is None


class TestFormatPlans:
    """Tests for multi-plan output formats."""

    def _plans(self):
        platform = DebianPlatform()
        return [
            generate_install_plan(get_requirement("js-runtime"), platform),
            generate_install_plan(get_requirement("js-package-manager"), platform),
        ], platform.prepare_steps()

    def test_table(self):
        plans, prepare = self._plans()
        output = format_plans(plans, prepare, "table")
        assert "Preparation:" in output
        assert output.index("Node.js") < output.index("npm (js-package-manager)")

    def test_script_prepare_is_tolerant(self):
        plans, prepare = self._plans()
        output = format_plans(plans, prepare, "script")
        assert "sudo apt-get update || true" in output
        assert "command -v node >/dev/null 2>&1" in output

    def test_json(self):
        plans, prepare = self._plans()
        data = json.loads(format_plans(plans, prepare, "json"))
        assert data["prepare"][0]["command"] == ["apt-get", "update"]
        assert [p["capability"] for p in data["plans"]] == ["js-runtime", "js-package-manager"]

    def test_empty(self):
        assert "Nothing to install." in format_plans([], (), "table")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid output format"):
            format_plans([], (), "yaml")
