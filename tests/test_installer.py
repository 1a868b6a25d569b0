"""
Tests for installation execution (envsetup/installer.py).
"""

import subprocess
from types import MappingProxyType
from unittest.mock import MagicMock, patch

from envsetup.catalog import Requirement, get_requirement
from envsetup.install_plan import InstallStep
from envsetup.installer import (
    FAILED,
    INSTALLED,
    LOGIN_SESSION_HINT,
    SKIPPED,
    InstallOutcome,
    StepResult,
    execute_step,
    install,
    order_by_prerequisites,
    plan_installs,
)
from envsetup.platforms import MacOSPlatform, Platform, UnsupportedPlatform
from envsetup.probe import CapabilitySnapshot, CapabilityState


def step(*command, sudo=False):
    return InstallStep(f"run {command[0]}", tuple(command), requires_sudo=sudo)


class FakePlatform(Platform):
    os_family = "debian"
    package_manager = "apt-get"
    supported = True

    def __init__(self, actions, prepare=()):
        self._table = actions
        self._prepare = prepare
        super().__init__()

    def build_actions(self):
        return self._table

    def prepare_steps(self):
        return self._prepare


class FakeRunner:
    """Records executed steps; commands listed in `failing` fail."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def __call__(self, step, timeout=None, verbose=False):
        self.calls.append(step.command)
        ok = step.command not in self.failing
        return StepResult(
            step=step,
            success=ok,
            stdout="",
            stderr="" if ok else "E: boom",
            exit_code=0 if ok else 100,
            duration_seconds=0.1,
            error_message=None if ok else "Command failed with exit code 100: E: boom",
        )


def snapshot_with(*names, version="99.0"):
    return lambda: CapabilitySnapshot(capabilities=MappingProxyType({
        name: CapabilityState(name, present=True, version=version) for name in names
    }))


class TestExecuteStep:
    """Tests for single step execution."""

    @patch("envsetup.installer.subprocess.run")
    def test_success_with_sudo(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout="ok", stderr="")
        result = execute_step(step("apt-get", "install", "-y", "git", sudo=True))

        assert result.success is True
        assert mock_run.call_args[0][0] == ["sudo", "apt-get", "install", "-y", "git"]
        assert mock_run.call_args[1]["stdin"] == subprocess.DEVNULL

    @patch("envsetup.installer.subprocess.run")
    def test_failure(self, mock_run):
        mock_run.return_value = MagicMock(returncode=100, stdout="", stderr="E: Unable to locate package\n")
        result = execute_step(step("apt-get", "install", "nope"))

        assert result.success is False
        assert result.exit_code == 100
        assert "Unable to locate package" in result.error_message

    @patch("envsetup.installer.subprocess.run", side_effect=subprocess.TimeoutExpired(["x"], 5))
    def test_timeout(self, mock_run):
        result = execute_step(step("brew", "install", "node"), timeout=5)
        assert result.success is False
        assert "timed out after 5s" in result.error_message

    @patch("envsetup.installer.subprocess.run", side_effect=FileNotFoundError())
    def test_missing_command(self, mock_run):
        result = execute_step(step("dnf", "install", "git"))
        assert result.error_message == "Command not found: dnf"


class TestOrdering:
    """Tests for prerequisite ordering."""

    def test_prerequisites_first(self):
        reqs = [get_requirement("service-generator"), get_requirement("js-package-manager"),
                get_requirement("js-runtime")]
        names = [r.capability for r in order_by_prerequisites(reqs)]
        assert names == ["js-runtime", "js-package-manager", "service-generator"]

    def test_catalog_order_for_independent(self):
        reqs = [get_requirement("version-control"), get_requirement("runtime")]
        assert [r.capability for r in order_by_prerequisites(reqs)] == ["runtime", "version-control"]

    def test_cycle_does_not_hang(self):
        a = Requirement("a", requires=("b",))
        b = Requirement("b", requires=("a",))
        assert len(order_by_prerequisites([a, b])) == 2


class TestInstall:
    """Tests for install()."""

    def test_unsupported_platform_skips_everything(self):
        runner = FakeRunner()
        probe_fn = MagicMock()
        outcomes = install([get_requirement("runtime")], UnsupportedPlatform(), probe_fn=probe_fn, runner=runner)

        assert outcomes["runtime"].status == SKIPPED
        assert "unsupported platform" in outcomes["runtime"].reason
        assert runner.calls == []
        probe_fn.assert_not_called()

    def test_success_runs_prepare_first(self):
        platform = FakePlatform(
            {"version-control": (step("apt-get", "install", "-y", "git"),)},
            prepare=(step("apt-get", "update"),),
        )
        runner = FakeRunner()
        outcomes = install([get_requirement("version-control")], platform,
                           probe_fn=snapshot_with("version-control"), runner=runner)

        assert outcomes["version-control"].status == INSTALLED
        assert outcomes["version-control"].success is True
        assert runner.calls == [("apt-get", "update"), ("apt-get", "install", "-y", "git")]

    def test_prepare_failure_is_not_fatal(self):
        platform = FakePlatform(
            {"version-control": (step("apt-get", "install", "-y", "git"),)},
            prepare=(step("apt-get", "update"),),
        )
        runner = FakeRunner(failing={("apt-get", "update")})
        outcomes = install([get_requirement("version-control")], platform,
                           probe_fn=snapshot_with("version-control"), runner=runner)

        assert outcomes["version-control"].status == INSTALLED

    def test_no_action_is_failed(self):
        outcomes = install([get_requirement("runtime")], FakePlatform({}),
                           probe_fn=snapshot_with(), runner=FakeRunner())

        assert outcomes["runtime"].status == FAILED
        assert outcomes["runtime"].reason == "no install action for runtime on debian; install manually"

    def test_manual_requirement_is_skipped(self):
        outcomes = install([get_requirement("cluster-cli")], FakePlatform({}),
                           probe_fn=snapshot_with(), runner=FakeRunner())

        assert outcomes["cluster-cli"].status == SKIPPED
        assert outcomes["cluster-cli"].remediation == get_requirement("cluster-cli").hint

    def test_exit_zero_but_still_missing(self):
        platform = FakePlatform({"container-engine": (step("apt-get", "install", "-y", "docker.io"),)})
        outcomes = install([get_requirement("container-engine")], platform,
                           probe_fn=snapshot_with(), runner=FakeRunner())

        assert outcomes["container-engine"].status == FAILED
        assert LOGIN_SESSION_HINT in outcomes["container-engine"].reason

    def test_old_version_after_install_is_failed(self):
        platform = FakePlatform({"runtime": (step("apt-get", "install", "-y", "openjdk-21-jdk"),)})
        outcomes = install([get_requirement("runtime")], platform,
                           probe_fn=snapshot_with("runtime", version="17.0.9"), runner=FakeRunner())

        assert outcomes["runtime"].status == FAILED

    def test_failure_does_not_stop_others(self):
        platform = FakePlatform({
            "runtime": (step("apt-get", "install", "-y", "openjdk-21-jdk"),),
            "version-control": (step("apt-get", "install", "-y", "git"),),
        })
        runner = FakeRunner(failing={("apt-get", "install", "-y", "openjdk-21-jdk")})
        outcomes = install([get_requirement("runtime"), get_requirement("version-control")], platform,
                           probe_fn=snapshot_with("version-control"), runner=runner)

        assert outcomes["runtime"].status == FAILED
        assert "exit code 100" in outcomes["runtime"].reason
        assert outcomes["version-control"].status == INSTALLED
        assert list(outcomes) == ["runtime", "version-control"]

    def test_step_failure_stops_remaining_steps(self):
        platform = FakePlatform({"container-engine": (
            step("apt-get", "install", "-y", "docker.io"),
            step("systemctl", "enable", "--now", "docker"),
        )})
        runner = FakeRunner(failing={("apt-get", "install", "-y", "docker.io")})
        outcome = install([get_requirement("container-engine")], platform,
                          probe_fn=snapshot_with(), runner=runner)["container-engine"]

        assert runner.calls == [("apt-get", "install", "-y", "docker.io")]
        assert len(outcome.steps) == 1

    def test_prerequisite_failure_skips_dependent(self):
        platform = FakePlatform({
            "js-runtime": (step("apt-get", "install", "-y", "nodejs"),),
            "js-package-manager": (step("apt-get", "install", "-y", "npm"),),
        })
        runner = FakeRunner(failing={("apt-get", "install", "-y", "nodejs")})
        outcomes = install([get_requirement("js-package-manager"), get_requirement("js-runtime")], platform,
                           probe_fn=snapshot_with(), runner=runner)

        assert outcomes["js-runtime"].status == FAILED
        assert outcomes["js-package-manager"].status == SKIPPED
        assert "prerequisite unavailable: js-runtime" in outcomes["js-package-manager"].reason
        assert ("apt-get", "install", "-y", "npm") not in runner.calls

    def test_single_reprobe(self):
        platform = FakePlatform({
            "runtime": (step("a"),),
            "version-control": (step("b"),),
        })
        probe_fn = MagicMock(side_effect=snapshot_with("runtime", "version-control"))
        install([get_requirement("runtime"), get_requirement("version-control")], platform,
                probe_fn=probe_fn, runner=FakeRunner())

        probe_fn.assert_called_once_with()

    @patch.object(MacOSPlatform, "prepare_steps", return_value=())
    def test_shared_command_runs_once(self, mock_prepare):
        runner = FakeRunner()
        outcomes = install([get_requirement("container-engine"), get_requirement("container-compose")],
                           MacOSPlatform(), probe_fn=snapshot_with("container-engine", "container-compose"),
                           runner=runner)

        assert runner.calls == [("brew", "install", "--cask", "docker")]
        assert outcomes["container-compose"].status == INSTALLED
        assert outcomes["container-engine"].notes

    def test_nothing_to_do(self):
        probe_fn = MagicMock()
        assert install([], FakePlatform({}), probe_fn=probe_fn, runner=FakeRunner()) == {}
        probe_fn.assert_not_called()


class TestPlanInstalls:
    """Tests for dry-run plan collection."""

    def test_skips_manual_and_unknown(self):
        platform = FakePlatform({"version-control": (step("apt-get", "install", "-y", "git"),)})
        plans = plan_installs([get_requirement("cluster-cli"), get_requirement("runtime"),
                               get_requirement("version-control")], platform)

        assert [p.capability for p in plans] == ["version-control"]


class TestInstallOutcome:
    """Tests for InstallOutcome serialization."""

    def test_to_dict(self):
        outcome = InstallOutcome("runtime", SKIPPED, reason="not installed automatically")
        assert outcome.to_dict() == {
            "capability": "runtime",
            "status": "skipped",
            "reason": "not installed automatically",
            "remediation": "",
            "steps": [],
            "notes": [],
        }
