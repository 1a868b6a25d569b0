"""
Tests for platform strategies (envsetup/platforms.py).
"""

from types import MappingProxyType
from unittest.mock import MagicMock, patch

import pytest

from envsetup.catalog import get_requirement
from envsetup.environment import Environment
from envsetup.package_managers import clear_cache
from envsetup.platforms import (
    DebianPlatform,
    FedoraPlatform,
    MacOSPlatform,
    RhelPlatform,
    UnsupportedPlatform,
    detect_platform,
    get_platform,
)
from envsetup.probe import CapabilitySnapshot, CapabilityState

INSTALLABLE = (
    "runtime",
    "container-engine",
    "container-compose",
    "version-control",
    "js-runtime",
    "js-package-manager",
    "service-generator",
)


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_cache()
    yield
    clear_cache()


class TestActionTables:
    """Tests for per-platform install actions."""

    @pytest.mark.parametrize("cls", [MacOSPlatform, DebianPlatform, FedoraPlatform, RhelPlatform])
    def test_every_installable_capability_has_steps(self, cls):
        platform = cls()
        for name in INSTALLABLE:
            steps = platform.install_steps(name)
            assert steps, f"{cls.__name__} has no steps for {name}"

    @pytest.mark.parametrize("cls", [MacOSPlatform, DebianPlatform, FedoraPlatform, RhelPlatform])
    def test_manual_capabilities_have_no_steps(self, cls):
        platform = cls()
        assert platform.install_steps("cluster-cli") is None
        assert platform.install_steps("build-tool") is None

    def test_debian_packages(self):
        platform = DebianPlatform()
        runtime = platform.install_steps("runtime")[0]

        assert runtime.command == ("apt-get", "install", "-y", "openjdk-21-jdk")
        assert runtime.requires_sudo is True
        assert platform.install_steps("container-engine")[0].command[-1] == "docker.io"

    @patch("envsetup.platforms.getpass.getuser", return_value="dev")
    def test_linux_docker_service_steps(self, mock_user):
        commands = [s.command for s in FedoraPlatform().install_steps("container-engine")]

        assert commands[0] == ("dnf", "install", "-y", "moby-engine")
        assert ("systemctl", "enable", "--now", "docker") in commands
        assert ("usermod", "-aG", "docker", "dev") in commands

    def test_rhel_compose_downloads_binary(self):
        steps = RhelPlatform().install_steps("container-compose")

        assert steps[0].command[0] == "curl"
        assert "v2.20.0" in steps[0].command[2]
        assert steps[1].command == ("chmod", "+x", "/usr/local/bin/docker-compose")

    def test_generator_uses_npm_with_sudo_on_linux(self):
        step = DebianPlatform().install_steps("service-generator")[0]

        assert step.command == ("npm", "install", "-g", "generator-jhipster@8.1.0")
        assert step.argv[0] == "sudo"

    def test_macos_docker_is_one_cask_for_engine_and_compose(self):
        platform = MacOSPlatform()
        engine = platform.install_steps("container-engine")
        compose = platform.install_steps("container-compose")

        assert engine == compose
        assert engine[0].command == ("brew", "install", "--cask", "docker")
        assert engine[0].requires_sudo is False

    def test_package_manager_for(self):
        mac = MacOSPlatform()
        assert mac.package_manager_for("container-engine") == "brew-cask"
        assert mac.package_manager_for("runtime") == "brew"
        assert mac.package_manager_for("service-generator") == "npm-global"
        assert DebianPlatform().package_manager_for("runtime") == "apt-get"


class TestPrepareSteps:
    """Tests for once-per-run preparation."""

    def test_debian_updates_package_lists(self):
        steps = DebianPlatform().prepare_steps()
        assert [s.command for s in steps] == [("apt-get", "update")]
        assert steps[0].requires_sudo is True

    def test_fedora_has_no_preparation(self):
        assert FedoraPlatform().prepare_steps() == ()

    @patch("envsetup.package_managers.run_quiet", return_value=None)
    def test_macos_installs_homebrew_when_missing(self, mock_run):
        steps = MacOSPlatform().prepare_steps()
        assert len(steps) == 1
        assert "NONINTERACTIVE=1" in steps[0].command[-1]

    @patch("envsetup.package_managers.run_quiet")
    def test_macos_skips_homebrew_when_present(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0)
        assert MacOSPlatform().prepare_steps() == ()


class TestNotes:
    """Tests for post-install notes."""

    def test_macos_docker_note(self):
        notes = MacOSPlatform().post_install_notes("container-engine")
        assert any("open -a Docker" in note for note in notes)

    def test_linux_group_note(self):
        notes = DebianPlatform().post_install_notes("container-engine")
        assert any("Log out" in note for note in notes)

    def test_no_notes(self):
        assert DebianPlatform().post_install_notes("version-control") == ()


class TestVerify:
    """Tests for Platform.verify."""

    def test_verify_uses_fresh_snapshot(self):
        platform = DebianPlatform()
        req = get_requirement("runtime")
        present = CapabilitySnapshot(capabilities=MappingProxyType({
            "runtime": CapabilityState("runtime", present=True, version="21.0.2"),
        }))

        assert platform.verify(req, CapabilitySnapshot()) is False
        assert platform.verify(req, present) is True


class TestResolution:
    """Tests for platform lookup and detection."""

    @pytest.mark.parametrize("family,cls", [
        ("macos", MacOSPlatform),
        ("debian", DebianPlatform),
        ("fedora", FedoraPlatform),
        ("rhel", RhelPlatform),
        ("unsupported", UnsupportedPlatform),
        ("arch", UnsupportedPlatform),
    ])
    def test_get_platform(self, family, cls):
        assert type(get_platform(family)) is cls

    def test_unsupported_has_no_actions(self):
        platform = UnsupportedPlatform()
        assert platform.supported is False
        assert platform.install_steps("runtime") is None

    def test_detect_from_environment(self):
        env = Environment(os_family="fedora", system="linux")
        assert isinstance(detect_platform(env), FedoraPlatform)

    @patch.object(RhelPlatform, "detect", return_value=False)
    @patch.object(FedoraPlatform, "detect", return_value=False)
    @patch.object(DebianPlatform, "detect", return_value=True)
    @patch.object(MacOSPlatform, "detect", return_value=False)
    def test_detect_first_match(self, *mocks):
        assert isinstance(detect_platform(), DebianPlatform)

    @patch.object(RhelPlatform, "detect", return_value=False)
    @patch.object(FedoraPlatform, "detect", return_value=False)
    @patch.object(DebianPlatform, "detect", return_value=False)
    @patch.object(MacOSPlatform, "detect", return_value=False)
    def test_detect_nothing(self, *mocks):
        assert isinstance(detect_platform(), UnsupportedPlatform)
