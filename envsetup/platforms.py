"""
Platform strategies: one per OS family, each with its own install action table.

The platform is resolved once per run. A platform reports whether it
matches the host (detect), which steps install a capability
(install_steps) and whether a requirement holds afterwards (verify).
"""

from __future__ import annotations

import getpass
import platform as _platform
import sys
from typing import Mapping

from .catalog import Requirement
from .common import vlog
from .environment import Environment
from .install_plan import InstallStep
from .package_managers import get_package_manager
from .probe import CapabilitySnapshot
from .resolver import is_satisfied

JHIPSTER_PACKAGE = "generator-jhipster@8.1.0"
HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
COMPOSE_RELEASE = "v2.20.0"


def pm_step(pm_name: str, package: str, label: str, sudo: bool | None = None) -> InstallStep:
    """Build an install step for a package through a registered package manager."""
    pm = get_package_manager(pm_name)
    if pm is None:
        raise ValueError(f"Package manager not found: {pm_name}")
    return InstallStep(
        description=f"Install {label} via {pm.display_name}",
        command=pm.get_install_command(package),
        requires_sudo=pm.requires_sudo if sudo is None else sudo,
    )


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "root"


def _docker_service_steps() -> tuple[InstallStep, ...]:
    return (
        InstallStep("Enable and start the Docker service",
                    ("systemctl", "enable", "--now", "docker"), requires_sudo=True, estimated_time_seconds=5),
        InstallStep("Add the current user to the docker group",
                    ("usermod", "-aG", "docker", _current_user()), requires_sudo=True, estimated_time_seconds=2),
    )


class Platform:
    """Base platform strategy. Subclasses fill in the action table."""

    os_family = "unsupported"
    package_manager = ""
    supported = False

    def __init__(self):
        self._actions: Mapping[str, tuple[InstallStep, ...]] = self.build_actions()

    @classmethod
    def detect(cls) -> bool:
        """Whether this platform matches the current host."""
        return False

    def build_actions(self) -> Mapping[str, tuple[InstallStep, ...]]:
        return {}

    def prepare_steps(self) -> tuple[InstallStep, ...]:
        """Steps run once before the first install (failures are not fatal)."""
        return ()

    def install_steps(self, capability: str) -> tuple[InstallStep, ...] | None:
        """Steps that install a capability, or None when the table has no entry."""
        return self._actions.get(capability)

    def package_manager_for(self, capability: str) -> str:
        if capability == "service-generator":
            return "npm-global"
        return self.package_manager

    def post_install_notes(self, capability: str) -> tuple[str, ...]:
        return ()

    def verify(self, requirement: Requirement, snapshot: CapabilitySnapshot) -> bool:
        """Whether the requirement holds in a (fresh) snapshot."""
        return is_satisfied(requirement, snapshot)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(os_family={self.os_family!r})"


class MacOSPlatform(Platform):
    os_family = "macos"
    package_manager = "brew"
    supported = True

    @classmethod
    def detect(cls) -> bool:
        return sys.platform == "darwin"

    def build_actions(self):
        docker_desktop = (pm_step("brew-cask", "docker", "Docker Desktop"),)
        return {
            "runtime": (pm_step("brew", "openjdk@21", "Java 21"),),
            "container-engine": docker_desktop,
            "container-compose": docker_desktop,
            "version-control": (pm_step("brew", "git", "Git"),),
            "js-runtime": (pm_step("brew", "node", "Node.js"),),
            "js-package-manager": (pm_step("brew", "node", "Node.js (includes npm)"),),
            "service-generator": (pm_step("npm-global", JHIPSTER_PACKAGE, "JHipster"),),
        }

    def prepare_steps(self):
        brew = get_package_manager("brew")
        if brew is not None and brew.is_available():
            return ()
        return (
            InstallStep(
                "Install Homebrew",
                ("/bin/bash", "-c", f'NONINTERACTIVE=1 /bin/bash -c "$(curl -fsSL {HOMEBREW_INSTALL_URL})"'),
                estimated_time_seconds=300,
            ),
        )

    def package_manager_for(self, capability):
        if capability in ("container-engine", "container-compose"):
            return "brew-cask"
        return super().package_manager_for(capability)

    def post_install_notes(self, capability):
        if capability in ("container-engine", "container-compose"):
            return ("Docker Desktop has been installed. Start it manually: open -a Docker",)
        if capability == "runtime":
            return (
                'Add Java 21 to PATH: export PATH="$(brew --prefix openjdk@21)/bin:$PATH"',
                "sudo ln -sfn \"$(brew --prefix openjdk@21)/libexec/openjdk.jdk\" "
                "/Library/Java/JavaVirtualMachines/openjdk-21.jdk",
            )
        return ()


class _LinuxPlatform(Platform):
    """Shared shape of the Linux tables; subclasses name packages."""

    supported = True
    java_package = "java-21-openjdk-devel"
    docker_package = "docker"

    @classmethod
    def detect(cls) -> bool:
        pm = get_package_manager(cls.package_manager)
        return sys.platform.startswith("linux") and pm is not None and pm.is_available()

    def compose_steps(self) -> tuple[InstallStep, ...]:
        return (pm_step(self.package_manager, "docker-compose", "Docker Compose"),)

    def build_actions(self):
        pm = self.package_manager
        return {
            "runtime": (pm_step(pm, self.java_package, "Java 21"),),
            "container-engine": (pm_step(pm, self.docker_package, "Docker"), *_docker_service_steps()),
            "container-compose": self.compose_steps(),
            "version-control": (pm_step(pm, "git", "Git"),),
            "js-runtime": (pm_step(pm, "nodejs", "Node.js"),),
            "js-package-manager": (pm_step(pm, "npm", "npm"),),
            # Global npm prefix is root-owned with distro Node.js
            "service-generator": (pm_step("npm-global", JHIPSTER_PACKAGE, "JHipster", sudo=True),),
        }

    def post_install_notes(self, capability):
        if capability == "container-engine":
            return ("Docker installed. Log out and back in for the docker group to take effect.",)
        return ()


class DebianPlatform(_LinuxPlatform):
    os_family = "debian"
    package_manager = "apt-get"
    java_package = "openjdk-21-jdk"
    docker_package = "docker.io"

    def prepare_steps(self):
        return (InstallStep("Update package lists", ("apt-get", "update"), requires_sudo=True,
                            estimated_time_seconds=30),)


class FedoraPlatform(_LinuxPlatform):
    os_family = "fedora"
    package_manager = "dnf"
    docker_package = "moby-engine"


class RhelPlatform(_LinuxPlatform):
    os_family = "rhel"
    package_manager = "yum"

    def compose_steps(self):
        # No compose package on older RHEL/CentOS; fetch the release binary
        target = "/usr/local/bin/docker-compose"
        asset = f"docker-compose-{_platform.system()}-{_platform.machine()}"
        url = f"https://github.com/docker/compose/releases/download/{COMPOSE_RELEASE}/{asset}"
        return (
            InstallStep("Download Docker Compose", ("curl", "-fsSL", url, "-o", target), requires_sudo=True),
            InstallStep("Make Docker Compose executable", ("chmod", "+x", target), requires_sudo=True,
                        estimated_time_seconds=1),
        )


class UnsupportedPlatform(Platform):
    """Any host without a known package manager. Probing works, installs are skipped."""


PLATFORMS: tuple[type[Platform], ...] = (MacOSPlatform, DebianPlatform, FedoraPlatform, RhelPlatform)
PLATFORM_BY_FAMILY: dict[str, type[Platform]] = {cls.os_family: cls for cls in PLATFORMS}


def get_platform(os_family: str) -> Platform:
    """Platform strategy for an OS family (UnsupportedPlatform for unknown families)."""
    return PLATFORM_BY_FAMILY.get(os_family, UnsupportedPlatform)()


def detect_platform(environment: Environment | None = None, verbose: bool = False) -> Platform:
    """
    Resolve the platform strategy for this host.

    Args:
        environment: Already-detected environment; when None each
            platform's detect() is consulted in order
        verbose: Enable verbose logging

    Returns:
        Platform instance
    """
    if environment is not None:
        platform = get_platform(environment.os_family)
    else:
        platform = next((cls() for cls in PLATFORMS if cls.detect()), UnsupportedPlatform())
    vlog(f"Resolved platform: {platform!r}", verbose)
    return platform
