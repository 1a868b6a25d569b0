"""
Host environment detection.

Derives the OS family that selects the install action table:
- macos: Homebrew
- debian: apt-get (Debian, Ubuntu and derivatives)
- fedora: dnf (Fedora, RHEL 8+)
- rhel: yum (older RHEL/CentOS)
- unsupported: anything else; installs are skipped, probing still runs
"""

from __future__ import annotations

import platform
import shutil
import sys
from dataclasses import dataclass

from .common import is_ci_environment, vlog

OS_FAMILIES = ("macos", "debian", "fedora", "rhel", "unsupported")

# Linux package manager binary -> OS family, in probe order
LINUX_PACKAGE_MANAGERS = (
    ("apt-get", "debian"),
    ("dnf", "fedora"),
    ("yum", "rhel"),
)


@dataclass(frozen=True)
class Environment:
    """
    Detected host information.

    Attributes:
        os_family: One of OS_FAMILIES
        system: Kernel/system name ('linux', 'darwin', ...)
        indicators: Evidence for the detection decision
        ci: Whether a CI environment was detected
    """
    os_family: str
    system: str
    indicators: tuple[str, ...] = ()
    ci: bool = False

    def __str__(self) -> str:
        ci_str = " (ci)" if self.ci else ""
        return f"{self.os_family}/{self.system}{ci_str}"

    @property
    def is_linux(self) -> bool:
        return self.system == "linux"

    @property
    def is_macos(self) -> bool:
        return self.system == "darwin"


def _system_name() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "darwin"
    return platform.system().lower() or sys.platform


def detect_environment(verbose: bool = False) -> Environment:
    """
    Detect the OS family of the current host.

    Linux families are told apart by the package manager that is present,
    not by /etc/os-release, because the install table is keyed by the
    package manager that will actually run.

    Args:
        verbose: Enable verbose logging

    Returns:
        Environment for this host
    """
    system = _system_name()
    ci = is_ci_environment()
    indicators: list[str] = [f"platform={sys.platform}"]

    if system == "darwin":
        indicators.append(f"mac_ver={platform.mac_ver()[0] or 'unknown'}")
        env = Environment(os_family="macos", system=system, indicators=tuple(indicators), ci=ci)
        vlog(f"Detected environment: {env}", verbose)
        return env

    if system == "linux":
        for binary, family in LINUX_PACKAGE_MANAGERS:
            if shutil.which(binary):
                indicators.append(f"package_manager={binary}")
                env = Environment(os_family=family, system=system, indicators=tuple(indicators), ci=ci)
                vlog(f"Detected environment: {env}", verbose)
                return env
        indicators.append("package_manager=none")

    env = Environment(os_family="unsupported", system=system, indicators=tuple(indicators), ci=ci)
    vlog(f"Unsupported environment: {env} ({', '.join(indicators)})", verbose)
    return env
