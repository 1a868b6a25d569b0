"""
Package manager registry.

Each platform's action table names a package manager from this registry
and a package; the manager turns that into a command tuple.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from .common import run_quiet


# Cache for package manager availability checks
_PM_CACHE: dict[str, bool] = {}
_PM_CACHE_LOCK = threading.Lock()


@dataclass(frozen=True)
class PackageManager:
    """
    Package manager definition.

    Attributes:
        name: Package manager identifier (e.g., "brew", "apt-get", "npm-global")
        display_name: Human-readable name
        check_command: Command to check if manager is available
        install_command_template: Template for install command (use {package} placeholder)
        category: "system" managers need root, "user" managers do not
    """
    name: str
    display_name: str
    check_command: tuple[str, ...]
    install_command_template: tuple[str, ...]
    category: str

    @property
    def requires_sudo(self) -> bool:
        return self.category == "system"

    def is_available(self, timeout: int = 2) -> bool:
        """
        Check if this package manager is available on the system.

        Args:
            timeout: Timeout in seconds for check command

        Returns:
            True if package manager is installed and accessible
        """
        with _PM_CACHE_LOCK:
            if self.name in _PM_CACHE:
                return _PM_CACHE[self.name]

        result = run_quiet(self.check_command, timeout=timeout)
        available = result is not None and result.returncode == 0

        with _PM_CACHE_LOCK:
            _PM_CACHE[self.name] = available

        return available

    def get_install_command(self, package: str) -> tuple[str, ...]:
        """
        Get install command for a package.

        Args:
            package: Package name, may be several space-separated packages

        Returns:
            Command tuple to install the package
        """
        command: list[str] = []
        for part in self.install_command_template:
            if part == "{package}":
                command.extend(package.split())
            else:
                command.append(part)
        return tuple(command)


PACKAGE_MANAGERS = (
    PackageManager(
        name="brew",
        display_name="Homebrew",
        check_command=("brew", "--version"),
        install_command_template=("brew", "install", "{package}"),
        category="user",
    ),
    PackageManager(
        name="brew-cask",
        display_name="Homebrew Cask",
        check_command=("brew", "--version"),
        install_command_template=("brew", "install", "--cask", "{package}"),
        category="user",
    ),
    PackageManager(
        name="apt-get",
        display_name="APT",
        check_command=("apt-get", "--version"),
        install_command_template=("apt-get", "install", "-y", "{package}"),
        category="system",
    ),
    PackageManager(
        name="dnf",
        display_name="DNF",
        check_command=("dnf", "--version"),
        install_command_template=("dnf", "install", "-y", "{package}"),
        category="system",
    ),
    PackageManager(
        name="yum",
        display_name="YUM",
        check_command=("yum", "--version"),
        install_command_template=("yum", "install", "-y", "{package}"),
        category="system",
    ),
    PackageManager(
        name="npm-global",
        display_name="npm (global)",
        check_command=("npm", "--version"),
        install_command_template=("npm", "install", "-g", "{package}"),
        category="user",
    ),
)

PACKAGE_MANAGER_MAP: dict[str, PackageManager] = {pm.name: pm for pm in PACKAGE_MANAGERS}


def get_package_manager(name: str) -> PackageManager | None:
    """
    Get package manager by name.

    Args:
        name: Package manager identifier

    Returns:
        PackageManager object or None if not found
    """
    return PACKAGE_MANAGER_MAP.get(name)


def clear_cache() -> None:
    """Clear package manager availability cache."""
    with _PM_CACHE_LOCK:
        _PM_CACHE.clear()
