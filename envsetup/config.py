"""
Configuration file parsing and management.

Supports YAML configuration files (JSON for ``.json`` paths).
Merges configurations from multiple sources (custom → project → user → system → defaults).
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from .common import vlog


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".envsetup.yml",                                       # Project root (highest priority)
    ".envsetup.yaml",
    os.path.expanduser("~/.config/envsetup/config.yml"),   # User global
    os.path.expanduser("~/.config/envsetup/config.yaml"),
    "/etc/envsetup/config.yml",                            # System global
    "/etc/envsetup/config.yaml",
]

DEFAULT_TIMEOUT_SECONDS = int(os.environ.get("ENVSETUP_TIMEOUT_SECONDS", "3"))
DEFAULT_COMPOSE_FILE = "infrastructure/docker/docker-compose.yml"
PREFERENCE_KEYS = ("timeout_seconds", "install_timeout_seconds", "max_workers", "parallel_probe")


@dataclass(frozen=True)
class ProjectSettings:
    """
    Where the project lives on disk.

    Attributes:
        root: Convergence root directory
        compose_file: Compose file used for infra delegation, relative to root
    """
    root: str = "."
    compose_file: str = DEFAULT_COMPOSE_FILE

    @staticmethod
    def from_dict(data: dict[str, Any]) -> ProjectSettings:
        """Create ProjectSettings from dictionary."""
        return ProjectSettings(
            root=str(data.get("root", ".")),
            compose_file=str(data.get("compose_file", DEFAULT_COMPOSE_FILE)),
        )


@dataclass(frozen=True)
class Preferences:
    """
    Runtime preferences.

    Attributes:
        timeout_seconds: Timeout for each probe command
        install_timeout_seconds: Timeout for each install command (None waits for the OS)
        max_workers: Maximum number of parallel probe workers
        parallel_probe: Whether capability and port checks run in a thread pool
        explicit: Names of the preferences a config file set, even to their default
    """
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    install_timeout_seconds: int | None = None
    max_workers: int = 8
    parallel_probe: bool = True
    explicit: frozenset[str] = field(default=frozenset(), compare=False, repr=False)

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.timeout_seconds < 1 or self.timeout_seconds > 60:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. "
                "Must be between 1 and 60"
            )

        if self.install_timeout_seconds is not None and self.install_timeout_seconds < 1:
            raise ValueError(
                f"Invalid install_timeout_seconds: {self.install_timeout_seconds}. "
                "Must be positive or null"
            )

        if self.max_workers < 1 or self.max_workers > 32:
            raise ValueError(
                f"Invalid max_workers: {self.max_workers}. "
                "Must be between 1 and 32"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            timeout_seconds=data.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
            install_timeout_seconds=data.get("install_timeout_seconds"),
            max_workers=data.get("max_workers", 8),
            parallel_probe=data.get("parallel_probe", True),
            explicit=frozenset(k for k in PREFERENCE_KEYS if k in data),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for envsetup.

    Attributes:
        version: Config schema version
        project: Project location settings
        preferences: Global preferences
        ignore_ports: Ports left out of probing and reporting
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    project: ProjectSettings = field(default_factory=ProjectSettings)
    preferences: Preferences = field(default_factory=Preferences)
    ignore_ports: tuple[int, ...] = ()
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

        for port in self.ignore_ports:
            if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
                raise ValueError(f"Invalid port in ignore_ports: {port!r}")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        return Config(
            version=data.get("version", 1),
            project=ProjectSettings.from_dict(data.get("project", {}) or {}),
            preferences=Preferences.from_dict(data.get("preferences", {}) or {}),
            ignore_ports=tuple(data.get("ignore_ports", []) or []),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        A value counts as set when it differs from the default. A
        preference the file named explicitly is set even at its default.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        default_project = ProjectSettings()
        default_prefs = Preferences()

        def pick(mine, theirs, default):
            return mine if mine != default else theirs

        merged_project = ProjectSettings(
            root=pick(self.project.root, other.project.root, default_project.root),
            compose_file=pick(self.project.compose_file, other.project.compose_file, default_project.compose_file),
        )

        def pick_preference(name):
            mine = getattr(self.preferences, name)
            if name in self.preferences.explicit:
                return mine
            return pick(mine, getattr(other.preferences, name), getattr(default_prefs, name))

        merged_preferences = Preferences(
            **{name: pick_preference(name) for name in PREFERENCE_KEYS},
            explicit=self.preferences.explicit | other.preferences.explicit,
        )

        merged_ports = tuple(sorted(set(self.ignore_ports) | set(other.ignore_ports)))

        return Config(
            version=self.version,
            project=merged_project,
            preferences=merged_preferences,
            ignore_ports=merged_ports,
            source=self.source or other.source,
        )


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. Project .envsetup.yml
    3. User ~/.config/envsetup/config.yml
    4. System /etc/envsetup/config.yml
    5. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    merged = configs[0]
    for config in configs[1:]:
        merged = merged.merge_with(config)

    vlog(f"Merged {len(configs)} config files", verbose)
    return merged
