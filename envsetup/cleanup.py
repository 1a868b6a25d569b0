"""
Destructive cleanup of the local stack and generated secret files.

Nothing is removed unless the user confirms with the literal phrase
"yes"; anything else raises CleanupDeclinedError.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from .common import run_quiet
from .templates import COMPOSE_FILE

logger = logging.getLogger(__name__)

CONFIRM_PHRASE = "yes"
RESOURCE_PREFIX = "money-platform"
VOLUME_MARKER = "money"

CLEANUP_FILES = (
    ".env",
    ".env.local",
    ".env.template",
    ".credentials.txt",
    ".credentials.backup",
    ".env.old.backup",
)


class CleanupDeclinedError(Exception):
    """The user did not confirm the destructive cleanup."""


@dataclass
class CleanupResult:
    """
    What cleanup removed.

    Attributes:
        files: Removed files, relative to the root
        containers: Removed container names
        volumes: Removed volume names
        networks: Removed network names
        errors: Docker operations that failed (cleanup carries on)
    """
    files: list[str] = field(default_factory=list)
    containers: list[str] = field(default_factory=list)
    volumes: list[str] = field(default_factory=list)
    networks: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "files": self.files,
            "containers": self.containers,
            "volumes": self.volumes,
            "networks": self.networks,
            "errors": self.errors,
        }


def confirm_cleanup(confirm: str | None = None, input_fn: Callable[[str], str] = input) -> None:
    """
    Require the literal confirmation phrase.

    Args:
        confirm: Phrase given up front (prompted for when None)
        input_fn: Prompt function

    Raises:
        CleanupDeclinedError: If the phrase is anything but "yes"
    """
    if confirm is None:
        try:
            confirm = input_fn("Are you sure you want to continue? (yes/no): ")
        except EOFError:
            confirm = ""
    if confirm.strip() != CONFIRM_PHRASE:
        raise CleanupDeclinedError("Cleanup cancelled: confirmation phrase not given")


def _docker(args: Sequence[str], result: CleanupResult, timeout: float | None) -> str | None:
    proc = run_quiet(["docker", *args], timeout=timeout, merge_stderr=False)
    if proc is None or proc.returncode != 0:
        detail = "" if proc is None else (proc.stderr or "").strip()
        result.errors.append(f"docker {' '.join(args)} failed{': ' + detail if detail else ''}")
        return None
    return proc.stdout or ""


def _matching(listing: str | None, marker: str) -> list[str]:
    if not listing:
        return []
    return [name.strip() for name in listing.splitlines() if marker in name.lower()]


def remove_docker_resources(root: Path, compose_file: str, result: CleanupResult, timeout: float | None = None) -> None:
    """Stop compose services and remove platform containers, volumes and networks."""
    compose_path = root / compose_file
    if compose_path.exists():
        logger.info("Stopping compose services and removing volumes")
        _docker(["compose", "-f", str(compose_path), "down", "-v"], result, timeout)

    containers = _matching(_docker(["ps", "-a", "--format", "{{.Names}}"], result, timeout), RESOURCE_PREFIX)
    if containers and _docker(["rm", "-f", *containers], result, timeout) is not None:
        result.containers.extend(containers)

    volumes = _matching(_docker(["volume", "ls", "--format", "{{.Name}}"], result, timeout), VOLUME_MARKER)
    if volumes and _docker(["volume", "rm", *volumes], result, timeout) is not None:
        result.volumes.extend(volumes)

    networks = _matching(_docker(["network", "ls", "--format", "{{.Name}}"], result, timeout), RESOURCE_PREFIX)
    if networks and _docker(["network", "rm", *networks], result, timeout) is not None:
        result.networks.extend(networks)


def remove_generated_files(root: Path, result: CleanupResult) -> None:
    for name in CLEANUP_FILES:
        target = root / name
        if target.is_file():
            os.remove(target)
            logger.info("Removed %s", name)
            result.files.append(name)


def cleanup(
    root: str | os.PathLike = ".",
    confirm: str | None = None,
    compose_file: str = COMPOSE_FILE,
    input_fn: Callable[[str], str] = input,
    timeout: float | None = None,
) -> CleanupResult:
    """
    Remove platform Docker resources and generated secret files.

    Docker failures are recorded and cleanup carries on; file removal
    errors propagate.

    Raises:
        CleanupDeclinedError: If not confirmed with "yes"
    """
    confirm_cleanup(confirm, input_fn)

    root_path = Path(root)
    result = CleanupResult()

    if shutil.which("docker"):
        remove_docker_resources(root_path, compose_file, result, timeout)
    else:
        logger.warning("docker not found; skipping container, volume and network removal")

    remove_generated_files(root_path, result)
    for error in result.errors:
        logger.warning(error)
    return result
