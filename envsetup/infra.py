"""
Start, stop and inspect the local infrastructure through docker compose.

Orchestration itself belongs to compose; this module only checks the
preconditions and builds the command.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from .common import run_quiet, vlog
from .templates import COMPOSE_FILE

ACTIONS = {
    "up": ("up", "-d"),
    "down": ("down",),
    "status": ("ps",),
}

ENV_FILE = ".env"


class InfraError(Exception):
    """
    A precondition for infra delegation is not met.

    Attributes:
        message: What is wrong
        remediation: How to fix it
    """
    def __init__(self, message: str, remediation: str = ""):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


def docker_daemon_reachable(timeout: float | None = 10) -> bool:
    proc = run_quiet(["docker", "info"], timeout=timeout)
    return proc is not None and proc.returncode == 0


def compose_command(action: str, root: Path, compose_file: str = COMPOSE_FILE) -> list[str]:
    """Build the docker compose command for an action."""
    if action not in ACTIONS:
        raise ValueError(f"Invalid infra action: {action}. Must be one of {', '.join(ACTIONS)}")
    command = ["docker", "compose"]
    env_path = root / ENV_FILE
    if env_path.exists():
        command += ["--env-file", str(env_path)]
    command += ["-f", str(root / compose_file), *ACTIONS[action]]
    return command


def run_infra(
    action: str,
    root: str | os.PathLike = ".",
    compose_file: str = COMPOSE_FILE,
    verbose: bool = False,
) -> int:
    """
    Delegate an infra action to docker compose, streaming its output.

    Returns:
        docker compose exit code

    Raises:
        InfraError: If .env is missing (for "up"), the compose file is
            missing, or the Docker daemon is not reachable
        ValueError: If action is unknown
    """
    root_path = Path(root)
    command = compose_command(action, root_path, compose_file)

    if action == "up" and not (root_path / ENV_FILE).exists():
        raise InfraError(".env file not found", "Run this first: envsetup converge")
    if not (root_path / compose_file).exists():
        raise InfraError(f"Compose file not found: {compose_file}",
                         "Add the compose file or set project.compose_file in .envsetup.yml")
    if not docker_daemon_reachable():
        raise InfraError("Docker is not running", "Start Docker (macOS: open -a Docker; Linux: sudo systemctl start docker)")

    vlog(f"Executing: {' '.join(command)}", verbose)
    return subprocess.run(command, check=False).returncode
