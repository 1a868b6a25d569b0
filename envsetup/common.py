"""
Common utilities shared across envsetup modules.
"""

from __future__ import annotations

import os
import subprocess
import sys
from typing import Sequence

ANSI_ENV = {"TERM": "dumb", "NO_COLOR": "1"}


def is_ci_environment() -> bool:
    """
    Check if running in a CI/CD environment.

    Returns:
        True if CI indicators are present, False otherwise.
    """
    ci_indicators = [
        "CI",
        "CONTINUOUS_INTEGRATION",
        "GITHUB_ACTIONS",
        "GITLAB_CI",
        "CIRCLECI",
        "JENKINS_HOME",
        "BUILDKITE",
        "TF_BUILD",  # Azure Pipelines
    ]
    return any(os.environ.get(var) for var in ci_indicators)


def run_quiet(
    args: Sequence[str],
    timeout: float | None = None,
    merge_stderr: bool = True,
) -> subprocess.CompletedProcess | None:
    """
    Run a read-only inspection command with stdin isolated and colour disabled.

    Args:
        args: Command and arguments
        timeout: Timeout in seconds
        merge_stderr: If True, stderr is folded into stdout

    Returns:
        CompletedProcess, or None if the command could not be run
    """
    try:
        return subprocess.run(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            timeout=timeout,
            check=False,
            env={**os.environ, **ANSI_ENV},
        )
    except (OSError, subprocess.TimeoutExpired, ValueError):
        return None


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("ENVSETUP_DEBUG", "0") == "1":
        try:
            from .logging_config import get_logger
            logger = get_logger()
            logger.info(msg)
        except Exception:
            # Logging must never break a probe
            try:
                print(f"[envsetup] {msg}", file=sys.stderr)
            except Exception:
                pass
