"""
Local tool detection and version extraction.
"""

from __future__ import annotations

import os
import re
import shutil
from typing import Sequence

from .catalog import Capability
from .common import run_quiet, vlog

# Constants
TIMEOUT_SECONDS = int(os.environ.get("ENVSETUP_TIMEOUT_SECONDS", "3"))

# `openjdk version "21.0.3"` / `java version "1.8.0_392"` / `openjdk version "21" 2023-09-19`
QUOTED_VERSION_RE = re.compile(r'"v?(\d+(?:\.\d+)*)')
VERSION_RE = re.compile(r"(\d+(?:\.\d+)+)")
# `v20`, `version 21`
BARE_VERSION_RE = re.compile(r"(?:\bv|version\s+)(\d+)\b", re.IGNORECASE)
ANSI_ESCAPE_RE = re.compile(r'\x1b\[[0-9;]*m|\033\[[0-9;]*m')

JHIPSTER_PACKAGE = "generator-jhipster"


def find_paths(command_name: str) -> list[str]:
    """Find the paths for a command on PATH.

    Args:
        command_name: Binary name to search for

    Returns:
        List of absolute paths to executables (empty if not found)
    """
    p = shutil.which(command_name)
    return [p] if p else []


def extract_version_number(s: str) -> str:
    """Extract version number from a version banner.

    The first integer sequence that precedes a quote or a dot wins; a
    quoted token is preferred because JVM banners quote the real version
    and follow it with a release date.

    Args:
        s: String potentially containing version

    Returns:
        Version number (e.g., "21.0.3") or empty string
    """
    if not s:
        return ""

    m = QUOTED_VERSION_RE.search(s)
    if m:
        return m.group(1)

    m = VERSION_RE.search(s)
    if m:
        return m.group(1)

    m = BARE_VERSION_RE.search(s)
    return m.group(1) if m else ""


def run_with_timeout(
    args: Sequence[str],
    timeout: float | None = None,
    require_success: bool = False,
) -> str:
    """Run command with timeout and return the line carrying the version.

    Args:
        args: Command and arguments
        timeout: Timeout in seconds (default: TIMEOUT_SECONDS)
        require_success: If True, a non-zero exit yields an empty result

    Returns:
        Line containing version, or first line if no version found
    """
    proc = run_quiet(args, timeout=timeout or TIMEOUT_SECONDS)
    if proc is None:
        return ""
    if require_success and proc.returncode != 0:
        return ""

    cleaned_lines = [ANSI_ESCAPE_RE.sub('', line.strip()) for line in (proc.stdout or "").splitlines()]

    for line in cleaned_lines:
        if line and extract_version_number(line):
            return line

    for line in cleaned_lines:
        if line:
            return line

    return ""


def _compose_version_line(path: str, timeout: float | None) -> str:
    if os.path.basename(path) == "docker":
        # Plugin form; plain docker without the plugin exits non-zero
        return run_with_timeout([path, "compose", "version"], timeout, require_success=True)
    return run_with_timeout([path, "--version"], timeout, require_success=True)


def _command_version_line(capability: Capability, timeout: float | None) -> str:
    line = run_with_timeout(capability.version_command, timeout, require_success=True)
    if capability.name == "service-generator":
        # `npm list` prints the tree root first; keep only the package line
        proc_line = line if JHIPSTER_PACKAGE in line else ""
        if not proc_line:
            return ""
        return proc_line[proc_line.index(JHIPSTER_PACKAGE):]
    return line


def get_version_line(path: str, capability: Capability, timeout: float | None = None) -> str:
    """Get the version banner for an installed capability.

    Args:
        path: Path to executable
        capability: Capability definition
        timeout: Timeout per command

    Returns:
        Version line string or empty string
    """
    if capability.name == "container-compose":
        return _compose_version_line(path, timeout)

    return run_with_timeout([path, *capability.version_args], timeout)


def audit_capability(
    capability: Capability,
    timeout: float | None = None,
    verbose: bool = False,
) -> tuple[bool, str, str, str]:
    """Detect a single capability.

    Args:
        capability: Capability definition
        timeout: Timeout per command
        verbose: Enable verbose logging

    Returns:
        Tuple of (present, version_num, version_line, path). A present
        capability with an empty version_num has an unknown version.
    """
    if capability.version_command:
        if not shutil.which(capability.version_command[0]):
            vlog(f"{capability.name}: {capability.version_command[0]} not found", verbose)
            return (False, "", "", "")
        line = _command_version_line(capability, timeout)
        if not line:
            vlog(f"{capability.name}: not reported by {' '.join(capability.version_command)}", verbose)
            return (False, "", "", "")
        return (True, extract_version_number(line), line, "")

    for cand in capability.candidates:
        for path in find_paths(cand):
            line = get_version_line(path, capability, timeout)
            if capability.name == "container-compose" and not line:
                # docker without the compose plugin; try the next candidate
                continue
            version = extract_version_number(line)
            vlog(f"{capability.name}: {path} -> {line or '<no banner>'}", verbose)
            return (True, version, line, path)

    vlog(f"{capability.name}: none of {', '.join(capability.candidates)} found", verbose)
    return (False, "", "", "")
