"""
Capability resolver: which requirements does a snapshot leave unmet?
"""

from __future__ import annotations

from typing import Iterable

from packaging import version as pkg_version

from .catalog import REQUIREMENTS, Requirement
from .diff import diff
from .probe import CapabilitySnapshot


def major_minor(v: str) -> str:
    """Truncate a version to its major.minor components ("21.0.3" -> "21.0")."""
    return ".".join(v.split(".")[:2])


def version_at_least(detected: str, minimum: str) -> bool | None:
    """
    Compare a detected version against a minimum on major.minor.

    Returns:
        True/False, or None when either side cannot be parsed
    """
    try:
        return pkg_version.parse(major_minor(detected)) >= pkg_version.parse(major_minor(minimum))
    except pkg_version.InvalidVersion:
        return None


def is_satisfied(requirement: Requirement, snapshot: CapabilitySnapshot) -> bool:
    """
    Whether the snapshot satisfies a requirement.

    Presence-only requirements accept any present capability, even one
    whose version could not be read. A minimum version is never satisfied
    by an unknown version.
    """
    state = snapshot.get(requirement.capability)
    if not state.present:
        return False
    if requirement.presence_only:
        return True
    if not state.version:
        return False
    return bool(version_at_least(state.version, requirement.min_version))


def resolve(
    snapshot: CapabilitySnapshot,
    requirements: Iterable[Requirement] = REQUIREMENTS,
) -> frozenset[Requirement]:
    """
    Compute the unmet requirements for a snapshot.

    Pure: the result depends only on its arguments and is independent of
    the order of requirements.

    Args:
        snapshot: Probe result
        requirements: Requirements to evaluate

    Returns:
        Set of unmet requirements
    """
    return frozenset(diff(requirements, lambda req: is_satisfied(req, snapshot)))
