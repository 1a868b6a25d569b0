"""
Best-effort host resource detection (RAM, CPU cores, free disk).

Every value is None when it cannot be determined; detection never raises.
"""

from __future__ import annotations

from dataclasses import dataclass

import psutil

from .common import vlog

GIB = 1024 ** 3


@dataclass(frozen=True)
class ResourceState:
    """
    Host resources.

    Attributes:
        ram_gb: Total memory in GB, rounded
        cpu_cores: Logical CPU count
        disk_free_gb: Free disk space at the project root in GB
    """
    ram_gb: int | None = None
    cpu_cores: int | None = None
    disk_free_gb: int | None = None

    def to_dict(self) -> dict:
        return {
            "ram_gb": self.ram_gb,
            "cpu_cores": self.cpu_cores,
            "disk_free_gb": self.disk_free_gb,
        }


def detect_ram_gb() -> int | None:
    try:
        total = psutil.virtual_memory().total
    except (psutil.Error, OSError):
        return None
    return round(total / GIB) if total else None


def detect_cpu_cores() -> int | None:
    try:
        return psutil.cpu_count() or None
    except (psutil.Error, OSError):
        return None


def detect_disk_free_gb(path: str = ".") -> int | None:
    try:
        return psutil.disk_usage(path).free // GIB
    except (psutil.Error, OSError):
        return None


def detect_resources(root: str = ".", verbose: bool = False) -> ResourceState:
    """
    Detect RAM, CPU cores and free disk space at root.

    Args:
        root: Directory whose filesystem is measured
        verbose: Enable verbose logging

    Returns:
        ResourceState with None for anything undetectable
    """
    state = ResourceState(
        ram_gb=detect_ram_gb(),
        cpu_cores=detect_cpu_cores(),
        disk_free_gb=detect_disk_free_gb(root),
    )
    vlog(f"Resources: {state.to_dict()}", verbose)
    return state
