"""
Probe: inventory installed capabilities, listening ports and host resources.

A probe produces an immutable CapabilitySnapshot. Nothing downstream
mutates it; re-probing builds a new one.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Sequence

from .catalog import CAPABILITIES, PORT_CHECKS, Capability, PortCheck
from .common import vlog
from .config import Config
from .detection import audit_capability
from .environment import detect_environment
from .ports import PortState, classify_port, listening_ports
from .resources import ResourceState, detect_resources


@dataclass(frozen=True)
class CapabilityState:
    """
    Detected state of one capability.

    Attributes:
        name: Capability name
        present: Whether an executable was found
        version: Extracted version, None when absent or unparseable
        version_line: Raw version banner
        path: Executable path
        error: Why detection failed, if it did
    """
    name: str
    present: bool = False
    version: str | None = None
    version_line: str = ""
    path: str = ""
    error: str = ""

    @property
    def version_unknown(self) -> bool:
        return self.present and not self.version

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "present": self.present,
            "version": self.version,
            "version_line": self.version_line,
            "path": self.path,
            "error": self.error,
        }


def _empty_mapping() -> Mapping[str, CapabilityState]:
    return MappingProxyType({})


@dataclass(frozen=True)
class CapabilitySnapshot:
    """
    Immutable result of one probe.

    Attributes:
        capabilities: Capability name -> state, read-only, in catalog order
        ports: Port states in catalog order
        resources: Host resources
        os_family: Detected OS family
        timestamp: ISO-8601 UTC time the probe finished
    """
    capabilities: Mapping[str, CapabilityState] = field(default_factory=_empty_mapping)
    ports: tuple[PortState, ...] = ()
    resources: ResourceState = field(default_factory=ResourceState)
    os_family: str = "unsupported"
    timestamp: str = ""

    def get(self, name: str) -> CapabilityState:
        """State for a capability; unknown names read as absent."""
        return self.capabilities.get(name) or CapabilityState(name=name)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "os_family": self.os_family,
            "capabilities": [state.to_dict() for state in self.capabilities.values()],
            "ports": [port.to_dict() for port in self.ports],
            "resources": self.resources.to_dict(),
        }


def detect_capability(capability: Capability, timeout: float | None = None, verbose: bool = False) -> CapabilityState:
    """Detect one capability and wrap the result in a CapabilityState."""
    present, version, line, path = audit_capability(capability, timeout=timeout, verbose=verbose)
    return CapabilityState(
        name=capability.name,
        present=present,
        version=version or None,
        version_line=line,
        path=path,
    )


def probe(
    capabilities: Sequence[Capability] = CAPABILITIES,
    ports: Sequence[PortCheck] = PORT_CHECKS,
    config: Config | None = None,
    os_family: str | None = None,
    system: str | None = None,
    verbose: bool = False,
) -> CapabilitySnapshot:
    """
    Inventory the host.

    Capability detections and the listener scan are independent and run on
    a thread pool when parallel probing is enabled. A check that raises is
    recorded on its own entry and never aborts the probe.

    Args:
        capabilities: Capabilities to detect
        ports: Ports to classify
        config: Configuration (defaults when None)
        os_family: Pre-detected OS family (detected when None)
        system: System name used to pick port techniques (current host when None)
        verbose: Enable verbose logging

    Returns:
        CapabilitySnapshot in static catalog order
    """
    config = config or Config()
    prefs = config.preferences
    timeout = prefs.timeout_seconds
    if os_family is None:
        os_family = detect_environment(verbose).os_family

    ignored = set(config.ignore_ports)
    port_checks = [p for p in ports if p.port not in ignored]

    states: dict[str, CapabilityState] = {}
    listeners: set[int] | None = None
    technique = ""

    def _scan_ports():
        return listening_ports(system=system, timeout=timeout, verbose=verbose)

    if prefs.parallel_probe and len(capabilities) > 1:
        workers = min(prefs.max_workers, len(capabilities) + 1)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_name = {
                executor.submit(detect_capability, cap, timeout, verbose): cap.name
                for cap in capabilities
            }
            ports_future = executor.submit(_scan_ports) if port_checks else None

            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    states[name] = future.result()
                except Exception as e:
                    vlog(f"Detection of {name} failed: {e}", verbose)
                    states[name] = CapabilityState(name=name, error=str(e))

            if ports_future is not None:
                try:
                    listeners, technique = ports_future.result()
                except Exception as e:
                    vlog(f"Port scan failed: {e}", verbose)
    else:
        for cap in capabilities:
            try:
                states[cap.name] = detect_capability(cap, timeout, verbose)
            except Exception as e:
                vlog(f"Detection of {cap.name} failed: {e}", verbose)
                states[cap.name] = CapabilityState(name=cap.name, error=str(e))
        if port_checks:
            try:
                listeners, technique = _scan_ports()
            except Exception as e:
                vlog(f"Port scan failed: {e}", verbose)

    ordered = {cap.name: states[cap.name] for cap in capabilities}
    port_states = tuple(classify_port(check, listeners, technique) for check in port_checks)
    resources = detect_resources(root=config.project.root, verbose=verbose)

    return CapabilitySnapshot(
        capabilities=MappingProxyType(ordered),
        ports=port_states,
        resources=resources,
        os_family=os_family,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
