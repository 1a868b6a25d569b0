"""
Verifier: classify every requirement, port and resource of a snapshot.

Each item is classified on its own; the aggregate is ERROR if anything is
an ERROR, WARNING if anything is a WARNING, OK otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .catalog import (
    MIN_RAM_GB,
    RECOMMENDED_CPU_CORES,
    RECOMMENDED_DISK_GB,
    RECOMMENDED_RAM_GB,
    REQUIREMENTS,
    Requirement,
    category_rank,
    get_capability,
)
from .ports import PORT_FREE, PORT_IN_USE, PortState
from .probe import CapabilitySnapshot, probe
from .resolver import is_satisfied, version_at_least
from .resources import ResourceState
from .scaffold import ScaffoldWarning

# Issue codes carried on CheckResult.issue
DETECTION_AMBIGUOUS = "detection_ambiguous"
CAPABILITY_MISSING = "capability_missing"
UNSUPPORTED_PLATFORM = "unsupported_platform"


class CheckStatus:
    """Status values in increasing severity."""
    OK = "OK"
    WARNING = "WARNING"
    ERROR = "ERROR"

    SEVERITY = {OK: 0, WARNING: 1, ERROR: 2}


@dataclass(frozen=True)
class CheckResult:
    """
    One verified item.

    Attributes:
        category: Report category (core, build, dev, ports, resources, project)
        name: Item label
        status: CheckStatus value
        message: What was found
        remediation: How to fix it (empty when OK)
        issue: Issue code for non-OK findings
    """
    category: str
    name: str
    status: str
    message: str
    remediation: str = ""
    issue: str = ""

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "remediation": self.remediation,
            "issue": self.issue,
        }


@dataclass(frozen=True)
class VerificationReport:
    """
    Ordered check results and their aggregate.

    Attributes:
        checks: Results ordered by category, then manifest order
        os_family: OS family of the verified snapshot
        timestamp: When the verified snapshot was taken
    """
    checks: tuple[CheckResult, ...] = ()
    os_family: str = ""
    timestamp: str = ""

    @property
    def status(self) -> str:
        return aggregate_status(c.status for c in self.checks)

    @property
    def passed(self) -> bool:
        return self.status != CheckStatus.ERROR

    def count(self, status: str) -> int:
        return sum(1 for c in self.checks if c.status == status)

    def with_checks(self, extra: Iterable[CheckResult]) -> VerificationReport:
        """New report with extra checks merged into the fixed order."""
        return VerificationReport(
            checks=order_checks([*self.checks, *extra]),
            os_family=self.os_family,
            timestamp=self.timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "passed": self.passed,
            "os_family": self.os_family,
            "timestamp": self.timestamp,
            "summary": {s: self.count(s) for s in (CheckStatus.OK, CheckStatus.WARNING, CheckStatus.ERROR)},
            "checks": [c.to_dict() for c in self.checks],
        }


def aggregate_status(statuses: Iterable[str]) -> str:
    """ERROR if any ERROR, else WARNING if any WARNING, else OK."""
    worst = CheckStatus.OK
    for status in statuses:
        if CheckStatus.SEVERITY[status] > CheckStatus.SEVERITY[worst]:
            worst = status
    return worst


def order_checks(checks: Sequence[CheckResult]) -> tuple[CheckResult, ...]:
    """Stable sort by category rank; items keep their order within a category."""
    return tuple(sorted(checks, key=lambda c: category_rank(c.category)))


def check_requirement(requirement: Requirement, snapshot: CapabilitySnapshot) -> CheckResult:
    capability = get_capability(requirement.capability)
    label = capability.label if capability else requirement.capability
    category = capability.category if capability else "core"
    state = snapshot.get(requirement.capability)
    hint = requirement.hint

    if not state.present:
        if requirement.optional:
            return CheckResult(category, label, CheckStatus.WARNING,
                               f"{label} not found (optional)", hint, CAPABILITY_MISSING)
        return CheckResult(category, label, CheckStatus.ERROR,
                           f"{label} not found", hint, CAPABILITY_MISSING)

    if not state.version:
        wanted = "" if requirement.presence_only else f" (need {requirement.min_version}+)"
        return CheckResult(
            category, label, CheckStatus.WARNING,
            f"{label} found but its version could not be determined{wanted}",
            "Check the version manually: " + " ".join(_version_command(capability)),
            DETECTION_AMBIGUOUS,
        )

    if requirement.presence_only:
        return CheckResult(category, label, CheckStatus.OK, f"{label} {state.version}")

    at_least = version_at_least(state.version, requirement.min_version)
    if at_least is None:
        return CheckResult(
            category, label, CheckStatus.WARNING,
            f"{label} version '{state.version}' could not be compared (need {requirement.min_version}+)",
            hint, DETECTION_AMBIGUOUS,
        )
    if not at_least:
        status = CheckStatus.WARNING if requirement.optional else CheckStatus.ERROR
        return CheckResult(
            category, label, status,
            f"{label} {state.version} found, {requirement.min_version}+ required",
            hint, CAPABILITY_MISSING,
        )
    return CheckResult(category, label, CheckStatus.OK, f"{label} {state.version}")


def _version_command(capability) -> tuple[str, ...]:
    if capability is None:
        return ()
    if capability.version_command:
        return capability.version_command
    binary = capability.candidates[0] if capability.candidates else capability.name
    return (binary, *capability.version_args)


def check_port(port: PortState) -> CheckResult:
    name = f"Port {port.port} ({port.label})"
    if port.state == PORT_FREE:
        return CheckResult("ports", name, CheckStatus.OK, f"Port {port.port} available")
    if port.state == PORT_IN_USE:
        return CheckResult(
            "ports", name, CheckStatus.ERROR,
            f"Port {port.port} already in use (needed for {port.label})",
            f"Stop the process listening on {port.port} or add it to ignore_ports",
        )
    return CheckResult(
        "ports", name, CheckStatus.WARNING,
        f"Could not determine whether port {port.port} is free",
        "Recommend manual check (install lsof or ss)",
        DETECTION_AMBIGUOUS,
    )


def check_resources(resources: ResourceState) -> list[CheckResult]:
    results = []

    ram = resources.ram_gb
    if ram is None:
        results.append(CheckResult("resources", "RAM", CheckStatus.WARNING,
                                   "Could not detect RAM", "Recommend manual check", DETECTION_AMBIGUOUS))
    elif ram >= RECOMMENDED_RAM_GB:
        results.append(CheckResult("resources", "RAM", CheckStatus.OK, f"RAM: {ram}GB"))
    elif ram >= MIN_RAM_GB:
        results.append(CheckResult("resources", "RAM", CheckStatus.WARNING,
                                   f"RAM: {ram}GB ({RECOMMENDED_RAM_GB}GB recommended)",
                                   "Close other applications while the stack runs"))
    else:
        results.append(CheckResult("resources", "RAM", CheckStatus.ERROR,
                                   f"RAM: {ram}GB (minimum {MIN_RAM_GB}GB required)",
                                   f"The local stack needs at least {MIN_RAM_GB}GB"))

    cores = resources.cpu_cores
    if cores is None:
        results.append(CheckResult("resources", "CPU", CheckStatus.WARNING,
                                   "Could not detect CPU cores", "Recommend manual check", DETECTION_AMBIGUOUS))
    elif cores >= RECOMMENDED_CPU_CORES:
        results.append(CheckResult("resources", "CPU", CheckStatus.OK, f"CPU cores: {cores}"))
    else:
        results.append(CheckResult("resources", "CPU", CheckStatus.WARNING,
                                   f"CPU cores: {cores} ({RECOMMENDED_CPU_CORES}+ recommended)"))

    disk = resources.disk_free_gb
    if disk is None:
        results.append(CheckResult("resources", "Disk", CheckStatus.WARNING,
                                   "Could not detect free disk space", "Recommend manual check",
                                   DETECTION_AMBIGUOUS))
    elif disk >= RECOMMENDED_DISK_GB:
        results.append(CheckResult("resources", "Disk", CheckStatus.OK, f"Free disk space: {disk}GB"))
    else:
        results.append(CheckResult("resources", "Disk", CheckStatus.WARNING,
                                   f"Free disk space: {disk}GB ({RECOMMENDED_DISK_GB}GB+ recommended)",
                                   "Free up disk space for images and volumes"))
    return results


def check_platform(
    snapshot: CapabilitySnapshot,
    requirements: Iterable[Requirement] = REQUIREMENTS,
) -> list[CheckResult]:
    """Unsupported OS: ERROR while a required capability is unmet, WARNING otherwise."""
    if snapshot.os_family != "unsupported":
        return []
    blocking = [req.capability for req in requirements
                if not req.optional and not is_satisfied(req, snapshot)]
    if blocking:
        return [CheckResult(
            "core", "Platform", CheckStatus.ERROR,
            "Unsupported operating system; cannot install " + ", ".join(blocking),
            "Install missing tools manually", UNSUPPORTED_PLATFORM,
        )]
    return [CheckResult(
        "core", "Platform", CheckStatus.WARNING,
        "Unsupported operating system; dependencies cannot be installed automatically",
        "Install missing tools manually", UNSUPPORTED_PLATFORM,
    )]


def scaffold_checks(warnings: Iterable[ScaffoldWarning]) -> list[CheckResult]:
    """Scaffold warnings as checks in the trailing project category."""
    return [
        CheckResult("project", w.path, CheckStatus.WARNING, w.message, w.remediation, w.issue)
        for w in warnings
    ]


def verify(
    requirements: Iterable[Requirement] = REQUIREMENTS,
    snapshot: CapabilitySnapshot | None = None,
    probe_fn: Callable[[], CapabilitySnapshot] = probe,
    scaffold_warnings: Iterable[ScaffoldWarning] = (),
) -> VerificationReport:
    """
    Verify the host against the requirements.

    Args:
        requirements: Requirements to check
        snapshot: Snapshot to verify; probe_fn() is called when None
        probe_fn: Called without arguments to take a fresh snapshot
        scaffold_warnings: Convergence warnings to fold into the report

    Returns:
        VerificationReport in fixed category order
    """
    if snapshot is None:
        snapshot = probe_fn()

    checks: list[CheckResult] = []
    requirements = tuple(requirements)
    checks.extend(check_platform(snapshot, requirements))
    checks.extend(check_requirement(req, snapshot) for req in requirements)
    checks.extend(check_port(port) for port in snapshot.ports)
    checks.extend(check_resources(snapshot.resources))
    checks.extend(scaffold_checks(scaffold_warnings))

    return VerificationReport(
        checks=order_checks(checks),
        os_family=snapshot.os_family,
        timestamp=snapshot.timestamp,
    )
