"""
Static capability, requirement and port catalog.

Requirements are enumerated here, never derived at runtime. The order of
each table is the order findings appear in reports.
"""

from __future__ import annotations

from dataclasses import dataclass

# Report categories in fixed display order
CATEGORY_ORDER: tuple[str, ...] = ("core", "build", "dev", "ports", "resources", "project")

CATEGORY_DESC = {
    "core": "Core Requirements",
    "build": "Build Tools",
    "dev": "Development Tools",
    "ports": "Ports Availability",
    "resources": "System Requirements",
    "project": "Project Scaffold",
}


@dataclass(frozen=True)
class Capability:
    """How to detect one capability on the host.

    Attributes:
        name: Capability identifier (e.g. "runtime", "container-engine")
        label: Human-readable name
        category: Report category ("core", "build", "dev")
        candidates: Binary names to search for, in preference order
        version_args: Arguments that make the binary print its version banner
        version_command: Full command whose success means present (binary search is skipped)
    """
    name: str
    label: str
    category: str
    candidates: tuple[str, ...] = ()
    version_args: tuple[str, ...] = ("--version",)
    version_command: tuple[str, ...] = ()


@dataclass(frozen=True)
class Requirement:
    """A statically enumerated requirement on a capability.

    Attributes:
        capability: Capability name
        min_version: Minimum "major.minor" version, or None for presence only
        hint: Remediation hint shown when unmet
        optional: Unmet optional requirements are warnings, not errors
        auto_install: Whether install-missing targets this requirement
        requires: Capabilities that must be present before installing this one
    """
    capability: str
    min_version: str | None = None
    hint: str = ""
    optional: bool = False
    auto_install: bool = True
    requires: tuple[str, ...] = ()

    @property
    def presence_only(self) -> bool:
        return self.min_version is None

    def describe(self) -> str:
        if self.min_version:
            return f"{self.capability} >= {self.min_version}"
        return self.capability


@dataclass(frozen=True)
class PortCheck:
    """A port that must be free for the local stack."""
    port: int
    label: str


CAPABILITIES: tuple[Capability, ...] = (
    # Core
    Capability("runtime", "Java", "core", candidates=("java",), version_args=("-version",)),
    Capability("container-engine", "Docker", "core", candidates=("docker",)),
    Capability("container-compose", "Docker Compose", "core", candidates=("docker", "docker-compose")),
    Capability("version-control", "Git", "core", candidates=("git",)),
    # Build
    Capability("build-tool", "Gradle", "build", candidates=("gradle",)),
    Capability("js-runtime", "Node.js", "build", candidates=("node",)),
    Capability("js-package-manager", "npm", "build", candidates=("npm",)),
    # Dev
    Capability(
        "service-generator", "JHipster", "dev",
        version_command=("npm", "list", "-g", "generator-jhipster", "--depth=0"),
    ),
    Capability("cluster-cli", "kubectl", "dev", candidates=("kubectl",), version_args=("version", "--client")),
    Capability("chart-manager", "Helm", "dev", candidates=("helm",), version_args=("version", "--short")),
)

REQUIREMENTS: tuple[Requirement, ...] = (
    Requirement("runtime", min_version="21",
                hint="https://adoptium.net/temurin/releases/?version=21"),
    Requirement("container-engine", hint="https://docs.docker.com/get-docker/"),
    Requirement("container-compose", hint="Included with Docker Desktop"),
    Requirement("version-control", hint="https://git-scm.com/downloads"),
    Requirement("build-tool", hint="Not installed globally (the Gradle wrapper will be used)",
                optional=True, auto_install=False),
    Requirement("js-runtime", hint="https://nodejs.org/"),
    Requirement("js-package-manager", hint="Comes with Node.js", requires=("js-runtime",)),
    Requirement("service-generator", min_version="8.1",
                hint="npm install -g generator-jhipster@8.1.0",
                optional=True, requires=("js-package-manager",)),
    Requirement("cluster-cli", hint="Needed for Kubernetes deployment",
                optional=True, auto_install=False),
    Requirement("chart-manager", hint="Needed for Kubernetes deployment",
                optional=True, auto_install=False),
)

PORT_CHECKS: tuple[PortCheck, ...] = (
    PortCheck(5432, "PostgreSQL"),
    PortCheck(6379, "Redis"),
    PortCheck(9092, "Kafka"),
    PortCheck(2181, "Zookeeper"),
    PortCheck(8761, "Eureka"),
    PortCheck(8888, "Config Server"),
    PortCheck(8080, "Gateway"),
    PortCheck(9411, "Zipkin"),
    PortCheck(9090, "Prometheus"),
    PortCheck(3000, "Grafana"),
)

# Recommended host resources
MIN_RAM_GB = 8
RECOMMENDED_RAM_GB = 16
RECOMMENDED_CPU_CORES = 4
RECOMMENDED_DISK_GB = 20

CAPABILITY_MAP: dict[str, Capability] = {c.name: c for c in CAPABILITIES}
REQUIREMENT_MAP: dict[str, Requirement] = {r.capability: r for r in REQUIREMENTS}


def get_capability(name: str) -> Capability | None:
    """Get capability definition by name."""
    return CAPABILITY_MAP.get(name)


def get_requirement(name: str) -> Requirement | None:
    """Get requirement by capability name."""
    return REQUIREMENT_MAP.get(name)


def category_rank(category: str) -> int:
    """Position of a category in the fixed report order (unknown categories sort last)."""
    try:
        return CATEGORY_ORDER.index(category)
    except ValueError:
        return len(CATEGORY_ORDER)
