"""
envsetup - Local development environment bootstrap and convergence.

Core Modules:
- Probe: Tool detection, listening ports, host resources
- Resolution: Static requirements and the unmet-requirement diff
- Installation: Per-platform action tables, dry-run plans, re-probe validation
- Scaffold: Idempotent project tree and secret generation
- Verification: Categorized OK/WARNING/ERROR report
"""

__version__ = "1.0.0"

VERSION = __version__

# Probe
from .catalog import (
    CAPABILITIES,
    REQUIREMENTS,
    PORT_CHECKS,
    Capability,
    Requirement,
    PortCheck,
    get_capability,
    get_requirement,
)
from .detection import audit_capability, extract_version_number, find_paths, get_version_line
from .ports import PortState, check_port, listening_ports
from .resources import ResourceState, detect_resources
from .probe import CapabilitySnapshot, CapabilityState, probe

# Foundation
from .environment import Environment, detect_environment
from .config import Config, Preferences, ProjectSettings, load_config, load_config_file
from .logging_config import setup_logging, get_logger

# Resolution
from .diff import diff
from .resolver import is_satisfied, resolve

# Installation
from .package_managers import PackageManager, get_package_manager
from .install_plan import InstallPlan, InstallStep, format_plans, generate_install_plan
from .platforms import Platform, detect_platform, get_platform
from .installer import InstallError, InstallOutcome, StepResult, execute_step, install, plan_installs

# Scaffold
from .secrets import EntropySourceUnavailableError, generate_key_material, generate_password
from .scaffold import (
    ConvergenceResult,
    Directory,
    EnsureLine,
    GeneratedFile,
    ScaffoldWarning,
    SecretFile,
    TemplateFile,
    converge,
    sort_entries,
)
from .manifest import DESIRED_STATE

# Verification
from .verifier import CheckResult, CheckStatus, VerificationReport, verify

# Operations
from .cleanup import CleanupDeclinedError, cleanup
from .infra import InfraError, run_infra

__all__ = [
    "__version__",
    "VERSION",
    # Probe
    "CAPABILITIES",
    "REQUIREMENTS",
    "PORT_CHECKS",
    "Capability",
    "Requirement",
    "PortCheck",
    "get_capability",
    "get_requirement",
    "audit_capability",
    "extract_version_number",
    "find_paths",
    "get_version_line",
    "PortState",
    "check_port",
    "listening_ports",
    "ResourceState",
    "detect_resources",
    "CapabilitySnapshot",
    "CapabilityState",
    "probe",
    # Foundation
    "Environment",
    "detect_environment",
    "Config",
    "Preferences",
    "ProjectSettings",
    "load_config",
    "load_config_file",
    "setup_logging",
    "get_logger",
    # Resolution
    "diff",
    "is_satisfied",
    "resolve",
    # Installation
    "PackageManager",
    "get_package_manager",
    "InstallPlan",
    "InstallStep",
    "format_plans",
    "generate_install_plan",
    "Platform",
    "detect_platform",
    "get_platform",
    "InstallError",
    "InstallOutcome",
    "StepResult",
    "execute_step",
    "install",
    "plan_installs",
    # Scaffold
    "EntropySourceUnavailableError",
    "generate_key_material",
    "generate_password",
    "ConvergenceResult",
    "Directory",
    "EnsureLine",
    "GeneratedFile",
    "ScaffoldWarning",
    "SecretFile",
    "TemplateFile",
    "converge",
    "sort_entries",
    "DESIRED_STATE",
    # Verification
    "CheckResult",
    "CheckStatus",
    "VerificationReport",
    "verify",
    # Operations
    "CleanupDeclinedError",
    "cleanup",
    "InfraError",
    "run_infra",
]
