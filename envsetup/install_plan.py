"""
Installation plan generation and dry-run mode.

Generates installation plans for unmet requirements without executing them.
Supports serialization to JSON, shell scripts, and human-readable tables.
"""

from __future__ import annotations

import json
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

from .catalog import Requirement, get_capability

if TYPE_CHECKING:
    from .platforms import Platform

OUTPUT_FORMATS = ("table", "json", "script")


@dataclass(frozen=True)
class InstallStep:
    """
    Single step in an installation plan.

    Attributes:
        description: Human-readable description of the step
        command: Command tuple to execute
        requires_sudo: Whether this step requires sudo/root privileges
        estimated_time_seconds: Estimated time for this step
    """
    description: str
    command: tuple[str, ...]
    requires_sudo: bool = False
    estimated_time_seconds: int = 60

    @property
    def argv(self) -> list[str]:
        """Command as executed, with sudo prepended when required."""
        return (["sudo"] if self.requires_sudo else []) + list(self.command)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "description": self.description,
            "command": list(self.command),
            "requires_sudo": self.requires_sudo,
            "estimated_time_seconds": self.estimated_time_seconds,
        }


@dataclass(frozen=True)
class InstallPlan:
    """
    Installation plan for one capability.

    Attributes:
        capability: Capability name
        label: Human-readable tool name
        os_family: Platform the plan targets
        package_manager: Package manager the steps use
        steps: Sequence of installation steps
        dependencies: Capabilities that must be available first
        warnings: Warning messages
        notes: Post-install notes for the user
        estimated_total_time: Total estimated time (seconds)
    """
    capability: str
    label: str
    os_family: str
    package_manager: str
    steps: tuple[InstallStep, ...] = ()
    dependencies: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()
    estimated_total_time: int = 0

    def __post_init__(self):
        """Calculate total estimated time from steps."""
        if self.estimated_total_time == 0 and self.steps:
            total = sum(step.estimated_time_seconds for step in self.steps)
            object.__setattr__(self, "estimated_total_time", total)

    @property
    def requires_sudo(self) -> bool:
        return any(step.requires_sudo for step in self.steps)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "capability": self.capability,
            "label": self.label,
            "os_family": self.os_family,
            "package_manager": self.package_manager,
            "steps": [step.to_dict() for step in self.steps],
            "dependencies": list(self.dependencies),
            "warnings": list(self.warnings),
            "notes": list(self.notes),
            "estimated_total_time": self.estimated_total_time,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def script_lines(self) -> list[str]:
        """Shell lines for this plan, without shebang."""
        lines = [f"# {self.label} ({self.capability}) via {self.package_manager}"]
        for warning in self.warnings:
            lines.append(f"#   warning: {warning}")
        for dep in self.dependencies:
            dep_cap = get_capability(dep)
            binary = dep_cap.candidates[0] if dep_cap and dep_cap.candidates else dep
            lines.append(f'command -v {binary} >/dev/null 2>&1 || {{ echo "Error: {binary} not found"; exit 1; }}')
        for step in self.steps:
            lines.append(f"echo 'Executing: {step.description}...'")
            lines.append(shlex.join(step.argv))
        for note in self.notes:
            lines.append(f"# note: {note}")
        return lines

    def to_script(self, shell: str = "bash") -> str:
        """
        Generate executable shell script.

        Args:
            shell: Shell type (bash, sh, zsh)

        Returns:
            Shell script as string
        """
        return render_script([self], shell=shell)

    def table_lines(self, width: int = 80) -> list[str]:
        lines = [f"{self.label} ({self.capability})", "-" * width]
        lines.append(f"Package Manager:    {self.package_manager}")
        if self.dependencies:
            lines.append(f"Dependencies:       {', '.join(self.dependencies)}")
        lines.append(f"Estimated Time:     {self.estimated_total_time}s")
        for warning in self.warnings:
            lines.append(f"  ⚠️  {warning}")
        for i, step in enumerate(self.steps, 1):
            sudo_marker = " [SUDO]" if step.requires_sudo else ""
            lines.append(f"{i}. {step.description}{sudo_marker}")
            lines.append(f"   Command: {' '.join(step.command)}")
        for note in self.notes:
            lines.append(f"   Note: {note}")
        return lines

    def to_table(self, width: int = 80) -> str:
        """Generate human-readable table representation."""
        return render_table([self], width=width)


def generate_install_plan(requirement: Requirement, platform: Platform) -> InstallPlan | None:
    """
    Generate the installation plan for one requirement on a platform.

    Args:
        requirement: Unmet requirement
        platform: Resolved platform strategy

    Returns:
        InstallPlan, or None when the platform has no action for the capability
    """
    steps = platform.install_steps(requirement.capability)
    if steps is None:
        return None

    capability = get_capability(requirement.capability)
    label = capability.label if capability else requirement.capability
    warnings: list[str] = []
    if any(step.requires_sudo for step in steps):
        warnings.append("This installation requires sudo/root privileges")

    return InstallPlan(
        capability=requirement.capability,
        label=label,
        os_family=platform.os_family,
        package_manager=platform.package_manager_for(requirement.capability),
        steps=tuple(steps),
        dependencies=requirement.requires,
        warnings=tuple(warnings),
        notes=platform.post_install_notes(requirement.capability),
    )


def render_table(plans: Sequence[InstallPlan], prepare: Iterable[InstallStep] = (), width: int = 80) -> str:
    """Render plans as one human-readable table."""
    lines = ["=" * width, "Installation Plan", "=" * width, ""]
    prepare = list(prepare)
    if prepare:
        lines.append("Preparation:")
        for step in prepare:
            sudo_marker = " [SUDO]" if step.requires_sudo else ""
            lines.append(f"  - {step.description}{sudo_marker}: {' '.join(step.command)}")
        lines.append("")
    if not plans:
        lines.append("Nothing to install.")
    for plan in plans:
        lines.extend(plan.table_lines(width))
        lines.append("")
    lines.append("This is a dry-run. No changes will be made.")
    return "\n".join(lines)


def render_script(plans: Sequence[InstallPlan], prepare: Iterable[InstallStep] = (), shell: str = "bash") -> str:
    """Render plans as one executable shell script."""
    if shell == "bash":
        lines = ["#!/bin/bash"]
    elif shell == "zsh":
        lines = ["#!/bin/zsh"]
    else:
        lines = ["#!/bin/sh"]
    lines.append("set -eu")
    lines.append("")

    prepare = list(prepare)
    if prepare:
        lines.append("# Preparation (failures are not fatal)")
        for step in prepare:
            lines.append(f"{shlex.join(step.argv)} || true")
        lines.append("")

    for plan in plans:
        lines.extend(plan.script_lines())
        lines.append("")

    lines.append('echo "Installation steps finished; re-run verification."')
    return "\n".join(lines)


def render_json(plans: Sequence[InstallPlan], prepare: Iterable[InstallStep] = (), indent: int = 2) -> str:
    return json.dumps(
        {
            "prepare": [step.to_dict() for step in prepare],
            "plans": [plan.to_dict() for plan in plans],
        },
        indent=indent,
    )


def format_plans(
    plans: Sequence[InstallPlan],
    prepare: Iterable[InstallStep] = (),
    output_format: str = "table",
) -> str:
    """
    Format dry-run installation plans for output.

    Raises:
        ValueError: If output_format is not one of OUTPUT_FORMATS
    """
    if output_format == "json":
        return render_json(plans, prepare)
    elif output_format == "script":
        return render_script(plans, prepare)
    elif output_format == "table":
        return render_table(plans, prepare)
    else:
        raise ValueError(f"Invalid output format: {output_format}. Must be 'table', 'json', or 'script'")
