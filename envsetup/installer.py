"""
Installation execution and validation.

Installs only the capabilities the resolver reported unmet, through the
platform's action table, then re-probes to decide what actually worked.
Installs run one at a time; system package managers hold exclusive locks.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .catalog import REQUIREMENTS, Requirement, get_capability
from .common import ANSI_ENV, vlog
from .install_plan import InstallPlan, InstallStep, generate_install_plan
from .platforms import Platform
from .probe import CapabilitySnapshot, probe
from .resolver import resolve

logger = logging.getLogger(__name__)

INSTALLED = "installed"
FAILED = "failed"
SKIPPED = "skipped"

LOGIN_SESSION_HINT = "a new login session may be required"


@dataclass(frozen=True)
class StepResult:
    """
    Result of executing a single installation step.

    Attributes:
        step: The installation step that was executed
        success: Whether the step succeeded
        stdout: Standard output from command execution
        stderr: Standard error from command execution
        exit_code: Process exit code
        duration_seconds: Time taken to execute step
        error_message: Human-readable error message if failed
    """
    step: InstallStep
    success: bool
    stdout: str
    stderr: str
    exit_code: int
    duration_seconds: float
    error_message: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "step": self.step.to_dict(),
            "success": self.success,
            "exit_code": self.exit_code,
            "duration_seconds": self.duration_seconds,
            "error_message": self.error_message,
        }


class InstallError(Exception):
    """
    Installation failure for one capability.

    Attributes:
        message: Human-readable error message
        remediation: Suggested fix for the error
    """
    def __init__(self, message: str, remediation: str | None = None):
        self.message = message
        self.remediation = remediation
        super().__init__(message)


@dataclass(frozen=True)
class InstallOutcome:
    """
    Outcome of one capability's install attempt.

    Attributes:
        capability: Capability name
        status: INSTALLED, FAILED or SKIPPED
        reason: Why it failed or was skipped
        remediation: What the user can do about it
        steps: Results of the steps that ran
        notes: Post-install notes from the platform
    """
    capability: str
    status: str
    reason: str = ""
    remediation: str = ""
    steps: tuple[StepResult, ...] = ()
    notes: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.status == INSTALLED

    @staticmethod
    def from_error(capability: str, status: str, error: InstallError, **kwargs) -> InstallOutcome:
        return InstallOutcome(
            capability=capability,
            status=status,
            reason=error.message,
            remediation=error.remediation or "",
            **kwargs,
        )

    def to_dict(self) -> dict:
        return {
            "capability": self.capability,
            "status": self.status,
            "reason": self.reason,
            "remediation": self.remediation,
            "steps": [s.to_dict() for s in self.steps],
            "notes": list(self.notes),
        }


def execute_step(
    step: InstallStep,
    timeout: int | None = None,
    verbose: bool = False,
) -> StepResult:
    """
    Execute a single installation step.

    Args:
        step: Installation step to execute
        timeout: Command timeout in seconds (None waits indefinitely)
        verbose: Enable verbose logging

    Returns:
        StepResult with execution outcome
    """
    start_time = time.time()
    command = step.argv

    vlog(f"Executing: {' '.join(command)}", verbose)

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            stdin=subprocess.DEVNULL,
            env={**os.environ, **ANSI_ENV},
        )

        duration = time.time() - start_time
        success = result.returncode == 0

        error_msg = None
        if not success:
            error_msg = f"Command failed with exit code {result.returncode}"
            if result.stderr:
                error_msg += f": {result.stderr.strip()[:200]}"

        return StepResult(
            step=step,
            success=success,
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.returncode,
            duration_seconds=duration,
            error_message=error_msg,
        )

    except subprocess.TimeoutExpired:
        return StepResult(
            step=step,
            success=False,
            stdout="",
            stderr="",
            exit_code=-1,
            duration_seconds=time.time() - start_time,
            error_message=f"Command timed out after {timeout}s",
        )
    except FileNotFoundError:
        return StepResult(
            step=step,
            success=False,
            stdout="",
            stderr="",
            exit_code=-1,
            duration_seconds=time.time() - start_time,
            error_message=f"Command not found: {command[0]}",
        )
    except OSError as e:
        return StepResult(
            step=step,
            success=False,
            stdout="",
            stderr="",
            exit_code=-1,
            duration_seconds=time.time() - start_time,
            error_message=f"Unexpected error: {e}",
        )


def order_by_prerequisites(requirements: Iterable[Requirement]) -> list[Requirement]:
    """
    Order requirements so prerequisites come first.

    Ties keep catalog order. Prerequisites outside the given set are
    ignored here; they are checked when the dependent is attempted.
    """
    catalog_rank = {req.capability: i for i, req in enumerate(REQUIREMENTS)}
    pending = sorted(set(requirements), key=lambda r: (catalog_rank.get(r.capability, len(catalog_rank)), r.capability))
    names = {req.capability for req in pending}

    ordered: list[Requirement] = []
    placed: set[str] = set()
    while pending:
        for req in pending:
            if all(dep in placed or dep not in names for dep in req.requires):
                ordered.append(req)
                placed.add(req.capability)
                pending.remove(req)
                break
        else:
            # Cycle; keep remaining in catalog order
            ordered.extend(pending)
            break
    return ordered


def _hint(requirement: Requirement) -> str:
    return requirement.hint or "install manually"


def plan_installs(unmet: Iterable[Requirement], platform: Platform) -> list[InstallPlan]:
    """Installation plans for the auto-installable unmet requirements (dry-run)."""
    plans = []
    for req in order_by_prerequisites(unmet):
        if not req.auto_install:
            continue
        plan = generate_install_plan(req, platform)
        if plan is not None:
            plans.append(plan)
    return plans


def install(
    unmet: Iterable[Requirement],
    platform: Platform,
    probe_fn: Callable[[], CapabilitySnapshot] = probe,
    timeout: int | None = None,
    runner: Callable[..., StepResult] = execute_step,
    verbose: bool = False,
) -> dict[str, InstallOutcome]:
    """
    Install the unmet requirements on a platform.

    Each capability is attempted independently; a failure never stops the
    others. After all attempts the host is re-probed, and a capability is
    INSTALLED only if it is now satisfied.

    Args:
        unmet: Requirements reported unmet by the resolver
        platform: Resolved platform strategy
        probe_fn: Called without arguments to re-probe after installing
        timeout: Per-step timeout (None waits indefinitely)
        runner: Step executor
        verbose: Enable verbose logging

    Returns:
        Capability name -> InstallOutcome, in prerequisite order
    """
    ordered = order_by_prerequisites(unmet)
    unmet_names = {req.capability for req in ordered}
    outcomes: dict[str, InstallOutcome] = {}

    if not platform.supported:
        for req in ordered:
            outcomes[req.capability] = InstallOutcome.from_error(
                req.capability, SKIPPED,
                InstallError(f"unsupported platform ({platform.os_family})", _hint(req)),
            )
        logger.warning("Unsupported platform; skipping %d install(s)", len(ordered))
        return outcomes

    attempted: dict[str, tuple[StepResult, ...]] = {}
    completed_commands: dict[tuple[str, ...], StepResult] = {}
    prepared = False

    for req in ordered:
        name = req.capability
        label = get_capability(name).label if get_capability(name) else name

        if not req.auto_install:
            outcomes[name] = InstallOutcome.from_error(
                name, SKIPPED, InstallError("not installed automatically", _hint(req)),
            )
            continue

        steps = platform.install_steps(name)
        if steps is None:
            outcomes[name] = InstallOutcome.from_error(
                name, FAILED,
                InstallError(f"no install action for {name} on {platform.os_family}; install manually", _hint(req)),
            )
            continue

        missing_deps = [
            dep for dep in req.requires
            if dep in unmet_names and not _attempt_succeeded(attempted.get(dep))
        ]
        if missing_deps:
            outcomes[name] = InstallOutcome.from_error(
                name, SKIPPED,
                InstallError(f"prerequisite unavailable: {', '.join(missing_deps)}", _hint(req)),
            )
            continue

        if not prepared:
            prepared = True
            for prep in platform.prepare_steps():
                result = runner(prep, timeout=timeout, verbose=verbose)
                if not result.success:
                    logger.warning("Preparation step '%s' failed: %s", prep.description, result.error_message)

        logger.info("Installing %s", label)
        results: list[StepResult] = []
        for step in steps:
            result = completed_commands.get(step.command)
            if result is None:
                result = runner(step, timeout=timeout, verbose=verbose)
                if result.success:
                    completed_commands[step.command] = result
            results.append(result)
            if not result.success:
                logger.error("%s: %s", step.description, result.error_message)
                break
        attempted[name] = tuple(results)

    if not attempted:
        return _in_order(ordered, outcomes)

    snapshot = probe_fn()
    still_unmet = {r.capability for r in resolve(snapshot, [r for r in ordered if r.capability in attempted])}

    for req in ordered:
        name = req.capability
        if name not in attempted:
            continue
        results = attempted[name]
        notes = platform.post_install_notes(name)
        if not _attempt_succeeded(results):
            failed = next(r for r in results if not r.success)
            outcomes[name] = InstallOutcome.from_error(
                name, FAILED, InstallError(failed.error_message or "install step failed", _hint(req)),
                steps=results, notes=notes,
            )
        elif name in still_unmet:
            outcomes[name] = InstallOutcome.from_error(
                name, FAILED,
                InstallError(f"install commands succeeded but {name} is still unmet; {LOGIN_SESSION_HINT}",
                             _hint(req)),
                steps=results, notes=notes,
            )
        else:
            state = snapshot.get(name)
            vlog(f"{name} installed: {state.version_line or state.version or 'present'}", verbose)
            outcomes[name] = InstallOutcome(name, INSTALLED, steps=results, notes=notes)

    return _in_order(ordered, outcomes)


def _attempt_succeeded(results: Sequence[StepResult] | None) -> bool:
    return bool(results) and all(r.success for r in results)


def _in_order(ordered: Sequence[Requirement], outcomes: dict[str, InstallOutcome]) -> dict[str, InstallOutcome]:
    return {req.capability: outcomes[req.capability] for req in ordered if req.capability in outcomes}
