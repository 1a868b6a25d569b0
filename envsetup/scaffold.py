"""
Scaffold convergence: bring a project tree to its desired state.

Existing paths are never modified (EnsureLine only appends a missing
line). Secret values generated or read back during a run live in a
run-scoped context that later GeneratedFile entries render against.
"""

from __future__ import annotations

import logging
import os
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Union

from .diff import diff
from .templates import PLACEHOLDER_MARKER

logger = logging.getLogger(__name__)

PLACEHOLDER_SECRET = "placeholder_secret"
MISSING_SECRET_VALUES = "missing_secret_values"
UNREADABLE_FILE = "unreadable_file"

SECRET_FILE_MODE = 0o600


@dataclass(frozen=True)
class Directory:
    """A directory that must exist."""
    path: str


@dataclass(frozen=True)
class TemplateFile:
    """A file with fixed content, written only when missing."""
    path: str
    content: str


@dataclass(frozen=True)
class EnsureLine:
    """A line that must be present in a file; appended when absent."""
    path: str
    line: str


@dataclass(frozen=True)
class SecretFile:
    """
    A file holding generated secrets.

    Attributes:
        path: Path relative to the project root
        template: Template rendered with the generated values
        generators: (name, zero-argument generator) pairs, each called once on creation
    """
    path: str
    template: string.Template
    generators: tuple[tuple[str, Callable[[], str]], ...]

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.generators)


@dataclass(frozen=True)
class GeneratedFile:
    """A file rendered from secret values produced earlier in the same run."""
    path: str
    template: string.Template


DesiredEntry = Union[Directory, TemplateFile, EnsureLine, SecretFile, GeneratedFile]

# Directories first, generated files last
KIND_RANK = {
    Directory: 0,
    TemplateFile: 1,
    EnsureLine: 1,
    SecretFile: 2,
    GeneratedFile: 3,
}


@dataclass(frozen=True)
class ScaffoldWarning:
    """
    A non-fatal finding from convergence.

    Attributes:
        issue: Issue code (e.g. "placeholder_secret")
        path: Affected path relative to the root
        message: What was found
        remediation: How to fix it
    """
    issue: str
    path: str
    message: str
    remediation: str = ""

    def to_dict(self) -> dict:
        return {
            "issue": self.issue,
            "path": self.path,
            "message": self.message,
            "remediation": self.remediation,
        }


def placeholder_secret_detected(path: str) -> ScaffoldWarning:
    return ScaffoldWarning(
        issue=PLACEHOLDER_SECRET,
        path=path,
        message=f"{path} contains {PLACEHOLDER_MARKER} placeholders",
        remediation=f"Regenerate with: rm {path} && envsetup converge",
    )


def unreadable_file_detected(path: str) -> ScaffoldWarning:
    return ScaffoldWarning(
        issue=UNREADABLE_FILE,
        path=path,
        message=f"{path} exists but is not readable UTF-8 text; left unchanged",
        remediation=f"Inspect {path}, or regenerate with: rm -r {path} && envsetup converge",
    )


@dataclass(frozen=True)
class ConvergenceResult:
    """
    Outcome of one convergence run.

    Attributes:
        created: Paths created (or appended to) by this run, in order
        satisfied: Paths that already matched the desired state
        warnings: Findings that need the user's attention
    """
    created: tuple[str, ...] = ()
    satisfied: tuple[str, ...] = ()
    warnings: tuple[ScaffoldWarning, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.created)

    def to_dict(self) -> dict:
        return {
            "created": list(self.created),
            "satisfied": list(self.satisfied),
            "warnings": [w.to_dict() for w in self.warnings],
        }


def sort_entries(desired: Iterable[DesiredEntry]) -> list[DesiredEntry]:
    """Order entries by kind, keeping manifest order within a kind."""
    return sorted(desired, key=lambda entry: KIND_RANK[type(entry)])


def parse_env_values(text: str) -> dict[str, str]:
    """Parse KEY=VALUE lines, skipping blanks and comments."""
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip()
    return values


def _read_text(path: Path) -> str | None:
    """File content, or None when it is missing, a directory or not UTF-8."""
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _has_line(path: Path, line: str) -> bool:
    text = _read_text(path)
    if text is None:
        return False
    return line in (existing.strip() for existing in text.splitlines())


def entry_satisfied(entry: DesiredEntry, root: Path) -> bool:
    """Whether an entry already holds under root."""
    target = root / entry.path
    if isinstance(entry, Directory):
        return target.is_dir()
    if isinstance(entry, EnsureLine):
        # An existing file that cannot be read is left alone and reported
        if target.exists() and _read_text(target) is None:
            return True
        return _has_line(target, entry.line)
    return target.exists()


def pending_entries(desired: Iterable[DesiredEntry], root: str | os.PathLike) -> list[DesiredEntry]:
    """Entries that converge would act on, in application order."""
    root_path = Path(root)
    return diff(sort_entries(desired), lambda entry: entry_satisfied(entry, root_path))


def placeholder_warnings(desired: Iterable[DesiredEntry], root: str | os.PathLike = ".") -> list[ScaffoldWarning]:
    """Warnings for existing secret files that hold placeholders or cannot be read. Read-only."""
    root_path = Path(root)
    warnings = []
    for entry in desired:
        if not isinstance(entry, SecretFile):
            continue
        target = root_path / entry.path
        if not target.exists():
            continue
        content = _read_text(target)
        if content is None:
            warnings.append(unreadable_file_detected(entry.path))
        elif PLACEHOLDER_MARKER in content:
            warnings.append(placeholder_secret_detected(entry.path))
    return warnings


def _write_file(target: Path, content: str, mode: int | None = None) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        f.write(content)
    if mode is not None:
        os.chmod(target, mode)


def _append_line(target: Path, line: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    prefix = ""
    if target.exists():
        existing = target.read_text(encoding="utf-8")
        if existing and not existing.endswith("\n"):
            prefix = "\n"
    with open(target, "a", encoding="utf-8") as f:
        f.write(f"{prefix}{line}\n")


def converge(desired: Iterable[DesiredEntry], root: str | os.PathLike = ".") -> ConvergenceResult:
    """
    Converge the tree under root to the desired entries.

    Idempotent: a second run creates nothing and leaves every byte as it
    was. Write failures propagate; whatever was written before stays.

    Args:
        desired: Desired-state entries
        root: Project root

    Returns:
        ConvergenceResult for this run

    Raises:
        EntropySourceUnavailableError: If secrets cannot be generated
        OSError: If a path cannot be created
    """
    root_path = Path(root)
    ordered = sort_entries(desired)
    missing = set(pending_entries(ordered, root_path))

    context: dict[str, str] = {}
    created: list[str] = []
    satisfied: list[str] = []
    warnings: list[ScaffoldWarning] = []

    for entry in ordered:
        target = root_path / entry.path

        if entry not in missing:
            satisfied.append(entry.path)
            if isinstance(entry, (SecretFile, EnsureLine)):
                content = _read_text(target)
                if content is None:
                    warnings.append(unreadable_file_detected(entry.path))
                elif isinstance(entry, SecretFile):
                    values = parse_env_values(content)
                    context.update({k: values[k] for k in entry.keys if k in values})
                    if PLACEHOLDER_MARKER in content:
                        warnings.append(placeholder_secret_detected(entry.path))
            continue

        if isinstance(entry, Directory):
            target.mkdir(parents=True, exist_ok=True)
        elif isinstance(entry, TemplateFile):
            _write_file(target, entry.content)
        elif isinstance(entry, EnsureLine):
            # An earlier template in this run may already carry the line
            if _has_line(target, entry.line):
                satisfied.append(entry.path)
                continue
            _append_line(target, entry.line)
        elif isinstance(entry, SecretFile):
            values = {name: generate() for name, generate in entry.generators}
            _write_file(target, entry.template.substitute(values), mode=SECRET_FILE_MODE)
            context.update(values)
        elif isinstance(entry, GeneratedFile):
            try:
                content = entry.template.substitute(context)
            except KeyError as e:
                warnings.append(ScaffoldWarning(
                    issue=MISSING_SECRET_VALUES,
                    path=entry.path,
                    message=f"{entry.path} not generated: no value for {e.args[0]}",
                    remediation="Check the secret file for the missing key",
                ))
                continue
            _write_file(target, content, mode=SECRET_FILE_MODE)

        logger.debug("Created %s", entry.path)
        created.append(entry.path)

    return ConvergenceResult(
        created=tuple(created),
        satisfied=tuple(satisfied),
        warnings=tuple(warnings),
    )
