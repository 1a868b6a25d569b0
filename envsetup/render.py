"""
Output rendering and formatting.

The report goes to stdout; summary and hint lines go to stderr so that
the report stays diffable.
"""

import json
import os
import sys
from typing import Any, Iterable, Mapping

from .catalog import CATEGORY_DESC, CATEGORY_ORDER

# Environment options
USE_EMOJI = os.environ.get("ENVSETUP_EMOJI", "1") == "1"
USE_COLOR = os.environ.get("ENVSETUP_COLOR", "1") == "1" and sys.stdout.isatty()

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
RESET = "\033[0m"

STATUS_COLOR = {"OK": GREEN, "WARNING": YELLOW, "ERROR": RED}


def status_icon(status: str) -> str:
    """Get status icon for a check status (OK, WARNING, ERROR)."""
    if not USE_EMOJI:
        return {"OK": "✓", "WARNING": "!", "ERROR": "x"}.get(status, "?")
    return {"OK": "✅", "WARNING": "⚠️", "ERROR": "❌"}.get(status, "❓")


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def render_report(report, show_hints: bool = True, out=None) -> None:
    """Render a VerificationReport grouped by category.

    Args:
        report: VerificationReport
        show_hints: Print remediation under non-OK checks
        out: Output stream (default stdout)
    """
    out = out or sys.stdout
    by_category: dict[str, list] = {}
    for check in report.checks:
        by_category.setdefault(check.category, []).append(check)

    categories = [c for c in CATEGORY_ORDER if c in by_category]
    categories += [c for c in by_category if c not in CATEGORY_ORDER]

    for category in categories:
        print(f"\n{colorize(CATEGORY_DESC.get(category, category.title()), BLUE)}", file=out)
        print("-" * 40, file=out)
        for check in by_category[category]:
            icon = status_icon(check.status)
            print(f"{icon} {colorize(check.message, STATUS_COLOR.get(check.status, ''))}", file=out)
            if show_hints and check.status != "OK" and check.remediation:
                print(f"   → {check.remediation}", file=out)


def print_summary(report) -> None:
    """Print summary line for a VerificationReport."""
    errors = report.count("ERROR")
    warnings = report.count("WARNING")
    ok = report.count("OK")

    if report.status == "OK":
        line = colorize("✅ Environment ready: all checks passed", BOLD_GREEN)
    elif report.status == "WARNING":
        line = colorize(f"⚠️  Environment usable with {warnings} warning(s)", YELLOW)
    else:
        line = colorize(f"❌ {errors} error(s), {warnings} warning(s) must be addressed", RED)

    print(f"\nSummary: {ok} ok, {warnings} warnings, {errors} errors", file=sys.stderr)
    print(line, file=sys.stderr)


def render_snapshot(snapshot) -> None:
    """Print probe results as pipe-delimited rows: icon|name|version|path."""
    for state in snapshot.capabilities.values():
        if not state.present:
            icon, version = status_icon("ERROR"), "not found"
        elif state.version:
            icon, version = status_icon("OK"), state.version
        else:
            icon, version = status_icon("WARNING"), "unknown"
        print("|".join((icon, state.name, version, state.path)))
    for port in snapshot.ports:
        icon = status_icon({"free": "OK", "in_use": "ERROR"}.get(port.state, "WARNING"))
        print("|".join((icon, f"port:{port.port}", port.state, port.technique)))
    res = snapshot.resources
    for name, value, unit in (("ram", res.ram_gb, "GB"), ("cpu", res.cpu_cores, ""), ("disk", res.disk_free_gb, "GB")):
        shown = f"{value}{unit}" if value is not None else "unknown"
        print("|".join((status_icon("OK" if value is not None else "WARNING"), name, shown, "")))


def render_install_outcomes(outcomes: Mapping[str, Any]) -> None:
    """Print one line per install outcome plus its notes."""
    if not outcomes:
        print("Nothing to install.")
        return
    icon_for = {"installed": "OK", "failed": "ERROR", "skipped": "WARNING"}
    for name, outcome in outcomes.items():
        line = f"{status_icon(icon_for.get(outcome.status, ''))} {name}: {outcome.status}"
        if outcome.reason:
            line += f" ({outcome.reason})"
        print(line)
        if outcome.status != "installed" and outcome.remediation:
            print(f"   → {outcome.remediation}")
        for note in outcome.notes:
            print(f"   note: {note}")


def render_convergence(result, next_steps: Iterable[str] = ()) -> None:
    """Print what convergence created and the next steps."""
    if result.created:
        print(colorize(f"Created {len(result.created)} item(s):", GREEN))
        for path in result.created:
            print(f"  • {path}")
    else:
        print(colorize("✓ Everything was already set up", GREEN))
    for warning in result.warnings:
        print(colorize(f"⚠️  {warning.message}", YELLOW))
        if warning.remediation:
            print(f"   → {warning.remediation}")
    steps = list(next_steps)
    if steps:
        print(f"\n{colorize('Next steps:', YELLOW)}")
        for i, step in enumerate(steps, 1):
            print(f"{i}. {step}")


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=False)
