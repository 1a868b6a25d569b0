#!/usr/bin/env python3
"""
envsetup - Local development environment bootstrap.

Probes the host, installs missing prerequisites, converges the project
scaffold and verifies the result.

Usage:
    bootstrap.py probe              # Inventory tools, ports and resources
    bootstrap.py install --dry-run  # Show what would be installed
    bootstrap.py converge           # Create missing project files and secrets
    bootstrap.py verify             # Categorized OK/WARNING/ERROR report
    bootstrap.py setup --install    # All of the above
"""

import argparse
import sys

from envsetup.catalog import REQUIREMENTS
from envsetup.cleanup import CleanupDeclinedError, cleanup
from envsetup.config import Config, load_config
from envsetup.environment import detect_environment
from envsetup.infra import ACTIONS, InfraError, run_infra
from envsetup.install_plan import OUTPUT_FORMATS, format_plans
from envsetup.installer import FAILED, install, plan_installs
from envsetup.logging_config import get_logger, setup_logging
from envsetup.manifest import DESIRED_STATE
from envsetup.platforms import detect_platform
from envsetup.probe import probe
from envsetup.render import (
    print_summary,
    render_convergence,
    render_install_outcomes,
    render_report,
    render_snapshot,
    to_json,
)
from envsetup.resolver import resolve
from envsetup.scaffold import converge, placeholder_warnings
from envsetup.secrets import EntropySourceUnavailableError
from envsetup.verifier import VerificationReport, verify

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_FATAL = 2

NEXT_STEPS = (
    "Ensure Docker is running (macOS: open -a Docker)",
    "Start infrastructure: envsetup infra up",
    "Verify services are running: envsetup infra status",
)


def _root(args: argparse.Namespace, config: Config) -> str:
    return args.root or config.project.root


def _probe_fn(args: argparse.Namespace, config: Config, os_family: str):
    return lambda: probe(config=config, os_family=os_family, verbose=args.verbose)


def _report_exit(report: VerificationReport) -> int:
    return EXIT_OK if report.passed else EXIT_ERRORS


def _emit_report(report: VerificationReport, as_json: bool) -> None:
    if as_json:
        print(to_json(report.to_dict()))
        return
    render_report(report)
    print_summary(report)


def cmd_probe(args: argparse.Namespace, config: Config) -> int:
    """Inventory the host without judging it."""
    env = detect_environment(args.verbose)
    snapshot = probe(config=config, os_family=env.os_family, verbose=args.verbose)
    if args.json:
        print(to_json(snapshot.to_dict()))
    else:
        print(f"# {env}", file=sys.stderr)
        render_snapshot(snapshot)
    return EXIT_OK


def cmd_install(args: argparse.Namespace, config: Config) -> int:
    """Install the unmet requirements (or print the plan)."""
    env = detect_environment(args.verbose)
    platform = detect_platform(env, args.verbose)
    probe_fn = _probe_fn(args, config, env.os_family)

    unmet = resolve(probe_fn(), REQUIREMENTS)

    if args.dry_run:
        plans = plan_installs(unmet, platform)
        prepare = platform.prepare_steps() if plans else ()
        print(format_plans(plans, prepare, args.format))
        return EXIT_OK

    print("=" * 80, file=sys.stderr)
    print(f"Install Mode ({env.os_family})", file=sys.stderr)
    print("=" * 80, file=sys.stderr)

    outcomes = install(
        unmet,
        platform,
        probe_fn=probe_fn,
        timeout=config.preferences.install_timeout_seconds,
        verbose=args.verbose,
    )
    render_install_outcomes(outcomes)
    if not platform.supported and any(not req.optional for req in unmet):
        print(f"✗ Unsupported platform ({env.os_family}); install the missing tools manually", file=sys.stderr)
        return EXIT_ERRORS
    return EXIT_ERRORS if any(o.status == FAILED for o in outcomes.values()) else EXIT_OK


def cmd_converge(args: argparse.Namespace, config: Config) -> int:
    """Create whatever part of the project scaffold is missing."""
    result = converge(DESIRED_STATE, _root(args, config))
    render_convergence(result, NEXT_STEPS if result.changed else ())
    return EXIT_OK


def cmd_verify(args: argparse.Namespace, config: Config) -> int:
    """Re-probe and print the categorized report."""
    env = detect_environment(args.verbose)
    report = verify(
        REQUIREMENTS,
        probe_fn=_probe_fn(args, config, env.os_family),
        scaffold_warnings=placeholder_warnings(DESIRED_STATE, _root(args, config)),
    )
    _emit_report(report, args.json)
    return _report_exit(report)


def cmd_setup(args: argparse.Namespace, config: Config) -> int:
    """Probe, optionally install, converge, then verify."""
    logger = get_logger()
    env = detect_environment(args.verbose)
    probe_fn = _probe_fn(args, config, env.os_family)

    logger.info("Probing %s", env)
    unmet = resolve(probe_fn(), REQUIREMENTS)

    if args.install and unmet:
        platform = detect_platform(env, args.verbose)
        outcomes = install(
            unmet,
            platform,
            probe_fn=probe_fn,
            timeout=config.preferences.install_timeout_seconds,
            verbose=args.verbose,
        )
        render_install_outcomes(outcomes)
    elif unmet:
        logger.info("%d requirement(s) unmet; re-run with --install to install them", len(unmet))

    result = converge(DESIRED_STATE, _root(args, config))
    render_convergence(result)

    report = verify(REQUIREMENTS, probe_fn=probe_fn, scaffold_warnings=result.warnings)
    _emit_report(report, args.json)
    if report.passed:
        print("\nNext steps:", file=sys.stderr)
        for i, step in enumerate(NEXT_STEPS, 1):
            print(f"{i}. {step}", file=sys.stderr)
    return _report_exit(report)


def cmd_cleanup(args: argparse.Namespace, config: Config) -> int:
    """Remove platform Docker resources and generated secret files."""
    print("⚠️  WARNING: This will remove:", file=sys.stderr)
    print("  • All Docker containers, volumes and networks of the platform", file=sys.stderr)
    print("  • Generated .env and credential files", file=sys.stderr)
    print("This action cannot be undone!", file=sys.stderr)

    result = cleanup(
        root=_root(args, config),
        confirm=args.confirm,
        compose_file=config.project.compose_file,
        timeout=config.preferences.install_timeout_seconds,
    )
    for label, items in (("files", result.files), ("containers", result.containers),
                         ("volumes", result.volumes), ("networks", result.networks)):
        if items:
            print(f"✓ Removed {label}: {', '.join(items)}")
    print("✅ Cleanup complete. Run 'envsetup converge' to start fresh.")
    return EXIT_OK


def cmd_infra(args: argparse.Namespace, config: Config) -> int:
    """Delegate to docker compose."""
    try:
        return run_infra(args.action, _root(args, config), config.project.compose_file, args.verbose)
    except InfraError as e:
        print(f"✗ {e.message}", file=sys.stderr)
        if e.remediation:
            print(f"  {e.remediation}", file=sys.stderr)
        return EXIT_ERRORS


COMMANDS = {
    "probe": cmd_probe,
    "install": cmd_install,
    "converge": cmd_converge,
    "verify": cmd_verify,
    "setup": cmd_setup,
    "cleanup": cmd_cleanup,
    "infra": cmd_infra,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envsetup",
        description="Local development environment bootstrap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to a configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only warnings and errors on the console")
    parser.add_argument("--log-file", help="Also write a DEBUG log to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("probe", help="Inventory installed tools, ports and resources")
    p.add_argument("--json", action="store_true", help="JSON output")

    p = sub.add_parser("install", help="Install missing prerequisites")
    p.add_argument("--dry-run", action="store_true", help="Show the plan without executing it")
    p.add_argument("--format", choices=OUTPUT_FORMATS, default="table", help="Dry-run output format")

    p = sub.add_parser("converge", help="Create missing project files and secrets")
    p.add_argument("--root", help="Project root (default: config project.root)")

    p = sub.add_parser("verify", help="Verify the environment")
    p.add_argument("--root", help="Project root (default: config project.root)")
    p.add_argument("--json", action="store_true", help="JSON output")

    p = sub.add_parser("setup", help="Probe, install (optional), converge and verify")
    p.add_argument("--install", action="store_true", help="Install missing prerequisites")
    p.add_argument("--root", help="Project root (default: config project.root)")
    p.add_argument("--json", action="store_true", help="JSON report")

    p = sub.add_parser("cleanup", help="Remove Docker resources and generated secrets (DESTRUCTIVE)")
    p.add_argument("--confirm", help="Confirmation phrase; prompted for when omitted")
    p.add_argument("--root", help="Project root (default: config project.root)")

    p = sub.add_parser("infra", help="Start, stop or inspect infrastructure via docker compose")
    p.add_argument("action", choices=tuple(ACTIONS))
    p.add_argument("--root", help="Project root (default: config project.root)")

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        config = load_config(args.config, verbose=args.verbose)
    except ValueError as e:
        print(f"✗ Invalid configuration: {e}", file=sys.stderr)
        return EXIT_FATAL

    try:
        return COMMANDS[args.command](args, config)
    except EntropySourceUnavailableError as e:
        print(f"✗ {e}", file=sys.stderr)
        return EXIT_FATAL
    except CleanupDeclinedError as e:
        print(f"✗ {e}", file=sys.stderr)
        return EXIT_FATAL
    except OSError as e:
        print(f"✗ {e}", file=sys.stderr)
        return EXIT_ERRORS


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
