"""
Listening-port detection.

Each technique returns the set of TCP ports in LISTEN state, or None when
the technique is unavailable on this host. The first technique that
yields a set decides; if none does, the port state is unknown.
"""

from __future__ import annotations

import os
import shutil
import sys
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .catalog import PortCheck
from .common import run_quiet, vlog

PORT_FREE = "free"
PORT_IN_USE = "in_use"
PORT_UNKNOWN = "unknown"

PROC_NET_TABLES = ("/proc/net/tcp", "/proc/net/tcp6")
TCP_LISTEN_STATE = "0A"

ListenerTechnique = Callable[[Optional[float]], Optional[set]]


@dataclass(frozen=True)
class PortState:
    """
    Observed state of one port.

    Attributes:
        port: TCP port number
        label: Service that expects the port
        state: PORT_FREE, PORT_IN_USE or PORT_UNKNOWN
        technique: Name of the technique that decided, empty when unknown
    """
    port: int
    label: str
    state: str
    technique: str = ""

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "label": self.label,
            "state": self.state,
            "technique": self.technique,
        }


def _port_from_address(address: str, sep: str = ":") -> int | None:
    """Parse the port out of `0.0.0.0:5432`, `[::]:5432`, `*:5432` or `*.5432`."""
    if sep not in address:
        return None
    tail = address.rsplit(sep, 1)[1]
    return int(tail) if tail.isdigit() else None


def parse_proc_net_tcp(text: str) -> set[int]:
    """Parse a /proc/net/tcp{,6} table into listening ports."""
    ports: set[int] = set()
    for line in text.splitlines()[1:]:
        fields = line.split()
        if len(fields) < 4 or fields[3] != TCP_LISTEN_STATE:
            continue
        _, _, port_hex = fields[1].rpartition(":")
        try:
            ports.add(int(port_hex, 16))
        except ValueError:
            continue
    return ports


def parse_socket_listing(text: str, column: int = 3, sep: str = ":", require_listen: bool = False) -> set[int]:
    """Parse `ss -ltn`, `netstat -ltn` or BSD `netstat -an` output.

    Args:
        text: Command output
        column: Index of the local-address column
        sep: Separator between host and port
        require_listen: Only count lines that mention LISTEN
    """
    ports: set[int] = set()
    for line in text.splitlines():
        if require_listen and "LISTEN" not in line:
            continue
        fields = line.split()
        if len(fields) <= column:
            continue
        port = _port_from_address(fields[column], sep)
        if port is not None:
            ports.add(port)
    return ports


def parse_lsof(text: str) -> set[int]:
    """Parse `lsof -nP -iTCP -sTCP:LISTEN` output (NAME column like `*:5432 (LISTEN)`)."""
    ports: set[int] = set()
    for line in text.splitlines()[1:]:
        fields = line.split()
        if len(fields) < 2:
            continue
        name = fields[-2] if fields[-1] == "(LISTEN)" else fields[-1]
        port = _port_from_address(name)
        if port is not None:
            ports.add(port)
    return ports


def listeners_from_proc(timeout: float | None = None) -> set[int] | None:
    found_any = False
    ports: set[int] = set()
    for table in PROC_NET_TABLES:
        if not os.path.exists(table):
            continue
        try:
            with open(table, "r", encoding="ascii", errors="replace") as f:
                ports |= parse_proc_net_tcp(f.read())
            found_any = True
        except OSError:
            continue
    return ports if found_any else None


def _run_listing(args: Sequence[str], timeout: float | None, ok_codes: tuple[int, ...] = (0,)) -> str | None:
    if not shutil.which(args[0]):
        return None
    proc = run_quiet(args, timeout=timeout, merge_stderr=False)
    if proc is None or proc.returncode not in ok_codes:
        return None
    return proc.stdout or ""


def listeners_from_ss(timeout: float | None = None) -> set[int] | None:
    out = _run_listing(["ss", "-ltn"], timeout)
    return None if out is None else parse_socket_listing(out)


def listeners_from_netstat(timeout: float | None = None) -> set[int] | None:
    out = _run_listing(["netstat", "-ltn"], timeout)
    return None if out is None else parse_socket_listing(out, require_listen=True)


def listeners_from_bsd_netstat(timeout: float | None = None) -> set[int] | None:
    out = _run_listing(["netstat", "-an", "-p", "tcp"], timeout)
    return None if out is None else parse_socket_listing(out, sep=".", require_listen=True)


def listeners_from_lsof(timeout: float | None = None) -> set[int] | None:
    # lsof exits 1 when nothing matches
    out = _run_listing(["lsof", "-nP", "-iTCP", "-sTCP:LISTEN"], timeout, ok_codes=(0, 1))
    return None if out is None else parse_lsof(out)


LINUX_TECHNIQUES: tuple[tuple[str, ListenerTechnique], ...] = (
    ("proc", listeners_from_proc),
    ("ss", listeners_from_ss),
    ("netstat", listeners_from_netstat),
    ("lsof", listeners_from_lsof),
)

MACOS_TECHNIQUES: tuple[tuple[str, ListenerTechnique], ...] = (
    ("lsof", listeners_from_lsof),
    ("netstat", listeners_from_bsd_netstat),
)


def techniques_for(system: str | None = None) -> tuple[tuple[str, ListenerTechnique], ...]:
    """Ordered listener techniques for a system name ('linux', 'darwin')."""
    system = system or sys.platform
    if system.startswith("linux"):
        return LINUX_TECHNIQUES
    if system == "darwin":
        return MACOS_TECHNIQUES
    return ()


def listening_ports(
    system: str | None = None,
    timeout: float | None = None,
    verbose: bool = False,
) -> tuple[set[int] | None, str]:
    """
    Collect listening TCP ports with the first technique that works.

    Returns:
        Tuple of (ports or None, technique name)
    """
    for name, technique in techniques_for(system):
        try:
            ports = technique(timeout)
        except OSError as e:
            vlog(f"Port technique {name} failed: {e}", verbose)
            continue
        if ports is not None:
            vlog(f"Port technique {name}: {len(ports)} listeners", verbose)
            return ports, name
    vlog("No port technique available; port states unknown", verbose)
    return None, ""


def classify_port(check: PortCheck, listeners: set[int] | None, technique: str = "") -> PortState:
    """Classify one port against a listener set (None means undetermined)."""
    if listeners is None:
        return PortState(check.port, check.label, PORT_UNKNOWN)
    state = PORT_IN_USE if check.port in listeners else PORT_FREE
    return PortState(check.port, check.label, state, technique)


def check_port(
    check: PortCheck,
    system: str | None = None,
    timeout: float | None = None,
    verbose: bool = False,
) -> PortState:
    """Check a single port independently of any other."""
    listeners, technique = listening_ports(system, timeout, verbose)
    return classify_port(check, listeners, technique)
