"""
Tests for listening-port detection (envsetup/ports.py).
"""

from unittest.mock import MagicMock, patch

from envsetup.catalog import PortCheck
from envsetup.ports import (
    LINUX_TECHNIQUES,
    MACOS_TECHNIQUES,
    PORT_FREE,
    PORT_IN_USE,
    PORT_UNKNOWN,
    classify_port,
    listening_ports,
    listeners_from_lsof,
    listeners_from_ss,
    parse_lsof,
    parse_proc_net_tcp,
    parse_socket_listing,
    techniques_for,
)

PROC_TCP = """\
  sl  local_address rem_address   st tx_queue rx_queue tr tm->when retrnsmt   uid  timeout inode
   0: 00000000:1538 00000000:0000 0A 00000000:00000000 00:00000000 00000000   999        0 12345 1
   1: 0100007F:1F90 0100007F:C350 01 00000000:00000000 00:00000000 00000000  1000        0 23456 1
"""

PROC_TCP6 = """\
  sl  local_address                         remote_address                        st tx_queue rx_queue
   0: 00000000000000000000000000000000:18EB 00000000000000000000000000000000:0000 0A 00000000:00000000
"""

SS_OUTPUT = """\
State  Recv-Q Send-Q Local Address:Port  Peer Address:Port Process
LISTEN 0      244        127.0.0.1:5432       0.0.0.0:*
LISTEN 0      4096            [::]:8080          [::]:*
"""

NETSTAT_OUTPUT = """\
Active Internet connections (only servers)
Proto Recv-Q Send-Q Local Address           Foreign Address         State
tcp        0      0 0.0.0.0:6379            0.0.0.0:*               LISTEN
"""

BSD_NETSTAT_OUTPUT = """\
Active Internet connections (including servers)
Proto Recv-Q Send-Q  Local Address          Foreign Address        (state)
tcp4       0      0  *.3000                 *.*                    LISTEN
tcp4       0      0  127.0.0.1.5432         *.*                    LISTEN
tcp4       0      0  192.168.1.2.52100      140.82.112.3.443       ESTABLISHED
"""

LSOF_OUTPUT = """\
COMMAND   PID USER   FD   TYPE DEVICE SIZE/OFF NODE NAME
postgres  123 me    7u  IPv4 0x1      0t0  TCP 127.0.0.1:5432 (LISTEN)
node      456 me   20u  IPv6 0x2      0t0  TCP *:3000 (LISTEN)
"""


class TestParsers:
    """Tests for the per-technique output parsers."""

    def test_proc_net_tcp_only_listen_state(self):
        assert parse_proc_net_tcp(PROC_TCP) == {5432}

    def test_proc_net_tcp6(self):
        assert parse_proc_net_tcp(PROC_TCP6) == {6379}

    def test_ss(self):
        assert parse_socket_listing(SS_OUTPUT) == {5432, 8080}

    def test_netstat_linux(self):
        assert parse_socket_listing(NETSTAT_OUTPUT, require_listen=True) == {6379}

    def test_netstat_bsd(self):
        assert parse_socket_listing(BSD_NETSTAT_OUTPUT, sep=".", require_listen=True) == {3000, 5432}

    def test_lsof(self):
        assert parse_lsof(LSOF_OUTPUT) == {5432, 3000}

    def test_empty_output(self):
        assert parse_socket_listing("") == set()
        assert parse_lsof("") == set()


class TestTechniques:
    """Tests for technique availability and ordering."""

    def test_linux_order(self):
        assert [name for name, _ in techniques_for("linux")] == ["proc", "ss", "netstat", "lsof"]
        assert techniques_for("linux") is LINUX_TECHNIQUES

    def test_macos_order(self):
        assert [name for name, _ in techniques_for("darwin")] == ["lsof", "netstat"]
        assert techniques_for("darwin") is MACOS_TECHNIQUES

    def test_other_systems_have_none(self):
        assert techniques_for("win32") == ()

    @patch("envsetup.ports.shutil.which", return_value=None)
    def test_missing_binary_is_unavailable(self, mock_which):
        assert listeners_from_ss() is None

    @patch("envsetup.ports.run_quiet")
    @patch("envsetup.ports.shutil.which", return_value="/usr/sbin/ss")
    def test_failed_command_is_unavailable(self, mock_which, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        assert listeners_from_ss() is None

    @patch("envsetup.ports.run_quiet")
    @patch("envsetup.ports.shutil.which", return_value="/usr/sbin/lsof")
    def test_lsof_no_matches_is_empty_set(self, mock_which, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="")
        assert listeners_from_lsof() == set()


class TestListeningPorts:
    """Tests for first-working-technique selection."""

    def test_first_available_technique_decides(self):
        techniques = (("a", lambda t: None), ("b", lambda t: {5432}), ("c", lambda t: {1}))
        with patch("envsetup.ports.techniques_for", return_value=techniques):
            assert listening_ports("linux") == ({5432}, "b")

    def test_no_technique_available(self):
        with patch("envsetup.ports.techniques_for", return_value=(("a", lambda t: None),)):
            assert listening_ports("linux") == (None, "")

    def test_technique_error_falls_through(self):
        def broken(timeout):
            raise PermissionError("denied")

        techniques = (("a", broken), ("b", lambda t: set()))
        with patch("envsetup.ports.techniques_for", return_value=techniques):
            assert listening_ports("linux") == (set(), "b")


class TestClassifyPort:
    """Tests for port classification."""

    def test_in_use(self):
        state = classify_port(PortCheck(5432, "PostgreSQL"), {5432}, "ss")
        assert state.state == PORT_IN_USE
        assert state.technique == "ss"

    def test_free(self):
        assert classify_port(PortCheck(6379, "Redis"), {5432}, "ss").state == PORT_FREE

    def test_unknown(self):
        state = classify_port(PortCheck(6379, "Redis"), None)
        assert state.state == PORT_UNKNOWN
        assert state.technique == ""

    def test_to_dict(self):
        data = classify_port(PortCheck(3000, "Grafana"), set(), "proc").to_dict()
        assert data == {"port": 3000, "label": "Grafana", "state": "free", "technique": "proc"}
