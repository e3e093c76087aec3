"""Tests for the command-line interface."""
import csv
import json
import socket

import pytest
from rich.console import Console
from typer.testing import CliRunner

from netdiag.__version__ import __version__
from netdiag.cli.formatters import format_hops, format_scan_results
from netdiag.cli.main import app
from netdiag.modules.base import HopRecord, HopStatus, PortStatus, ProbeResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run from an empty directory so no local config file is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def listener():
    """A loopback TCP socket in listen state; the kernel completes handshakes."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    yield sock.getsockname()[1]
    sock.close()


def test_version(runner):
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


class TestServicesCommand:
    """Test `netdiag services`."""

    def test_lookup_port(self, runner, workdir):
        result = runner.invoke(app, ["services", "--port", "22", "-o", str(workdir / "out")])
        assert result.exit_code == 0
        assert "22: SSH" in result.output

    def test_lookup_unknown_port(self, runner, workdir):
        result = runner.invoke(app, ["services", "--port", "5040", "-o", str(workdir / "out")])
        assert result.exit_code == 0
        assert "5040: Unknown" in result.output

    def test_lookup_name(self, runner, workdir):
        result = runner.invoke(app, ["services", "--name", "https", "-o", str(workdir / "out")])
        assert result.exit_code == 0
        assert "443" in result.output

    def test_config_file_services(self, runner, workdir):
        (workdir / ".netdiag.yaml").write_text("services:\n  8888: Jupyter\n")
        result = runner.invoke(app, ["services", "--port", "8888", "-o", str(workdir / "out")])
        assert result.exit_code == 0
        assert "8888: Jupyter" in result.output


class TestScanCommand:
    """Test `netdiag scan`."""

    def test_invalid_range_exits_2(self, runner, workdir):
        result = runner.invoke(app, ["scan", "127.0.0.1", "-p", "100-10", "-o", str(workdir / "out")])
        assert result.exit_code == 2

    def test_bad_port_entry_exits_2(self, runner, workdir):
        result = runner.invoke(app, ["scan", "127.0.0.1", "-p", "ssh", "-o", str(workdir / "out")])
        assert result.exit_code == 2

    def test_scan_writes_results(self, runner, workdir, listener):
        out = workdir / "out"
        result = runner.invoke(
            app,
            ["scan", "127.0.0.1", "-p", str(listener), "-t", "1000", "-o", str(out), "-f", "json"],
        )
        assert result.exit_code == 0

        run_dirs = list(out.glob("*_port_scan"))
        assert len(run_dirs) == 1
        with open(run_dirs[0] / "results.csv", newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["Port"] == str(listener)
        assert rows[0]["Status"] == "Open"

        data = json.loads((run_dirs[0] / "results.json").read_text())
        assert data[0]["port"] == listener
        metadata = json.loads((run_dirs[0] / "metadata.json").read_text())
        assert metadata["target"] == "127.0.0.1"
        assert metadata["protocol"] == "TCP"


class TestArgumentErrors:
    """Commands reject malformed arguments with exit code 2."""

    def test_probe_tcp_without_port(self, runner, workdir):
        result = runner.invoke(app, ["probe", "127.0.0.1", "-o", str(workdir / "out")])
        assert result.exit_code == 2

    def test_probe_unknown_protocol(self, runner, workdir):
        result = runner.invoke(app, ["probe", "127.0.0.1", "80", "-P", "sctp", "-o", str(workdir / "out")])
        assert result.exit_code == 2

    def test_trace_unknown_mode(self, runner, workdir):
        result = runner.invoke(app, ["trace", "127.0.0.1", "-m", "udp", "-o", str(workdir / "out")])
        assert result.exit_code == 2

    def test_check_urls_without_urls(self, runner, workdir):
        result = runner.invoke(app, ["check-urls", "-o", str(workdir / "out")])
        assert result.exit_code == 2

    def test_check_urls_bad_header(self, runner, workdir):
        result = runner.invoke(
            app, ["check-urls", "http://127.0.0.1", "-H", "no-colon", "-o", str(workdir / "out")]
        )
        assert result.exit_code == 2


class TestFormatters:
    """Rendering does not choke on markup-like text."""

    def test_scan_results_with_brackets(self):
        console = Console(record=True, width=120)
        results = [
            ProbeResult(port=80, status=PortStatus.OPEN, service_name="HTTP"),
            ProbeResult(port=81, status=PortStatus.ERROR, error_message="[Errno 99] Cannot assign"),
        ]
        format_scan_results("127.0.0.1", results, console, show_all=True)
        text = console.export_text()
        assert "[Errno 99] Cannot assign" in text
        assert "Port Scan Results" in text

    def test_hops(self):
        console = Console(record=True, width=120)
        hops = [
            HopRecord(hop_index=1, address="192.168.1.1", hostname="[router]", status=HopStatus.TTL_EXPIRED, round_trip_millis=1),
            HopRecord(hop_index=2, address="93.184.216.34", status=HopStatus.SUCCESS, round_trip_millis=9),
        ]
        format_hops("example.com", hops, console)
        text = console.export_text()
        assert "93.184.216.34" in text
        assert "reached" in text
