"""Tests for CSV/JSON result export."""
import csv
import json

import pytest

from netdiag.modules.base import HopRecord, HopStatus, PortStatus, ProbeResult
from netdiag.storage.csv_handler import HOP_FIELDNAMES, SCAN_FIELDNAMES, CSVHandler
from netdiag.storage.exporters import (
    export_hops,
    export_scan_results,
    load_hops,
    load_scan_results,
    try_export_hops,
    try_export_scan_results,
)
from netdiag.storage.json_handler import JSONHandler


@pytest.fixture
def scan_results():
    return [
        ProbeResult(port=22, status=PortStatus.OPEN, service_name="SSH", elapsed_millis=3),
        ProbeResult(
            port=23,
            status=PortStatus.CLOSED,
            service_name="Telnet",
            error_message="Connection refused",
            elapsed_millis=1,
        ),
    ]


@pytest.fixture
def hops():
    return [
        HopRecord(hop_index=1, address="192.168.1.1", hostname="router.lan", status=HopStatus.TTL_EXPIRED, round_trip_millis=2),
        HopRecord(hop_index=2, status=HopStatus.TIMEOUT),
        HopRecord(hop_index=3, address="93.184.216.34", status=HopStatus.SUCCESS, round_trip_millis=12),
    ]


class TestScanExport:
    """Test port scan export."""

    def test_csv_header_and_rows(self, tmp_path, scan_results):
        path = tmp_path / "results.csv"
        assert export_scan_results(path, scan_results) == 2

        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == SCAN_FIELDNAMES
        assert rows[1] == ["22", "Open", "SSH", "3", ""]
        assert rows[2] == ["23", "Closed", "Telnet", "1", "Connection refused"]

    def test_csv_round_trip(self, tmp_path, scan_results):
        path = tmp_path / "results.csv"
        export_scan_results(path, scan_results)
        assert load_scan_results(path) == scan_results

    def test_json_uses_camel_case(self, tmp_path, scan_results):
        path = tmp_path / "results.json"
        export_scan_results(path, scan_results)
        data = json.loads(path.read_text())
        assert data[0] == {
            "port": 22,
            "status": "Open",
            "serviceName": "SSH",
            "errorMessage": None,
            "elapsedMillis": 3,
        }
        assert load_scan_results(path) == scan_results

    def test_empty_export_writes_header_only(self, tmp_path):
        path = tmp_path / "nested" / "results.csv"
        assert export_scan_results(path, []) == 0
        assert path.read_text(encoding="utf-8").strip() == ",".join(SCAN_FIELDNAMES)

    def test_missing_file_loads_empty(self, tmp_path):
        assert CSVHandler(tmp_path / "absent.csv").read_scan_results() == []
        assert JSONHandler(tmp_path / "absent.json").read(ProbeResult) == []


class TestHopExport:
    """Test hop trace export."""

    def test_csv_header_and_blank_rtt(self, tmp_path, hops):
        path = tmp_path / "hops.csv"
        export_hops(path, hops)
        with open(path, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0] == HOP_FIELDNAMES
        assert rows[1] == ["1", "192.168.1.1", "router.lan", "TtlExpired", "2"]
        assert rows[2] == ["2", "*", "", "Timeout", ""]

    def test_csv_round_trip(self, tmp_path, hops):
        path = tmp_path / "hops.csv"
        export_hops(path, hops)
        loaded = load_hops(path)
        assert [h.hop_index for h in loaded] == [1, 2, 3]
        assert loaded[1].round_trip_millis is None
        assert loaded[0].hostname == "router.lan"
        assert loaded[2].status == HopStatus.SUCCESS

    def test_json_includes_is_private(self, tmp_path, hops):
        path = tmp_path / "hops.json"
        export_hops(path, hops)
        data = json.loads(path.read_text())
        assert data[0]["hopIndex"] == 1
        assert data[0]["isPrivate"] is True
        assert data[2]["isPrivate"] is False
        assert load_hops(path) == hops


class TestSafeExport:
    """Test the non-raising export variants."""

    def test_success(self, tmp_path, scan_results, hops):
        assert try_export_scan_results(tmp_path / "r.csv", scan_results) == (True, None)
        assert try_export_hops(tmp_path / "h.json", hops) == (True, None)

    def test_unwritable_path(self, tmp_path, scan_results, hops):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        ok, error = try_export_scan_results(blocker / "r.csv", scan_results)
        assert ok is False
        assert error

        ok, error = try_export_hops(blocker / "h.csv", hops)
        assert ok is False
        assert error
