"""Tests for the synchronous entry points and DNS helpers."""
import socket
from unittest.mock import AsyncMock, patch

import pytest

from netdiag.core import diagnostics
from netdiag.core.errors import DnsResolutionError, InvalidRangeError
from netdiag.modules import dns
from netdiag.modules.base import EchoReply, EchoStatus, HopStatus, PortStatus, Protocol
from netdiag.modules.ping import quick_ping
from netdiag.modules.traceroute import TraceMode, quick_traceroute, simple_traceroute, trace_many


@pytest.fixture
def listener():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    yield sock.getsockname()[1]
    sock.close()


def test_scan_ports_finds_listener(listener):
    results = diagnostics.scan_ports("127.0.0.1", [listener, listener], timeout_ms=1000)
    assert len(results) == 1
    assert results[0].status == PortStatus.OPEN


def test_scan_range_rejects_inverted_range():
    with pytest.raises(InvalidRangeError):
        diagnostics.scan_range("127.0.0.1", 10, 5)


def test_probe_port(listener):
    result = diagnostics.probe_port("127.0.0.1", listener, protocol=Protocol.TCP, timeout_ms=1000)
    assert result.status == PortStatus.OPEN


def test_tcp_trace(listener):
    with patch("netdiag.modules.traceroute.dns.reverse_lookup", AsyncMock(return_value=None)):
        hops = diagnostics.trace("127.0.0.1", mode=TraceMode.TCP, port=listener, timeout_ms=1000)
    assert hops[0].status == HopStatus.SUCCESS
    assert hops[0].address == "127.0.0.1"


def test_ping_with_patched_sampler():
    with patch("netdiag.modules.ping.LatencySampler._system_echo", AsyncMock(side_effect=OSError("no ping"))):
        report = diagnostics.ping("127.0.0.1", count=2, interval_ms=0)
    assert report.sent_count == 2
    assert report.loss_rate_percent == 100.0


class TestDns:
    """Test DNS helpers."""

    def test_resolve_ip_literal(self):
        assert dns.dns_resolve("127.0.0.1") == ["127.0.0.1"]

    @pytest.mark.asyncio
    async def test_resolve_failure_raises(self):
        with patch("asyncio.base_events.BaseEventLoop.getaddrinfo", AsyncMock(side_effect=socket.gaierror(-2, "Name or service not known"))):
            with pytest.raises(DnsResolutionError) as excinfo:
                await dns.resolve("nonexistent.invalid")
        assert excinfo.value.host == "nonexistent.invalid"

    def test_sync_resolve_failure_is_empty(self):
        with patch("netdiag.modules.dns.resolve", AsyncMock(side_effect=DnsResolutionError("x"))):
            assert dns.dns_resolve("x") == []

    @pytest.mark.asyncio
    async def test_reverse_lookup_of_placeholder(self):
        assert await dns.reverse_lookup("*") is None
        assert await dns.reverse_lookup("") is None

    def test_sync_reverse_lookup_of_placeholder(self):
        assert dns.reverse_dns_lookup("*") is None


class TestConvenienceHelpers:
    """Module-level helpers built on the system echo, with the echo patched out."""

    @pytest.fixture
    def reached(self):
        reply = EchoReply(status=EchoStatus.SUCCESS, address="127.0.0.1", round_trip_millis=3)
        with patch("netdiag.modules.traceroute.HopDiscovery._system_echo", AsyncMock(return_value=reply)), \
                patch("netdiag.modules.traceroute.dns.reverse_lookup", AsyncMock(return_value=None)):
            yield

    @pytest.mark.asyncio
    async def test_simple_traceroute(self, reached):
        assert await simple_traceroute("127.0.0.1") == "Hop 1: Success 127.0.0.1\n"

    @pytest.mark.asyncio
    async def test_quick_traceroute(self, reached):
        assert await quick_traceroute("127.0.0.1") == (3.0, 3)

    @pytest.mark.asyncio
    async def test_trace_many(self, reached):
        traces = await trace_many(["127.0.0.1", "127.0.0.1"])
        assert list(traces) == ["127.0.0.1"]
        assert traces["127.0.0.1"][0].status == HopStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_quick_ping(self):
        reply = EchoReply(status=EchoStatus.SUCCESS, address="127.0.0.1", round_trip_millis=2)
        with patch("netdiag.modules.ping.LatencySampler._system_echo", AsyncMock(return_value=reply)), \
                patch("netdiag.modules.ping.asyncio.sleep", new_callable=AsyncMock):
            assert await quick_ping("127.0.0.1") == (0.0, 2.0)
