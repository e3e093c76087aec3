"""
Synchronous entry points over the async diagnostic modules.

Each call runs its own event loop, takes every setting as an explicit
parameter and returns the collected results.
"""

import asyncio
from typing import Iterable, List, Mapping, Optional

from netdiag.modules.base import HopRecord, PingReport, ProbeResult, ProbeTarget, Protocol, UrlResult
from netdiag.modules.ping import LatencySampler
from netdiag.modules.ports import ScanSession
from netdiag.modules.probe import probe
from netdiag.modules.services import ServiceTable
from netdiag.modules.traceroute import HopDiscovery, TraceMode
from netdiag.modules.urls import UrlChecker


def scan_range(
    host: str,
    start_port: int,
    end_port: int,
    timeout_ms: int = 500,
    max_concurrency: int = 50,
    protocol: Protocol = Protocol.TCP,
    services: Optional[ServiceTable] = None,
) -> List[ProbeResult]:
    """Scan ``start_port..end_port`` on ``host``; results sorted by port."""
    session = ScanSession(
        host,
        start_port=start_port,
        end_port=end_port,
        timeout_ms=timeout_ms,
        max_concurrency=max_concurrency,
        protocol=protocol,
        services=services,
    )
    return asyncio.run(session.scan())


def scan_ports(
    host: str,
    ports: Iterable[int],
    timeout_ms: int = 500,
    max_concurrency: int = 50,
    protocol: Protocol = Protocol.TCP,
    services: Optional[ServiceTable] = None,
) -> List[ProbeResult]:
    """Scan an explicit port list on ``host``; results sorted by port."""
    session = ScanSession(
        host,
        timeout_ms=timeout_ms,
        max_concurrency=max_concurrency,
        protocol=protocol,
        services=services,
    )
    return asyncio.run(session.scan_ports(list(ports)))


def probe_port(
    host: str,
    port: Optional[int] = None,
    protocol: Protocol = Protocol.TCP,
    timeout_ms: int = 500,
    payload: Optional[bytes] = None,
    services: Optional[ServiceTable] = None,
) -> ProbeResult:
    """Single probe of any protocol."""
    target = ProbeTarget(host=host, port=port, protocol=protocol)
    return asyncio.run(probe(target, timeout_ms, payload=payload, services=services))


def trace(
    host: str,
    mode: TraceMode = TraceMode.ICMP,
    port: int = 80,
    max_hops: int = 30,
    timeout_ms: int = 3000,
    retry_per_hop: int = 3,
) -> List[HopRecord]:
    """Discover the route to ``host``."""
    discovery = HopDiscovery(
        host,
        port=port,
        max_hops=max_hops,
        timeout_ms=timeout_ms,
        retry_per_hop=retry_per_hop,
    )
    return asyncio.run(discovery.trace(mode))


def ping(
    host: str,
    count: int = 4,
    timeout_ms: int = 1000,
    payload_size: int = 32,
    interval_ms: int = 200,
) -> PingReport:
    """Ping ``host`` ``count`` times and return the aggregated report."""
    sampler = LatencySampler(interval_ms=interval_ms)
    return asyncio.run(sampler.sample(host, count=count, timeout_ms=timeout_ms, payload_size=payload_size))


def check_urls(
    urls: Iterable[str],
    timeout_ms: int = 5000,
    max_concurrency: int = 10,
    method: str = "GET",
    headers: Optional[Mapping[str, str]] = None,
    proxy: Optional[str] = None,
    validate_certificate: bool = True,
) -> List[UrlResult]:
    """Check a batch of URLs; results in completion order."""
    checker = UrlChecker(
        timeout_ms=timeout_ms,
        max_concurrency=max_concurrency,
        method=method,
        headers=headers,
        proxy=proxy,
        validate_certificate=validate_certificate,
    )
    return asyncio.run(checker.check_all(urls))
