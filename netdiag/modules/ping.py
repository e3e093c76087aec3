"""
Latency sampling (ping).
"""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from netdiag.core.errors import InvalidArgumentError
from netdiag.modules.base import EchoReply, EchoStatus, PingReport, PingSample
from netdiag.modules.icmp import IcmpProber

# (host, timeout_ms, payload_size) -> reply
PingEcho = Callable[[str, int, int], Awaitable[EchoReply]]

DEFAULT_PING_HOSTS = ["localhost", "127.0.0.1"]


class LatencySampler:
    """
    Send a fixed number of sequential echoes and aggregate their latency.

    Args:
        echo: Async echo function; defaults to the system ping
        interval_ms: Pause between echoes (not after the last one)
    """

    def __init__(self, echo: Optional[PingEcho] = None, interval_ms: int = 200):
        if interval_ms < 0:
            raise InvalidArgumentError(f"interval_ms must be >= 0, got {interval_ms}")
        self.echo = echo or self._system_echo
        self.interval_ms = interval_ms
        self._prober: Optional[IcmpProber] = None

    async def _system_echo(self, host: str, timeout_ms: int, payload_size: int) -> EchoReply:
        if self._prober is None:
            self._prober = IcmpProber()
        return await self._prober.echo(host, timeout_ms=timeout_ms, payload_size=payload_size)

    async def sample(
        self,
        host: str,
        count: int = 4,
        timeout_ms: int = 1000,
        payload_size: int = 32,
    ) -> PingReport:
        """
        Ping ``host`` ``count`` times.

        Returns:
            PingReport with one sample per echo (lost echoes have no RTT)

        Raises:
            InvalidArgumentError: negative count/timeout or payload out of range
        """
        if count < 0:
            raise InvalidArgumentError(f"count must be >= 0, got {count}")
        if timeout_ms < 0:
            raise InvalidArgumentError(f"timeout_ms must be >= 0, got {timeout_ms}")
        if not 0 <= payload_size <= 65500:
            raise InvalidArgumentError(f"payload_size must be between 0 and 65500, got {payload_size}")

        logger.info(f"Pinging {host} {count} time(s) ({payload_size} bytes, timeout {timeout_ms} ms)")
        samples: List[PingSample] = []
        raw_outputs: List[str] = []

        for sequence in range(count):
            try:
                reply = await self.echo(host, timeout_ms, payload_size)
            except Exception as e:
                logger.warning(f"Ping {host} #{sequence} raised {type(e).__name__}: {e}")
                reply = EchoReply(status=EchoStatus.ERROR, error_message=str(e) or type(e).__name__)

            if reply.status == EchoStatus.SUCCESS:
                samples.append(PingSample(sequence=sequence, round_trip_millis=reply.round_trip_millis or 0))
                ttl = f" TTL={reply.ttl}" if reply.ttl is not None else ""
                raw_outputs.append(f"Reply from {reply.address}: time={reply.round_trip_millis}ms{ttl}")
            elif reply.status == EchoStatus.ERROR:
                samples.append(PingSample(sequence=sequence))
                raw_outputs.append(f"Ping error: {reply.error_message}")
            else:
                samples.append(PingSample(sequence=sequence))
                raw_outputs.append(f"Request timed out ({reply.status.value})")

            if sequence < count - 1 and self.interval_ms:
                await asyncio.sleep(self.interval_ms / 1000.0)

        report = PingReport(host=host, sent_count=count, samples=samples, raw_outputs=raw_outputs)
        logger.info(
            f"Ping {host}: {report.success_count}/{count} replies, "
            f"{report.loss_rate_percent:.1f}% loss"
        )
        return report


def ping_statistics(results: List[Optional[int]]) -> Tuple[int, int, float, Optional[float]]:
    """
    Summarise raw latencies (None for a lost echo).

    Returns:
        (success_count, fail_count, loss_rate_percent, avg_latency)
    """
    latencies = [r for r in results if r is not None]
    success = len(latencies)
    fail = len(results) - success
    loss_rate = fail * 100.0 / len(results) if results else 100.0
    average = sum(latencies) / success if success else None
    return success, fail, loss_rate, average


async def quick_ping(host: str, count: int = 3, timeout_ms: int = 500) -> Tuple[float, Optional[float]]:
    """Returns (loss_rate_percent, avg_latency) for a short run."""
    report = await LatencySampler().sample(host, count=count, timeout_ms=timeout_ms)
    return report.loss_rate_percent, report.avg_latency


def is_fully_reachable(report: PingReport) -> bool:
    """True when every echo was answered."""
    return report.fail_count == 0


async def ping_many(
    hosts: Optional[Iterable[str]] = None,
    count: int = 4,
    timeout_ms: int = 1000,
    sampler: Optional[LatencySampler] = None,
) -> Dict[str, PingReport]:
    """Ping each host in turn; defaults to the loopback names."""
    sampler = sampler or LatencySampler()
    reports: Dict[str, PingReport] = {}
    for host in list(hosts) if hosts is not None else DEFAULT_PING_HOSTS:
        reports[host] = await sampler.sample(host, count=count, timeout_ms=timeout_ms)
    return reports
