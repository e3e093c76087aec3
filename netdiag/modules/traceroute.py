"""
Hop discovery (traceroute).

ICMP mode sends echoes with increasing TTL until the destination answers.
TCP mode makes one plain connect per resolved address and reports it as a
single synthetic hop; it does not manipulate the TTL.
"""

import asyncio
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from netdiag.core.errors import DnsResolutionError, InvalidArgumentError
from netdiag.modules import dns
from netdiag.modules.base import EchoReply, EchoStatus, HopRecord, HopStatus
from netdiag.modules.icmp import IcmpProber
from netdiag.parallel.executor import Deadline

# (address, ttl, timeout_ms) -> reply
EchoFunc = Callable[[str, int, int], Awaitable[EchoReply]]
Resolver = Callable[[str], Awaitable[List[str]]]
ReverseLookup = Callable[[str], Awaitable[Optional[str]]]


class TraceMode(str, Enum):
    """How hops are discovered."""

    ICMP = "ICMP"
    TCP = "TCP"


class HopDiscovery:
    """
    Discover the route to ``host`` one TTL at a time.

    Each TTL gets up to ``retry_per_hop`` sequential echoes; the first reply
    from the destination ends both the retries and the trace. Hops are
    produced strictly in TTL order.
    """

    def __init__(
        self,
        host: str,
        port: int = 80,
        max_hops: int = 30,
        timeout_ms: int = 3000,
        retry_per_hop: int = 3,
        payload_size: int = 32,
        echo: Optional[EchoFunc] = None,
        resolver: Optional[Resolver] = None,
        reverse_lookup: Optional[ReverseLookup] = None,
    ):
        if not host or not host.strip():
            raise InvalidArgumentError("host must not be empty")
        if not 1 <= max_hops <= 255:
            raise InvalidArgumentError(f"max_hops must be between 1 and 255, got {max_hops}")
        if retry_per_hop < 1:
            raise InvalidArgumentError(f"retry_per_hop must be >= 1, got {retry_per_hop}")
        if timeout_ms < 0:
            raise InvalidArgumentError(f"timeout_ms must be >= 0, got {timeout_ms}")
        if not 0 <= port <= 65535:
            raise InvalidArgumentError(f"port must be between 0 and 65535, got {port}")

        self.host = host.strip()
        self.port = port
        self.max_hops = max_hops
        self.timeout_ms = timeout_ms
        self.retry_per_hop = retry_per_hop
        self.payload_size = payload_size
        self.echo = echo or self._system_echo
        self.resolver = resolver or dns.resolve
        self.reverse_lookup = reverse_lookup or dns.reverse_lookup
        self._prober: Optional[IcmpProber] = None

    async def _system_echo(self, address: str, ttl: int, timeout_ms: int) -> EchoReply:
        if self._prober is None:
            self._prober = IcmpProber()
        return await self._prober.echo(address, timeout_ms=timeout_ms, ttl=ttl, payload_size=self.payload_size)

    async def _hostname(self, address: str) -> Optional[str]:
        if address == "*":
            return None
        try:
            return await self.reverse_lookup(address)
        except Exception as e:
            logger.debug(f"Reverse lookup for {address} failed: {e}")
            return None

    async def probe_hop(self, address: str, ttl: int) -> HopRecord:
        """Probe one TTL against ``address`` and summarise the attempts."""
        replies: List[EchoReply] = []
        for _attempt in range(self.retry_per_hop):
            try:
                reply = await self.echo(address, ttl, self.timeout_ms)
            except Exception as e:
                logger.warning(f"Echo to {address} (ttl {ttl}) raised {type(e).__name__}: {e}")
                reply = EchoReply(status=EchoStatus.ERROR, error_message=str(e) or type(e).__name__)
            replies.append(reply)
            if reply.status == EchoStatus.SUCCESS:
                break

        answered = [r for r in replies if r.answered]
        success = next((r for r in replies if r.status == EchoStatus.SUCCESS), None)
        detail = None
        if success is not None:
            status, hop_address = HopStatus.SUCCESS, success.address or address
        elif answered:
            status, hop_address = HopStatus.TTL_EXPIRED, answered[0].address or "*"
        elif all(r.status == EchoStatus.ERROR for r in replies):
            status, hop_address = HopStatus.ERROR, "*"
            detail = replies[-1].error_message
        else:
            status, hop_address = HopStatus.TIMEOUT, "*"

        rtts = [r.round_trip_millis for r in answered if r.round_trip_millis is not None]
        hop = HopRecord(
            hop_index=ttl,
            address=hop_address,
            hostname=await self._hostname(hop_address),
            status=status,
            round_trip_millis=int(round(sum(rtts) / len(rtts))) if rtts else None,
            detail=detail,
        )
        logger.debug(str(hop))
        return hop

    async def _trace_address(self, address: str) -> AsyncIterator[HopRecord]:
        for ttl in range(1, self.max_hops + 1):
            hop = await self.probe_hop(address, ttl)
            yield hop
            if hop.status == HopStatus.SUCCESS:
                return

    async def _connect_hop(self, address: str) -> HopRecord:
        deadline = Deadline.after_ms(self.timeout_ms)
        writer = None
        rtt = None
        detail = None
        try:
            _reader, writer = await deadline.run(asyncio.open_connection(address, self.port))
            status = HopStatus.SUCCESS
            rtt = deadline.elapsed_ms()
        except (asyncio.TimeoutError, TimeoutError):
            status = HopStatus.TIMEOUT
            detail = f"Connection timed out after {self.timeout_ms} ms"
        except Exception as e:
            status = HopStatus.ERROR
            detail = str(e) or type(e).__name__
        finally:
            if writer is not None:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError as e:
                    logger.debug(f"Error closing connection to {address}:{self.port}: {e}")

        return HopRecord(
            hop_index=1,
            address=address,
            hostname=await self._hostname(address),
            status=status,
            round_trip_millis=rtt,
            detail=detail,
        )

    async def iter_hops(self, mode: TraceMode = TraceMode.ICMP) -> AsyncIterator[HopRecord]:
        """
        Yield hops as they are discovered.

        An unresolvable host yields a single DnsFail hop (index 0) and nothing
        else. In ICMP mode, resolved addresses are traced in order until one
        reaches the destination.
        """
        try:
            addresses = await self.resolver(self.host)
        except DnsResolutionError as e:
            logger.warning(str(e))
            yield HopRecord(
                hop_index=0,
                address="*",
                hostname=self.host,
                status=HopStatus.DNS_FAIL,
                detail=str(e),
            )
            return

        logger.info(f"Tracing route to {self.host} ({', '.join(addresses)}) in {mode.value} mode")

        if mode == TraceMode.TCP:
            for address in addresses:
                yield await self._connect_hop(address)
            return

        for address in addresses:
            reached = False
            async for hop in self._trace_address(address):
                reached = hop.status == HopStatus.SUCCESS
                yield hop
            if reached:
                return

    async def trace(self, mode: TraceMode = TraceMode.ICMP) -> List[HopRecord]:
        """Run the whole trace and return every hop in order."""
        return [hop async for hop in self.iter_hops(mode)]


async def simple_traceroute(host: str, max_hops: int = 30, timeout_ms: int = 3000) -> str:
    """One echo per TTL, rendered as ``Hop N: <status> <address>`` lines."""
    discovery = HopDiscovery(host, max_hops=max_hops, timeout_ms=timeout_ms, retry_per_hop=1)
    lines = [f"Hop {hop.hop_index}: {hop.status.value} {hop.address}" for hop in await discovery.trace()]
    return "\n".join(lines) + "\n"


async def quick_traceroute(host: str, max_hops: int = 10) -> Tuple[Optional[float], Optional[int]]:
    """Trace with default settings and return (average RTT, maximum RTT)."""
    hops = await HopDiscovery(host, max_hops=max_hops).trace()
    return avg_rtt(hops), max_rtt(hops)


async def trace_many(
    hosts: Iterable[str],
    max_hops: int = 30,
    timeout_ms: int = 3000,
    mode: TraceMode = TraceMode.ICMP,
) -> Dict[str, List[HopRecord]]:
    """Trace several hosts one after another."""
    traces: Dict[str, List[HopRecord]] = {}
    for host in hosts:
        traces[host] = await HopDiscovery(host, max_hops=max_hops, timeout_ms=timeout_ms).trace(mode)
    return traces


def to_report(hops: Iterable[HopRecord]) -> str:
    lines = ["--- Traceroute Report ---"]
    lines.extend(str(hop) for hop in hops)
    return "\n".join(lines) + "\n"


def is_reachable(hops: List[HopRecord]) -> bool:
    """True when the last hop reached the destination."""
    return bool(hops) and hops[-1].status == HopStatus.SUCCESS


def _rtts(hops: Iterable[HopRecord]) -> List[int]:
    return [h.round_trip_millis for h in hops if h.round_trip_millis is not None]


def max_rtt(hops: Iterable[HopRecord]) -> Optional[int]:
    rtts = _rtts(hops)
    return max(rtts) if rtts else None


def min_rtt(hops: Iterable[HopRecord]) -> Optional[int]:
    rtts = _rtts(hops)
    return min(rtts) if rtts else None


def avg_rtt(hops: Iterable[HopRecord]) -> Optional[float]:
    rtts = _rtts(hops)
    return sum(rtts) / len(rtts) if rtts else None


def detect_anomalies(hops: List[HopRecord]) -> List[int]:
    """
    1-based positions of hops with no RTT or an RTT above twice the average.
    """
    average = avg_rtt(hops)
    anomalies = []
    for position, hop in enumerate(hops, start=1):
        rtt = hop.round_trip_millis
        if rtt is None or (average is not None and rtt > average * 2):
            anomalies.append(position)
    return anomalies


def passed_private_ip(hops: Iterable[HopRecord]) -> bool:
    return any(hop.is_private for hop in hops)
