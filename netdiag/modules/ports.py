"""
Port scanning sessions: bounded-parallel TCP/UDP probes over a port range or list.
"""

from collections import Counter
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from loguru import logger

from netdiag.core.errors import InvalidArgumentError, InvalidRangeError
from netdiag.modules.base import PortStatus, ProbeResult, Protocol
from netdiag.modules.probe import probe_tcp, probe_udp, service_name
from netdiag.modules.services import ServiceTable
from netdiag.parallel.executor import Deadline, ParallelConfig, ParallelProbeExecutor

# Common TCP ports: top 20 and top 100 presets
PORT_PRESET_TOP20: List[int] = [
    21, 22, 23, 25, 53, 80, 110, 111, 135, 139,
    143, 443, 445, 993, 995, 1723, 3306, 3389, 5900, 8080,
]

PORT_PRESET_TOP100: List[int] = [
    7, 9, 13, 21, 22, 23, 25, 26, 37, 53, 79, 80, 81, 88,
    106, 110, 111, 113, 119, 135, 139, 143, 144, 179, 199,
    389, 427, 443, 444, 445, 465, 513, 514, 515, 543, 544,
    548, 554, 587, 631, 646, 873, 990, 993, 995, 1025, 1026,
    1027, 1028, 1029, 1110, 1433, 1720, 1723, 1755, 1900,
    2000, 2001, 2049, 2121, 2717, 3000, 3128, 3306, 3389, 3986,
    4899, 5000, 5009, 5051, 5060, 5101, 5190, 5357, 5432,
    5631, 5666, 5800, 5900, 6000, 6001, 6646, 7070, 8000, 8008,
    8009, 8080, 8081, 8443, 8888, 9100, 9999, 10000, 32768, 49152, 49153,
    49154, 49155, 49156, 49157,
]

PORT_PRESETS: Dict[str, List[int]] = {
    "top20": PORT_PRESET_TOP20,
    "top100": PORT_PRESET_TOP100,
}

# (host, port, deadline) -> result; replaces the built-in TCP/UDP probe
PortProber = Callable[[str, int, Deadline], Awaitable[ProbeResult]]


def validate_range(start_port: int, end_port: int) -> None:
    """Raise InvalidRangeError unless 1 <= start_port <= end_port <= 65535."""
    if not 1 <= start_port <= 65535 or not 1 <= end_port <= 65535:
        raise InvalidRangeError(start_port, end_port, "ports must be between 1 and 65535")
    if start_port > end_port:
        raise InvalidRangeError(start_port, end_port, "start port is greater than end port")


def normalize_ports(ports: Iterable[int]) -> List[int]:
    """Validate an explicit port list and drop duplicates, keeping first-seen order."""
    unique: List[int] = []
    seen = set()
    for port in ports:
        if isinstance(port, bool) or not isinstance(port, int) or not 1 <= port <= 65535:
            raise InvalidRangeError(port, port, f"invalid port {port!r}")
        if port not in seen:
            seen.add(port)
            unique.append(port)
    return unique


def count_by_status(results: Iterable[ProbeResult]) -> Dict[PortStatus, int]:
    counts = Counter(r.status for r in results)
    return {status: counts.get(status, 0) for status in PortStatus}


class ScanSession:
    """
    One scan of one host.

    Every probe is raced against its own deadline and at most
    ``max_concurrency`` probes are in flight at once. Collected results are
    returned sorted by port; the ``stream_*`` variants yield each result as
    soon as it completes.
    """

    def __init__(
        self,
        host: str,
        start_port: int = 1,
        end_port: int = 1024,
        timeout_ms: int = 500,
        max_concurrency: int = 50,
        protocol: Protocol = Protocol.TCP,
        services: Optional[ServiceTable] = None,
        payload: Optional[bytes] = None,
        prober: Optional[PortProber] = None,
    ):
        if not host or not host.strip():
            raise InvalidArgumentError("host must not be empty")
        if timeout_ms < 0:
            raise InvalidArgumentError(f"timeout_ms must be >= 0, got {timeout_ms}")
        if max_concurrency < 1:
            raise InvalidArgumentError(f"max_concurrency must be >= 1, got {max_concurrency}")
        if protocol not in (Protocol.TCP, Protocol.UDP):
            raise InvalidArgumentError(f"Port scans support TCP and UDP, not {protocol.value}")

        self.host = host.strip()
        self.start_port = start_port
        self.end_port = end_port
        self.timeout_ms = timeout_ms
        self.protocol = protocol
        self.services = services if services is not None else ServiceTable()
        self.payload = payload
        self.prober = prober
        self.executor = ParallelProbeExecutor(ParallelConfig(max_concurrency=max_concurrency))

    @property
    def max_concurrency(self) -> int:
        return self.executor.config.max_concurrency

    @property
    def high_water_mark(self) -> int:
        """Most probes simultaneously in flight across this session's batches."""
        return self.executor.get_summary()["high_water_mark"]

    async def probe_port(self, port: int) -> ProbeResult:
        """Probe a single port with this session's protocol and timeout."""
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
            raise InvalidRangeError(port, port, f"invalid port {port!r}")
        deadline = Deadline.after_ms(self.timeout_ms)
        if self.prober is not None:
            result = await self.prober(self.host, port, deadline)
            if result.service_name is None:
                result = result.model_copy(update={"service_name": self.services.lookup(port)})
            return result
        if self.protocol == Protocol.UDP:
            return await probe_udp(self.host, port, deadline, self.payload, self.services)
        return await probe_tcp(self.host, port, deadline, self.payload, self.services)

    def _on_error(self, port: int, error: Exception) -> ProbeResult:
        return ProbeResult(
            port=port,
            status=PortStatus.ERROR,
            service_name=service_name(port, self.services),
            error_message=str(error) or type(error).__name__,
        )

    async def _stream(self, ports: Sequence[int], accumulator=None) -> AsyncIterator[ProbeResult]:
        logger.info(
            f"Scanning {len(ports)} {self.protocol.value} port(s) on {self.host} "
            f"(timeout {self.timeout_ms} ms, concurrency {self.max_concurrency})"
        )
        async for result in self.executor.stream(ports, self.probe_port, self._on_error, accumulator):
            yield result

    def stream_range(self, start_port: int, end_port: int) -> AsyncIterator[ProbeResult]:
        """
        Yield results for ``start_port..end_port`` in completion order.

        Raises:
            InvalidRangeError: immediately, before any probe is sent
        """
        validate_range(start_port, end_port)
        return self._stream(range(start_port, end_port + 1))

    def stream_ports(self, ports: Iterable[int]) -> AsyncIterator[ProbeResult]:
        """Yield results for an explicit port list in completion order."""
        return self._stream(normalize_ports(ports))

    async def _collect(self, ports: Sequence[int]) -> List[ProbeResult]:
        results = await self.executor.run(ports, self.probe_port, self._on_error)
        results.sort(key=lambda r: r.port)
        counts = count_by_status(results)
        logger.info(
            f"Scan of {self.host} finished: {counts[PortStatus.OPEN]} open, "
            f"{counts[PortStatus.CLOSED]} closed, {counts[PortStatus.FILTERED]} filtered, "
            f"{counts[PortStatus.ERROR]} error (high-water mark {self.high_water_mark})"
        )
        return results

    async def scan_range(self, start_port: int, end_port: int) -> List[ProbeResult]:
        """
        Scan every port in ``start_port..end_port`` inclusive.

        Returns:
            One ProbeResult per port, sorted ascending by port

        Raises:
            InvalidRangeError: before any I/O when the range is invalid
        """
        validate_range(start_port, end_port)
        return await self._collect(range(start_port, end_port + 1))

    async def scan_ports(self, ports: Iterable[int]) -> List[ProbeResult]:
        """Scan an explicit list of ports; duplicates are probed once."""
        unique = normalize_ports(ports)
        if not unique:
            return []
        return await self._collect(unique)

    async def scan(self) -> List[ProbeResult]:
        """Scan this session's own ``start_port..end_port`` range."""
        return await self.scan_range(self.start_port, self.end_port)


def parse_port_spec(spec: str) -> List[int]:
    """
    Parse ``"22,80,8000-8010"`` style port lists, or a preset name.

    Raises:
        InvalidRangeError: a range is inverted or outside 1-65535
        InvalidArgumentError: an entry is not a number
    """
    spec = spec.strip()
    if spec.lower() in PORT_PRESETS:
        return list(PORT_PRESETS[spec.lower()])

    ports: List[int] = []
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            if "-" in part:
                low, high = (int(p) for p in part.split("-", 1))
                validate_range(low, high)
                ports.extend(range(low, high + 1))
            else:
                ports.append(int(part))
        except ValueError as e:
            if isinstance(e, InvalidArgumentError):
                raise
            raise InvalidArgumentError(f"Invalid port entry: {part!r}") from e
    return normalize_ports(ports)
