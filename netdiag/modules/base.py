"""
Result models shared by the probing modules.
"""

import ipaddress
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class Protocol(str, Enum):
    """Transport used by a probe."""

    TCP = "TCP"
    UDP = "UDP"
    ICMP = "ICMP"
    HTTP = "HTTP"


class PortStatus(str, Enum):
    """Outcome of a single port probe."""

    OPEN = "Open"
    CLOSED = "Closed"
    FILTERED = "Filtered"
    TIMEOUT = "Timeout"
    ERROR = "Error"


class HopStatus(str, Enum):
    """Outcome of one traceroute hop."""

    SUCCESS = "Success"
    TTL_EXPIRED = "TtlExpired"
    TIMEOUT = "Timeout"
    DNS_FAIL = "DnsFail"
    ERROR = "Error"


class EchoStatus(str, Enum):
    """Outcome of one ICMP echo."""

    SUCCESS = "Success"
    TTL_EXPIRED = "TtlExpired"
    TIMEOUT = "Timeout"
    ERROR = "Error"


class _Record(BaseModel):
    """Immutable record serialised with camelCase field names."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ProbeTarget(_Record):
    """A host/port/protocol triple; immutable once dispatched."""

    host: str
    port: Optional[int] = Field(default=None, ge=0, le=65535)
    protocol: Protocol = Protocol.TCP


class ProbeResult(_Record):
    """Result of one port probe. Produced exactly once per dispatched probe."""

    port: int = Field(ge=0, le=65535)
    status: PortStatus
    service_name: Optional[str] = None
    error_message: Optional[str] = None
    elapsed_millis: int = Field(default=0, ge=0)

    def __str__(self) -> str:
        return (
            f"Port: {self.port}, Status: {self.status.value}, Service: {self.service_name}, "
            f"Error: {self.error_message}, Time: {self.elapsed_millis}ms"
        )


class EchoReply(_Record):
    """Result of a single ICMP echo sent with a given TTL."""

    status: EchoStatus
    address: Optional[str] = None
    round_trip_millis: Optional[int] = None
    ttl: Optional[int] = None
    error_message: Optional[str] = None
    raw_output: str = ""

    @property
    def answered(self) -> bool:
        """True when some node replied (destination or an intermediate router)."""
        return self.status in (EchoStatus.SUCCESS, EchoStatus.TTL_EXPIRED)


class HopRecord(_Record):
    """One hop of a route trace. ``hop_index`` is the TTL that produced it."""

    hop_index: int = Field(ge=0)
    address: str = "*"
    hostname: Optional[str] = None
    status: HopStatus
    round_trip_millis: Optional[int] = None
    detail: Optional[str] = None

    @computed_field
    @property
    def is_private(self) -> bool:
        if self.address == "*":
            return True
        try:
            return ipaddress.ip_address(self.address).is_private
        except ValueError:
            return False

    def __str__(self) -> str:
        rtt = f"{self.round_trip_millis}ms" if self.round_trip_millis is not None else "*"
        host = f" [{self.hostname}]" if self.hostname else ""
        return f"Hop {self.hop_index}: {self.address}{host} ({self.status.value}) RTT={rtt}"


class PingSample(_Record):
    """One echo of a ping run; ``round_trip_millis`` is None when the packet was lost."""

    sequence: int = Field(ge=0)
    round_trip_millis: Optional[int] = None


class PingReport(_Record):
    """Aggregate of a ping run. Statistics are derived from the samples."""

    host: str
    sent_count: int = Field(ge=0)
    samples: List[PingSample] = Field(default_factory=list)
    raw_outputs: List[str] = Field(default_factory=list)

    @property
    def latencies(self) -> List[int]:
        return [s.round_trip_millis for s in self.samples if s.round_trip_millis is not None]

    @computed_field
    @property
    def success_count(self) -> int:
        return len(self.latencies)

    @computed_field
    @property
    def fail_count(self) -> int:
        return self.sent_count - self.success_count

    @computed_field
    @property
    def loss_rate_percent(self) -> float:
        if self.sent_count == 0:
            return 100.0
        return self.fail_count * 100.0 / self.sent_count

    @computed_field
    @property
    def min_latency(self) -> Optional[int]:
        latencies = self.latencies
        return min(latencies) if latencies else None

    @computed_field
    @property
    def max_latency(self) -> Optional[int]:
        latencies = self.latencies
        return max(latencies) if latencies else None

    @computed_field
    @property
    def avg_latency(self) -> Optional[float]:
        latencies = self.latencies
        return sum(latencies) / len(latencies) if latencies else None

    def to_report(self) -> str:
        """Render the report the way the command-line ping summarises a run."""
        lines = [f"Ping {self.host} with {self.sent_count} packets:"]
        lines.extend(self.raw_outputs)
        lines.append(f"--- {self.host} ping statistics ---")
        lines.append(
            f"Sent = {self.sent_count}, Received = {self.success_count}, "
            f"Lost = {self.fail_count} ({self.loss_rate_percent:.1f}% loss)"
        )
        if self.avg_latency is not None:
            lines.append(
                f"Round-trip times: Min = {self.min_latency}ms, "
                f"Max = {self.max_latency}ms, Avg = {self.avg_latency:.1f}ms"
            )
        return "\n".join(lines) + "\n"


class UrlResult(_Record):
    """Result of a URL reachability check."""

    url: str
    status_code: Optional[int] = None
    is_success: bool = False
    content_length: int = 0
    certificate_valid: bool = False
    resolved_ips: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    elapsed_millis: int = 0
