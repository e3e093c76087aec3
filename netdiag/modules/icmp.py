"""
ICMP echo via the host ``ping`` command.

Raw ICMP sockets need elevated privileges; the system ping binary is setuid or
capability-enabled on every supported OS, so one echo is one ping invocation
with a fixed TTL and its output is parsed for the reply.
"""

import ipaddress
import math
import platform
import re
from typing import List, Optional

from loguru import logger

from netdiag.core.errors import InvalidArgumentError
from netdiag.core.executor import CommandExecutor, CommandResult
from netdiag.modules.base import EchoReply, EchoStatus

# Extra seconds granted to the subprocess on top of the echo timeout
PROCESS_GRACE_SECONDS = 2.0

_ADDRESS = r"\[?([0-9A-Fa-f:.]+?)\]?"

# Linux/macOS: "64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=11.2 ms"
# Windows:     "Reply from 1.1.1.1: bytes=32 time=11ms TTL=57" / "time<1ms"
_REPLY_FROM = re.compile(rf"(?:bytes from|Reply from)\s+{_ADDRESS}:?\s", re.IGNORECASE)
_REPLY_TIME = re.compile(r"time\s*([=<])\s*([\d.]+)\s*ms", re.IGNORECASE)
_REPLY_TTL = re.compile(r"ttl=(\d+)", re.IGNORECASE)

# Linux:   "From 10.0.0.1 icmp_seq=1 Time to live exceeded"
# macOS:   "92 bytes from 10.0.0.1: Time to live exceeded"
# Windows: "Reply from 10.0.0.1: TTL expired in transit."
_TTL_EXCEEDED = re.compile(
    rf"from\s+{_ADDRESS}:?\s.*?(?:time to live exceeded|ttl expired in transit)",
    re.IGNORECASE,
)

_UNKNOWN_HOST = re.compile(
    r"unknown host|name or service not known|could not find host|cannot resolve"
    r"|temporary failure in name resolution|no address associated",
    re.IGNORECASE,
)

_UNREACHABLE = re.compile(r"destination (?:host|net|port) unreachable", re.IGNORECASE)


def _clean_address(candidate: str) -> str:
    # IPv6 replies on Linux render as "::1:" where the trailing colon is punctuation
    candidate = candidate.strip("[]")
    try:
        ipaddress.ip_address(candidate)
        return candidate
    except ValueError:
        trimmed = candidate.rstrip(":")
        try:
            ipaddress.ip_address(trimmed)
            return trimmed
        except ValueError:
            return candidate


def parse_ping_output(result: CommandResult) -> EchoReply:
    """
    Classify the output of a single-echo ping run.

    Args:
        result: Completed ping command

    Returns:
        EchoReply with status Success, TtlExpired, Timeout or Error
    """
    output = result.stdout + "\n" + result.stderr

    exceeded = _TTL_EXCEEDED.search(output)
    if exceeded:
        return EchoReply(
            status=EchoStatus.TTL_EXPIRED,
            address=_clean_address(exceeded.group(1)),
            round_trip_millis=int(round(result.duration * 1000)),
            raw_output=result.stdout,
        )

    reply = _REPLY_FROM.search(output)
    timing = _REPLY_TIME.search(output)
    if reply and timing:
        rtt = 0 if timing.group(1) == "<" else int(round(float(timing.group(2))))
        ttl_match = _REPLY_TTL.search(output)
        return EchoReply(
            status=EchoStatus.SUCCESS,
            address=_clean_address(reply.group(1)),
            round_trip_millis=rtt,
            ttl=int(ttl_match.group(1)) if ttl_match else None,
            raw_output=result.stdout,
        )

    if _UNKNOWN_HOST.search(output):
        return EchoReply(
            status=EchoStatus.ERROR,
            error_message="Unknown host",
            raw_output=result.stdout,
        )

    if result.return_code == -1 and not result.timed_out:
        # Process never started (ping missing or not executable)
        return EchoReply(
            status=EchoStatus.ERROR,
            error_message=result.stderr or "ping could not be started",
            raw_output=result.stdout,
        )

    message = "Destination unreachable" if _UNREACHABLE.search(output) else "Request timed out"
    return EchoReply(status=EchoStatus.TIMEOUT, error_message=message, raw_output=result.stdout)


class IcmpProber:
    """Send single ICMP echoes with a chosen TTL through the system ping."""

    def __init__(self, executor: Optional[CommandExecutor] = None, os_type: Optional[str] = None):
        self.executor = executor or CommandExecutor()
        self.os_type = os_type or platform.system()

    def build_command(self, host: str, timeout_ms: int, ttl: int, payload_size: int) -> List[str]:
        """Build a one-echo ping command line for the current OS."""
        if self.os_type == "Windows":
            return [
                "ping", "-n", "1",
                "-w", str(timeout_ms),
                "-i", str(ttl),
                "-l", str(payload_size),
                host,
            ]
        if self.os_type == "Darwin":
            if ":" in host:
                return ["ping6", "-n", "-c", "1", "-h", str(ttl), "-s", str(payload_size), host]
            return [
                "ping", "-n", "-c", "1",
                "-W", str(timeout_ms),
                "-m", str(ttl),
                "-s", str(payload_size),
                host,
            ]
        # Linux -W takes whole seconds
        seconds = max(1, math.ceil(timeout_ms / 1000))
        return [
            "ping", "-n", "-c", "1",
            "-W", str(seconds),
            "-t", str(ttl),
            "-s", str(payload_size),
            host,
        ]

    async def echo(
        self,
        host: str,
        timeout_ms: int = 1000,
        ttl: int = 64,
        payload_size: int = 32,
    ) -> EchoReply:
        """
        Send one echo request.

        Args:
            host: Hostname or address
            timeout_ms: How long to wait for the reply
            ttl: IP time-to-live of the request (1-255)
            payload_size: Echo payload bytes

        Returns:
            EchoReply (never raises for network failures)

        Raises:
            InvalidArgumentError: ttl, payload_size or timeout_ms out of range
        """
        if not 1 <= ttl <= 255:
            raise InvalidArgumentError(f"ttl must be between 1 and 255, got {ttl}")
        if not 0 <= payload_size <= 65500:
            raise InvalidArgumentError(f"payload_size must be between 0 and 65500, got {payload_size}")
        if timeout_ms < 0:
            raise InvalidArgumentError(f"timeout_ms must be >= 0, got {timeout_ms}")

        command = self.build_command(host, timeout_ms, ttl, payload_size)
        result = await self.executor.run_command(
            command,
            timeout=timeout_ms / 1000.0 + PROCESS_GRACE_SECONDS,
        )
        reply = parse_ping_output(result)
        logger.debug(f"ICMP {host} ttl={ttl} -> {reply.status.value} {reply.address or ''}")
        return reply
