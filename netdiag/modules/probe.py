"""
Single-target probes: TCP connect, UDP send/receive, and a generic dispatcher
that also covers ICMP echo and HTTP requests.

Every probe returns a ProbeResult and never raises for network failures; the
socket it opens is released on every exit path.
"""

import asyncio
import errno
import socket
from typing import Optional

from loguru import logger

from netdiag.core.errors import InvalidArgumentError
from netdiag.modules.base import EchoStatus, PortStatus, ProbeResult, ProbeTarget, Protocol
from netdiag.modules.services import DEFAULT_SERVICES, UNKNOWN_SERVICE, ServiceTable
from netdiag.parallel.executor import Deadline
from netdiag.utils.network import normalize_url, with_port

# Refusal / unreachable errors: the target (or a router) actively answered "no"
_CLOSED_ERRNOS = {
    errno.ECONNREFUSED,
    errno.ECONNRESET,
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
}

# Deadline expiry, or an ETIMEDOUT from the kernel (distinct types before 3.11)
_TIMEOUT_ERRORS = (asyncio.TimeoutError, TimeoutError)


def service_name(port: int, services: Optional[ServiceTable] = None) -> str:
    if services is not None:
        return services.lookup(port)
    return DEFAULT_SERVICES.get(port, UNKNOWN_SERVICE)


def _is_refusal(error: OSError) -> bool:
    return isinstance(error, (ConnectionRefusedError, ConnectionResetError)) or error.errno in _CLOSED_ERRNOS


async def probe_tcp(
    host: str,
    port: int,
    deadline: Deadline,
    payload: Optional[bytes] = None,
    services: Optional[ServiceTable] = None,
) -> ProbeResult:
    """
    Race a TCP connect against ``deadline``.

    Open on connect, Closed on timeout or refusal, Error otherwise. When open,
    ``payload`` is written best-effort; write failures do not change the status.
    """
    status = PortStatus.ERROR
    error_message: Optional[str] = None
    writer = None
    try:
        _reader, writer = await deadline.run(asyncio.open_connection(host, port))
        status = PortStatus.OPEN
        if payload:
            try:
                writer.write(payload)
                await deadline.run(writer.drain())
            except (OSError, asyncio.TimeoutError) as e:
                logger.debug(f"Payload write to {host}:{port} failed: {e}")
    except _TIMEOUT_ERRORS:
        status = PortStatus.CLOSED
        error_message = f"Connection timed out after {int(deadline.timeout * 1000)} ms"
    except socket.gaierror as e:
        status = PortStatus.ERROR
        error_message = f"Cannot resolve {host}: {e}"
    except OSError as e:
        status = PortStatus.CLOSED if _is_refusal(e) else PortStatus.ERROR
        error_message = str(e) or type(e).__name__
    except Exception as e:
        status = PortStatus.ERROR
        error_message = str(e) or type(e).__name__
    finally:
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error closing connection to {host}:{port}: {e}")

    result = ProbeResult(
        port=port,
        status=status,
        service_name=service_name(port, services),
        error_message=error_message,
        elapsed_millis=deadline.elapsed_ms(),
    )
    logger.debug(f"TCP {host}:{port} -> {result.status.value} ({result.elapsed_millis} ms)")
    return result


async def probe_udp(
    host: str,
    port: int,
    deadline: Deadline,
    payload: Optional[bytes] = None,
    services: Optional[ServiceTable] = None,
) -> ProbeResult:
    """
    Send one datagram and race a receive against ``deadline``.

    A reply means Open and silence means Filtered. An ICMP port-unreachable
    (ConnectionRefused) means Closed. Without a payload an empty datagram is
    sent.
    """
    loop = asyncio.get_running_loop()
    status = PortStatus.ERROR
    error_message: Optional[str] = None
    sock = None
    try:
        addresses = await deadline.run(loop.getaddrinfo(host, port, type=socket.SOCK_DGRAM))
        family, sock_type, proto, _canonname, address = addresses[0]
        sock = socket.socket(family, sock_type, proto)
        sock.setblocking(False)
        # connected, so the kernel reports port-unreachable back on recv
        sock.connect(address)
        sock.send(payload or b"")
        await deadline.run(loop.sock_recv(sock, 65535))
        status = PortStatus.OPEN
    except _TIMEOUT_ERRORS:
        status = PortStatus.FILTERED
        error_message = f"No response within {int(deadline.timeout * 1000)} ms"
    except socket.gaierror as e:
        status = PortStatus.ERROR
        error_message = f"Cannot resolve {host}: {e}"
    except OSError as e:
        status = PortStatus.CLOSED if _is_refusal(e) else PortStatus.ERROR
        error_message = str(e) or type(e).__name__
    except Exception as e:
        status = PortStatus.ERROR
        error_message = str(e) or type(e).__name__
    finally:
        if sock is not None:
            sock.close()

    result = ProbeResult(
        port=port,
        status=status,
        service_name=service_name(port, services),
        error_message=error_message,
        elapsed_millis=deadline.elapsed_ms(),
    )
    logger.debug(f"UDP {host}:{port} -> {result.status.value} ({result.elapsed_millis} ms)")
    return result


_ECHO_TO_PORT_STATUS = {
    EchoStatus.SUCCESS: PortStatus.OPEN,
    EchoStatus.TTL_EXPIRED: PortStatus.FILTERED,
    EchoStatus.TIMEOUT: PortStatus.TIMEOUT,
    EchoStatus.ERROR: PortStatus.ERROR,
}


async def probe(
    target: ProbeTarget,
    timeout_ms: int,
    payload: Optional[bytes] = None,
    services: Optional[ServiceTable] = None,
) -> ProbeResult:
    """
    Probe one target with any supported protocol.

    ICMP maps Success/TtlExpired/Timeout to Open/Filtered/Timeout. HTTP maps a
    2xx answer to Open and any other answer to Closed. For ICMP the payload
    length is used as the echo size.

    Raises:
        InvalidArgumentError: TCP/UDP target without a port, or negative timeout
    """
    if timeout_ms < 0:
        raise InvalidArgumentError(f"timeout_ms must be >= 0, got {timeout_ms}")
    if target.protocol in (Protocol.TCP, Protocol.UDP) and target.port is None:
        raise InvalidArgumentError(f"{target.protocol.value} probe of {target.host} requires a port")

    deadline = Deadline.after_ms(timeout_ms)
    if target.protocol == Protocol.TCP:
        return await probe_tcp(target.host, target.port, deadline, payload, services)
    if target.protocol == Protocol.UDP:
        return await probe_udp(target.host, target.port, deadline, payload, services)

    port = target.port or 0
    try:
        if target.protocol == Protocol.ICMP:
            from netdiag.modules.icmp import IcmpProber

            size = len(payload) if payload is not None else 32
            reply = await IcmpProber().echo(target.host, timeout_ms=timeout_ms, payload_size=size)
            status = _ECHO_TO_PORT_STATUS[reply.status]
            message = reply.error_message
            if reply.status == EchoStatus.TTL_EXPIRED:
                message = f"TTL expired in transit at {reply.address}"
        else:
            from netdiag.modules.urls import UrlChecker

            url = with_port(normalize_url(target.host), target.port)
            outcome = await UrlChecker(timeout_ms=timeout_ms).check(url)
            if outcome.status_code is None:
                status, message = PortStatus.ERROR, outcome.error
            elif outcome.is_success:
                status, message = PortStatus.OPEN, None
            else:
                status, message = PortStatus.CLOSED, f"HTTP {outcome.status_code}"
    except Exception as e:
        status, message = PortStatus.ERROR, str(e) or type(e).__name__

    return ProbeResult(
        port=port,
        status=status,
        service_name=service_name(port, services),
        error_message=message,
        elapsed_millis=deadline.elapsed_ms(),
    )
