"""
DNS resolution helpers.
"""

import asyncio
import socket
from typing import List, Optional

from loguru import logger

from netdiag.core.errors import DnsResolutionError
from netdiag.parallel.executor import Deadline


async def resolve(host: str, deadline: Optional[Deadline] = None) -> List[str]:
    """
    Resolve ``host`` to its addresses, in resolver order without duplicates.

    Raises:
        DnsResolutionError: when the name cannot be resolved or the deadline elapses
    """
    loop = asyncio.get_running_loop()
    lookup = loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    try:
        infos = await (deadline.run(lookup) if deadline else lookup)
    except asyncio.TimeoutError as e:
        raise DnsResolutionError(host, "lookup timed out") from e
    except (socket.gaierror, UnicodeError, OSError) as e:
        raise DnsResolutionError(host, str(e)) from e

    addresses: List[str] = []
    for _family, _type, _proto, _canon, sockaddr in infos:
        address = sockaddr[0]
        if address not in addresses:
            addresses.append(address)
    if not addresses:
        raise DnsResolutionError(host, "no addresses returned")
    return addresses


async def reverse_lookup(address: str, timeout: float = 2.0) -> Optional[str]:
    """Best-effort PTR lookup; returns None on any failure."""
    if not address or address == "*":
        return None
    loop = asyncio.get_running_loop()
    try:
        hostname, _ = await asyncio.wait_for(
            loop.getnameinfo((address, 0), socket.NI_NAMEREQD),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, OSError, ValueError) as e:
        logger.debug(f"Reverse lookup failed for {address}: {e}")
        return None
    return hostname


def dns_resolve(host: str) -> List[str]:
    """Synchronous resolve; returns an empty list on failure."""
    try:
        return asyncio.run(resolve(host))
    except DnsResolutionError as e:
        logger.debug(str(e))
        return []


def reverse_dns_lookup(address: str) -> Optional[str]:
    """Synchronous reverse lookup; returns None on failure."""
    return asyncio.run(reverse_lookup(address))
