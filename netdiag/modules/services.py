"""
Port number to service name lookup.
"""

import threading
from typing import Dict, List, Mapping, Optional

from loguru import logger

from netdiag.core.errors import InvalidArgumentError

UNKNOWN_SERVICE = "Unknown"

DEFAULT_SERVICES: Dict[int, str] = {
    # Standard ports
    20: "FTP Data",
    21: "FTP Control",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    67: "DHCP Server",
    68: "DHCP Client",
    69: "TFTP",
    80: "HTTP",
    110: "POP3",
    123: "NTP",
    143: "IMAP",
    161: "SNMP",
    162: "SNMP Trap",
    443: "HTTPS",
    445: "Microsoft-DS",
    465: "SMTPS",
    514: "Syslog",
    587: "SMTP Submission",
    636: "LDAPS",
    993: "IMAPS",
    995: "POP3S",
    # Databases
    1433: "MSSQL",
    1434: "MSSQL Monitor",
    1521: "Oracle DB",
    3306: "MySQL",
    3389: "RDP",
    5432: "PostgreSQL",
    6379: "Redis",
    27017: "MongoDB",
    # Remote management
    5900: "VNC",
    5985: "WinRM HTTP",
    5986: "WinRM HTTPS",
    8000: "HTTP Alternate",
    8080: "HTTP Proxy",
    8443: "HTTPS Alternate",
    # Other
    2049: "NFS",
    3260: "iSCSI",
    5000: "UPnP / HTTP Alternate",
    5060: "SIP",
    5061: "SIP TLS",
    11211: "Memcached",
}


def _valid_port(port) -> bool:
    return isinstance(port, int) and not isinstance(port, bool) and 0 <= port <= 65535


class ServiceTable:
    """
    Mutable port -> service name table.

    Lookups are lock-free dict reads; registrations are serialized so
    concurrent writers never race. Entries can be added or overridden but
    never removed.
    """

    def __init__(self, seed: Optional[Mapping[int, str]] = None):
        self._lock = threading.Lock()
        self._services: Dict[int, str] = dict(DEFAULT_SERVICES if seed is None else seed)

    def lookup(self, port: int) -> str:
        """Return the service name for ``port``; "Unknown" when absent or out of range."""
        if not _valid_port(port):
            return UNKNOWN_SERVICE
        return self._services.get(port, UNKNOWN_SERVICE)

    def register(self, port: int, name: str) -> bool:
        """Insert or overwrite an entry. Returns False (and changes nothing) when invalid."""
        if not _valid_port(port) or not name or not name.strip():
            logger.debug(f"Rejected service registration {port!r} -> {name!r}")
            return False
        with self._lock:
            self._services[port] = name
        return True

    def register_quietly(self, port: int, name: str) -> None:
        """Insert or overwrite an entry, silently ignoring invalid input."""
        self.register(port, name)

    def add_custom(self, port: int, name: str) -> None:
        """Insert or overwrite an entry, raising on invalid input."""
        if not _valid_port(port):
            raise InvalidArgumentError(f"Port must be between 0 and 65535, got {port!r}")
        if not name or not name.strip():
            raise InvalidArgumentError("Service name must not be empty")
        with self._lock:
            self._services[port] = name

    def update(self, services: Mapping[int, str]) -> int:
        """Register several entries leniently; returns how many were accepted."""
        return sum(1 for port, name in services.items() if self.register(port, name))

    def is_known(self, port: int) -> bool:
        return port in self._services

    def all_services(self) -> Dict[int, str]:
        """Copy of every known entry."""
        with self._lock:
            return dict(self._services)

    def ports_for(self, service_name: str) -> List[int]:
        """Ports whose service name equals ``service_name`` (case-insensitive)."""
        if not service_name or not service_name.strip():
            raise InvalidArgumentError("Service name must not be empty")
        wanted = service_name.strip().casefold()
        return sorted(port for port, name in self.all_services().items() if name.casefold() == wanted)

    def __len__(self) -> int:
        return len(self._services)
