"""
Exception types raised by netdiag.

Only pre-flight argument validation escapes to callers. Network failures of
individual probes are converted into result statuses at the probe boundary.
"""


class NetDiagError(Exception):
    """Base class for netdiag errors."""


class InvalidArgumentError(NetDiagError, ValueError):
    """A caller supplied a malformed argument (empty service name, bad limit...)."""


class InvalidRangeError(InvalidArgumentError):
    """A port range or port list is outside 1-65535 or inverted."""

    def __init__(self, start: int, end: int, message: str = ""):
        self.start = start
        self.end = end
        super().__init__(message or f"Invalid port range: {start}-{end} (expected 1 <= start <= end <= 65535)")


class DnsResolutionError(NetDiagError):
    """A host name could not be resolved."""

    def __init__(self, host: str, reason: str = ""):
        self.host = host
        self.reason = reason
        super().__init__(f"Cannot resolve {host}" + (f": {reason}" if reason else ""))
