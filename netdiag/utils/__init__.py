"""
Utility functions.
"""

from netdiag.utils.network import (
    is_valid_hostname,
    is_valid_ip,
    is_valid_target,
    normalize_url,
    unique_urls,
    url_host,
    with_port,
)

__all__ = [
    "is_valid_ip",
    "is_valid_hostname",
    "is_valid_target",
    "normalize_url",
    "unique_urls",
    "url_host",
    "with_port",
]
