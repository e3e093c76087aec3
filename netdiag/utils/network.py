"""
Network utility functions.
"""

import ipaddress
import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit


def is_valid_ip(ip: str) -> bool:
    """
    Check if a string is a valid IPv4 or IPv6 address.

    Args:
        ip: String to check

    Returns:
        True if valid IP address
    """
    try:
        ipaddress.ip_address(ip)
        return True
    except ValueError:
        return False


def is_valid_hostname(hostname: str) -> bool:
    """
    Check if a string is a valid hostname.

    Args:
        hostname: String to check

    Returns:
        True if valid hostname
    """
    if not hostname or len(hostname) > 255:
        return False

    # Remove trailing dot
    if hostname.endswith('.'):
        hostname = hostname[:-1]

    # Check each label
    allowed = re.compile(r'^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$')

    return all(allowed.match(label) for label in hostname.split('.'))


def is_valid_target(target: str) -> bool:
    """True for an IP address or a syntactically valid hostname."""
    return is_valid_ip(target) or is_valid_hostname(target)


def normalize_url(url: str) -> str:
    """Strip whitespace and prefix ``http://`` when the URL has no scheme."""
    url = url.strip()
    if "://" not in url:
        url = "http://" + url
    return url


def url_host(url: str) -> str:
    """Host part of a URL (scheme added when missing); empty string when absent."""
    try:
        return urlsplit(normalize_url(url)).hostname or ""
    except ValueError:
        return ""


def with_port(url: str, port: Optional[int]) -> str:
    """
    Put ``port`` into the URL's network location unless it already names one.

    ``"http://10.0.0.1/health"`` with 8080 becomes ``"http://10.0.0.1:8080/health"``.
    """
    parts = urlsplit(url)
    if not port or not parts.netloc:
        return url
    try:
        if parts.port is not None:
            return url
    except ValueError:
        return url
    return urlunsplit(parts._replace(netloc=f"{parts.netloc}:{port}"))


def unique_urls(urls: Iterable[str]) -> List[str]:
    """Drop blank entries and duplicates; the first occurrence wins."""
    seen = set()
    unique = []
    for url in urls:
        if url is None or not url.strip():
            continue
        url = url.strip()
        if url not in seen:
            seen.add(url)
            unique.append(url)
    return unique
