"""
URL reachability checks, single and batched.
"""

import asyncio
from html.parser import HTMLParser
from typing import AsyncIterator, Iterable, List, Mapping, Optional
from urllib.parse import urljoin, urlsplit

import aiohttp
from loguru import logger

from netdiag.core.errors import DnsResolutionError, InvalidArgumentError
from netdiag.modules import dns
from netdiag.modules.base import UrlResult
from netdiag.modules.http import CertificateCallback, default_certificate_policy, fetch, fetch_body
from netdiag.parallel.executor import Deadline, ParallelConfig, ParallelProbeExecutor
from netdiag.utils.network import normalize_url, unique_urls, url_host


class UrlChecker:
    """
    Check URLs for reachability: DNS first, then one HTTP request.

    ``certificate_callback(url, verified)`` decides whether a response over
    TLS is accepted. By default verified certificates are always accepted and
    invalid ones only when ``validate_certificate`` is False.
    """

    def __init__(
        self,
        timeout_ms: int = 5000,
        max_concurrency: int = 10,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
        proxy: Optional[str] = None,
        validate_certificate: bool = True,
        certificate_callback: Optional[CertificateCallback] = None,
    ):
        if timeout_ms < 0:
            raise InvalidArgumentError(f"timeout_ms must be >= 0, got {timeout_ms}")
        if max_concurrency < 1:
            raise InvalidArgumentError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.timeout_ms = timeout_ms
        self.method = method.upper()
        self.headers = dict(headers) if headers else None
        self.proxy = proxy
        self.validate_certificate = validate_certificate
        self.certificate_callback = certificate_callback or default_certificate_policy(validate_certificate)
        self.executor = ParallelProbeExecutor(ParallelConfig(max_concurrency=max_concurrency))

    async def check(self, url: str) -> UrlResult:
        """
        Check one URL. Never raises for network failures.

        Resolved addresses are recorded even when the HTTP request later fails.
        """
        deadline = Deadline.after_ms(self.timeout_ms)
        target = normalize_url(url)
        host = url_host(target)
        if not host:
            return UrlResult(url=url, error=f"Invalid URL: {url!r}", error_type="InvalidURL")

        try:
            resolved = await dns.resolve(host, deadline)
        except DnsResolutionError as e:
            logger.warning(str(e))
            return UrlResult(
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                elapsed_millis=deadline.elapsed_ms(),
            )

        try:
            response = await fetch(
                target,
                deadline,
                method=self.method,
                headers=self.headers,
                proxy=self.proxy,
                certificate_callback=self.certificate_callback,
            )
        except asyncio.TimeoutError:
            return UrlResult(
                url=url,
                resolved_ips=resolved,
                error=f"Request timed out after {self.timeout_ms} ms",
                error_type="TimeoutError",
                elapsed_millis=deadline.elapsed_ms(),
            )
        except Exception as e:
            logger.debug(f"Request to {target} failed: {type(e).__name__}: {e}")
            return UrlResult(
                url=url,
                resolved_ips=resolved,
                error=str(e) or type(e).__name__,
                error_type=type(e).__name__,
                elapsed_millis=deadline.elapsed_ms(),
            )

        result = UrlResult(
            url=url,
            status_code=response.status,
            is_success=200 <= response.status < 300,
            content_length=response.content_length,
            certificate_valid=response.certificate_valid,
            resolved_ips=resolved,
            elapsed_millis=deadline.elapsed_ms(),
        )
        logger.debug(f"{self.method} {target} -> {response.status} {response.reason}")
        return result

    def _on_error(self, url: str, error: Exception) -> UrlResult:
        return UrlResult(url=url, error=str(error) or type(error).__name__, error_type=type(error).__name__)

    async def stream_all(self, urls: Iterable[str]) -> AsyncIterator[UrlResult]:
        """Yield results in completion order; blanks and duplicates are skipped."""
        targets = unique_urls(urls)
        logger.info(f"Checking {len(targets)} URL(s) (concurrency {self.executor.config.max_concurrency})")
        async for result in self.executor.stream(targets, self.check, self._on_error):
            yield result

    async def check_all(self, urls: Iterable[str]) -> List[UrlResult]:
        """Check every distinct non-blank URL; results are in completion order."""
        targets = unique_urls(urls)
        if not targets:
            return []
        logger.info(f"Checking {len(targets)} URL(s) (concurrency {self.executor.config.max_concurrency})")
        results = await self.executor.run(targets, self.check, self._on_error)
        ok = sum(1 for r in results if r.is_success)
        logger.info(f"URL check finished: {ok}/{len(results)} succeeded")
        return results

    @property
    def high_water_mark(self) -> int:
        return self.executor.get_summary()["high_water_mark"]


async def check_status(url: str, timeout_ms: int = 5000) -> Optional[int]:
    """Status code of a GET to ``url``, or None when no response arrived."""
    result = await UrlChecker(timeout_ms=timeout_ms).check(url)
    return result.status_code


async def check_https_certificate(url_or_host: str, timeout_ms: int = 5000) -> bool:
    """Whether ``url_or_host`` (forced to https) presents a valid certificate."""
    target = url_or_host.strip()
    if not target.lower().startswith("https://"):
        if target.lower().startswith("http://"):
            target = target[len("http://"):]
        target = "https://" + target
    result = await UrlChecker(timeout_ms=timeout_ms, validate_certificate=True).check(target)
    return result.certificate_valid


class _IconLinkParser(HTMLParser):
    """Finds the first ``<link rel="icon">`` (or ``shortcut icon``) href."""

    def __init__(self):
        super().__init__()
        self.href: Optional[str] = None

    def handle_starttag(self, tag, attrs):
        if tag != "link" or self.href is not None:
            return
        values = {key: value or "" for key, value in attrs}
        if "icon" in values.get("rel", "").lower().split() and values.get("href", "").strip():
            self.href = values["href"].strip()


def find_icon_href(html: str) -> Optional[str]:
    parser = _IconLinkParser()
    parser.feed(html)
    return parser.href


async def get_favicon(url: str, timeout_ms: int = 5000) -> Optional[bytes]:
    """
    Download the site icon for ``url``.

    ``/favicon.ico`` at the site root is tried first, then the page at the
    root is searched for a ``<link rel="icon" href=...>``. One deadline covers
    every request.

    Returns:
        The icon bytes, or None when no icon was found or a request failed
    """
    target = normalize_url(url)
    if not url_host(target):
        return None
    parts = urlsplit(target)
    base = f"{parts.scheme}://{parts.netloc}/"
    deadline = Deadline.after_ms(timeout_ms)

    try:
        status, body = await fetch_body(urljoin(base, "favicon.ico"), deadline)
        if 200 <= status < 300 and body:
            return body
        logger.debug(f"No /favicon.ico at {base} (HTTP {status})")

        status, page = await fetch_body(base, deadline)
        if not 200 <= status < 300:
            return None
        href = find_icon_href(page.decode("utf-8", errors="replace"))
        if href is None:
            logger.debug(f"No icon link on {base}")
            return None

        status, body = await fetch_body(urljoin(base, href), deadline)
        return body if 200 <= status < 300 and body else None
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        logger.debug(f"Favicon download from {base} failed: {type(e).__name__}: {e}")
        return None
