"""Outbound fetches for link metadata: page titles and favicons (httpx)."""

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

import httpx

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_TITLE_SCAN_BYTES = 10_000
PAGE_TITLE_TIMEOUT = 10.0
FAVICON_TIMEOUT = 5.0


@dataclass
class Favicon:
    """Favicon bytes and the content type to serve them with."""

    content: bytes
    media_type: str


def domain_of(url: str) -> str:
    """Hostname of a URL without a leading ``www.``. Raises ValueError if there is none."""
    host = urlsplit(url).hostname
    if not host:
        raise ValueError(f"Invalid URL: {url}")
    return host[4:] if host.startswith("www.") else host


async def fetch_page_title(
    url: str, transport: Optional[httpx.AsyncBaseTransport] = None
) -> str:
    """
    Fetch a page and return its <title>.

    Only the first ~10 KB are read. Any failure (non-200, network error,
    timeout, missing title) falls back to the bare domain.

    Raises:
        ValueError: If the URL has no hostname.
    """
    domain = domain_of(url)
    body = bytearray()
    try:
        async with httpx.AsyncClient(transport=transport, timeout=PAGE_TITLE_TIMEOUT) as client:
            async with client.stream("GET", url) as resp:
                if resp.status_code != 200:
                    return domain
                async for chunk in resp.aiter_bytes():
                    body.extend(chunk)
                    if len(body) > _TITLE_SCAN_BYTES:
                        break
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Page title fetch for %s failed: %s", url, exc)
        return domain

    match = _TITLE_RE.search(bytes(body[:_TITLE_SCAN_BYTES]).decode("utf-8", errors="replace"))
    if match and match.group(1).strip():
        return match.group(1).strip()
    return domain


async def fetch_favicon(
    url: str, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Optional[Favicon]:
    """
    Fetch the favicon for a site.

    Tries ``/favicon.ico`` on the site itself, then Google's favicon service.
    Redirects are followed.

    Returns:
        The first 200 response as a Favicon, or None if every source failed.

    Raises:
        ValueError: If the URL has no scheme or hostname.
    """
    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Invalid URL: {url}")

    sources = [
        f"{parsed.scheme}://{parsed.netloc}/favicon.ico",
        f"https://www.google.com/s2/favicons?domain={parsed.hostname}&sz=32",
    ]
    async with httpx.AsyncClient(
        transport=transport, timeout=FAVICON_TIMEOUT, follow_redirects=True
    ) as client:
        for source in sources:
            try:
                resp = await client.get(source)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.debug("Favicon source %s failed: %s", source, exc)
                continue
            if resp.status_code == 200:
                media_type = "image/png" if "google.com" in source else "image/x-icon"
                return Favicon(content=resp.content, media_type=media_type)
            logger.debug("Favicon source %s returned %d", source, resp.status_code)
    return None
