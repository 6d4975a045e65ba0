"""Link and image discovery, URL resolution and host matching."""

import logging
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


def resolve_url(href: str, base_url: str) -> str:
    """Resolve href against base_url and return an absolute URL.

    A hierarchical URL with an empty path gets "/" so that
    "https://a.test" and "https://a.test/" resolve alike.
    """
    parts = urlsplit(urljoin(base_url, href.strip()))
    if parts.netloc and not parts.path:
        parts = parts._replace(path="/")
    return urlunsplit(parts)


def get_hostname(url: str) -> Optional[str]:
    """Return the lowercased hostname of url, or None if it has none.

    Raises ValueError for URLs urlsplit cannot parse.
    """
    return urlsplit(url).hostname


def collect_urls(soup: BeautifulSoup, tag: str, attr: str, base_url: str) -> list[str]:
    """Resolve the attr value of every tag in soup against base_url."""
    urls: list[str] = []
    for element in soup.find_all(tag):
        value = element.get(attr)
        if not value:
            continue
        try:
            urls.append(resolve_url(value, base_url))
        except ValueError as e:
            logger.debug(f"Skipping unresolvable {tag} {attr}={value!r}: {e}")
    return urls


def get_urls_from_html(html: str, base_url: str) -> list[str]:
    """Return absolute URLs for every <a href> in document order.

    Duplicates and links to other hosts are kept; filtering is the
    scheduler's job.
    """
    soup = BeautifulSoup(html, "html.parser")
    return collect_urls(soup, "a", "href", base_url)


def get_images_from_html(html: str, base_url: str) -> list[str]:
    """Return absolute URLs for every <img src> in document order."""
    soup = BeautifulSoup(html, "html.parser")
    return collect_urls(soup, "img", "src", base_url)
