"""Exceptions raised by site-crawler components."""


class CrawlerError(Exception):
    """Base class for site-crawler errors."""


class InvalidURLError(CrawlerError, ValueError):
    """Raised when a string cannot be parsed as an absolute URL."""

    def __init__(self, url: str, reason: str = "not an absolute URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL: {url!r} ({reason})")


class FetchError(CrawlerError):
    """A page could not be fetched: bad status, wrong content type, transport error or cancellation."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Fetch failed for {url}: {reason}")


class ArgumentError(CrawlerError):
    """Raised for invalid command-line arguments."""
