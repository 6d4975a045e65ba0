"""URL canonicalization and the per-crawl visit registry."""

import enum
import logging
import threading
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from .cancellation import CancellationSignal
from .exceptions import InvalidURLError

logger = logging.getLogger(__name__)


DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443, "ftp": 21}


def normalize_url(url: str) -> str:
    """Canonicalize an absolute URL for deduplication.

    - Strips the fragment (#...), including an empty one.
    - Lowercases scheme and host.
    - Removes the scheme's default port (:80, :443).
    - Uses "/" for an empty path.
    - Keeps path and query exactly as given, including a bare "?"
      (query order and percent-encoding matter for uniqueness).

    Raises InvalidURLError for empty, relative or malformed input.
    """
    if not url or not url.strip():
        raise InvalidURLError(url, "empty")
    without_fragment = url.strip().split("#", 1)[0]
    try:
        parsed = urlsplit(without_fragment)
        port = parsed.port
    except ValueError as e:
        raise InvalidURLError(url, str(e)) from e

    if not parsed.scheme or not parsed.netloc:
        raise InvalidURLError(url)
    if not parsed.hostname:
        raise InvalidURLError(url, "missing host")

    scheme = parsed.scheme.lower()
    host = parsed.hostname
    if ":" in host:
        host = f"[{host}]"
    userinfo, _, _ = parsed.netloc.rpartition("@")
    netloc = f"{userinfo}@{host}" if userinfo else host
    if port is not None and port != DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"

    canonical = urlunsplit((scheme, netloc, parsed.path or "/", "", ""))
    # urlunsplit drops an empty query; "x?" and "x" stay distinct.
    if "?" in without_fragment:
        canonical = f"{canonical}?{parsed.query}"
    return canonical


class Admission(enum.Enum):
    """Outcome of VisitRegistry.try_admit."""

    ADMITTED = "admitted"
    REJECTED_BUDGET_EXCEEDED = "rejected_budget_exceeded"
    REJECTED_DUPLICATE = "rejected_duplicate"


class VisitRegistry:
    """Canonical URL -> visit count, bounded by a page budget.

    Owns the stop flag. When the budget is reached the flag is set and the
    cancellation signal (if any) is tripped; no new URL is admitted after that.
    """

    def __init__(self, max_pages: int, signal: Optional[CancellationSignal] = None) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self.max_pages = max_pages
        self._signal = signal
        self._visits: dict[str, int] = {}
        self._stopped = False
        self._lock = threading.Lock()

    def try_admit(self, canonical_url: str) -> Admission:
        """Register a crawl attempt for canonical_url.

        Only ADMITTED authorizes a fetch. The URL that hits the budget is
        not recorded.
        """
        with self._lock:
            if self._stopped:
                return Admission.REJECTED_BUDGET_EXCEEDED

            if len(self._visits) >= self.max_pages:
                self._stopped = True
                logger.info(f"Page budget of {self.max_pages} reached; stopping crawl")
                if self._signal is not None:
                    self._signal.trip()
                return Admission.REJECTED_BUDGET_EXCEEDED

            if canonical_url in self._visits:
                self._visits[canonical_url] += 1
                return Admission.REJECTED_DUPLICATE

            self._visits[canonical_url] = 1
            return Admission.ADMITTED

    @property
    def stopped(self) -> bool:
        return self._stopped

    def count(self, canonical_url: str) -> int:
        return self._visits.get(canonical_url, 0)

    def snapshot(self) -> dict[str, int]:
        """Return a copy of the visit counts."""
        with self._lock:
            return dict(self._visits)

    def __len__(self) -> int:
        return len(self._visits)

    def __contains__(self, canonical_url: object) -> bool:
        return canonical_url in self._visits
