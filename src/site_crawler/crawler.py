"""HTTP page fetcher built on aiohttp."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import aiohttp

from .cancellation import CancellationSignal
from .exceptions import FetchError
from .models import DEFAULT_REQUEST_TIMEOUT, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one page fetch.

    html is set on success. On failure, cancelled tells an abort caused by
    the crawl's cancellation signal apart from an outright failure (bad
    status, wrong content type, transport error).
    """

    url: str
    html: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.html is not None


class Fetcher(Protocol):
    """Anything that can fetch a page's HTML.

    Must not raise, and must give up once the signal is tripped, returning
    a FetchResult with cancelled=True.
    """

    async def fetch(self, url: str, signal: CancellationSignal) -> FetchResult: ...


class PageFetcher:
    """Fetches HTML pages with a shared aiohttp session."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Lazy-init the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": self.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def _get(self, url: str) -> str:
        """GET url and return its HTML, raising FetchError for anything unusable."""
        session = await self._ensure_session()
        try:
            async with session.get(url) as resp:
                if resp.status >= 400:
                    raise FetchError(url, f"HTTP {resp.status}")
                content_type = resp.headers.get("Content-Type", "")
                if "text/html" not in content_type.lower():
                    raise FetchError(url, f"unexpected content type {content_type!r}")
                return await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(url, str(e) or type(e).__name__) from e

    async def fetch(self, url: str, signal: CancellationSignal) -> FetchResult:
        """Fetch url, racing the request against the cancellation signal.

        A request that finished with an error is a failure even if the signal
        tripped meanwhile; one still running, or one that would deliver
        content after the signal tripped, is reported as cancelled.
        """
        if signal.tripped:
            logger.debug(f"Fetch skipped for {url}: crawl cancelled")
            return FetchResult(url, error="crawl cancelled", cancelled=True)

        get_task = asyncio.ensure_future(self._get(url))
        cancel_task = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({get_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not get_task.done():
                get_task.cancel()

        # Drain the request task so its outcome is never left unretrieved.
        outcome = (await asyncio.gather(get_task, return_exceptions=True))[0]

        if isinstance(outcome, FetchError):
            logger.warning(str(outcome))
            return FetchResult(url, error=outcome.reason)
        if signal.tripped:
            logger.info(f"Fetch aborted for {url}: crawl cancelled")
            return FetchResult(url, error="crawl cancelled", cancelled=True)
        if isinstance(outcome, BaseException):
            raise outcome

        logger.debug(f"Fetched {url} ({len(outcome)} chars)")
        return FetchResult(url, html=outcome)

    async def close(self) -> None:
        """Clean up the HTTP session."""
        if self._session:
            try:
                await self._session.close()
            except Exception as e:
                logger.debug(f"Error closing HTTP session: {e}")
            self._session = None

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
