"""Main orchestrator: recursive same-host crawl with bounded fetch concurrency."""

import asyncio
import logging
from typing import Callable, Optional

from .cancellation import CancellationSignal
from .crawler import Fetcher, PageFetcher
from .dedup import Admission, VisitRegistry, normalize_url
from .exceptions import InvalidURLError
from .limiter import ConcurrencyLimiter
from .link_discovery import get_hostname, get_urls_from_html
from .models import DEFAULT_MAX_CONCURRENCY, DEFAULT_MAX_PAGES, CrawlReport, CrawlSettings

logger = logging.getLogger(__name__)

LinkExtractor = Callable[[str, str], list[str]]


class CrawlScheduler:
    """Runs one crawl of a single site.

    Every discovered link becomes its own task. A page's task waits for all
    of its children before it completes, so awaiting the root task covers
    the whole reachable subtree. Fetches are gated by a ConcurrencyLimiter;
    a page gives its slot back before its children start fetching.

    Relative links are resolved against the crawl's base URL, not the page
    they were found on.
    """

    def __init__(
        self,
        settings: CrawlSettings,
        fetcher: Optional[Fetcher] = None,
        link_extractor: LinkExtractor = get_urls_from_html,
    ) -> None:
        self.settings = settings
        self._owns_fetcher = fetcher is None
        self.fetcher: Fetcher = fetcher or PageFetcher(
            user_agent=settings.user_agent,
            timeout=settings.request_timeout,
        )
        self.link_extractor = link_extractor
        self.signal = CancellationSignal()
        self.registry = VisitRegistry(settings.max_pages, signal=self.signal)
        self.limiter = ConcurrencyLimiter(settings.max_concurrency)
        self._outstanding: set[asyncio.Task] = set()
        self._started = False
        self.pages_crawled = 0
        self.pages_failed = 0
        self.pages_cancelled = 0
        self._failed: set[str] = set()

    @property
    def base_url(self) -> str:
        return self.settings.base_url

    def _spawn(self, url: str) -> asyncio.Task:
        task = asyncio.ensure_future(self._run_branch(url))
        self._outstanding.add(task)
        task.add_done_callback(self._outstanding.discard)
        return task

    async def _run_branch(self, url: str) -> None:
        # One branch never takes down the crawl.
        try:
            await self.crawl_page(url)
        except Exception:
            logger.exception(f"Unexpected error while crawling {url}")

    def _same_host(self, url: str) -> Optional[bool]:
        """True/False for host match, None when either URL cannot be parsed."""
        try:
            base_host = get_hostname(self.base_url)
            host = get_hostname(url)
        except ValueError as e:
            logger.warning(f"Skipping {url}: {e}")
            return None
        if base_host is None:
            logger.warning(f"Base URL has no host: {self.base_url}")
            return None
        if host is None:
            logger.debug(f"Skipping {url}: no host")
            return None
        return host == base_host

    async def crawl_page(self, url: str) -> None:
        """Crawl url and, recursively, every same-host page it links to."""
        same_host = self._same_host(url)
        if not same_host:
            if same_host is False:
                logger.debug(f"Skipping off-site link {url}")
            return

        try:
            canonical = normalize_url(url)
        except InvalidURLError as e:
            logger.warning(str(e))
            return

        admission = self.registry.try_admit(canonical)
        if admission is not Admission.ADMITTED:
            logger.debug(f"Not crawling {canonical}: {admission.value}")
            return

        async with self.limiter:
            logger.info(f"Crawling {canonical}")
            result = await self.fetcher.fetch(url, self.signal)

        if not result.ok:
            if result.cancelled:
                # Aborted by budget exhaustion; it was admitted, so it stays in the result.
                self.pages_cancelled += 1
            else:
                self.pages_failed += 1
                self._failed.add(canonical)
            return
        self.pages_crawled += 1

        links = self.link_extractor(result.html, self.base_url)
        if not links:
            return
        logger.debug(f"{canonical} yielded {len(links)} links")

        children = [self._spawn(link) for link in links]
        await asyncio.gather(*children)

    async def crawl(self) -> dict[str, int]:
        """Crawl the whole site and return canonical URL -> visit count."""
        if self._started:
            raise RuntimeError("CrawlScheduler.crawl() can only be run once")
        self._started = True

        logger.info(
            f"Starting crawl of {self.base_url} "
            f"(max_concurrency={self.settings.max_concurrency}, max_pages={self.settings.max_pages})"
        )
        try:
            root = self._spawn(self.base_url)
            await root
            # Anything that escaped a parent's join is still tracked here.
            while self._outstanding:
                await asyncio.gather(*list(self._outstanding))
        finally:
            if self._owns_fetcher:
                await self.fetcher.close()

        logger.info(
            f"Done: {len(self.registry)} pages admitted, {self.pages_crawled} fetched, "
            f"{self.pages_failed} failed, {self.pages_cancelled} cancelled"
        )
        return self.results()

    def results(self) -> dict[str, int]:
        """Visit counts for every admitted page whose fetch did not fail.

        The registry still holds failed pages so they are neither refetched
        nor free to exceed the page budget.
        """
        return {
            url: count
            for url, count in self.registry.snapshot().items()
            if url not in self._failed
        }

    def report(self) -> CrawlReport:
        """Summarize the crawl. Call after crawl()."""
        return CrawlReport(
            base_url=self.base_url,
            pages=self.results(),
            failed_pages=sorted(self._failed),
            pages_crawled=self.pages_crawled,
            pages_failed=self.pages_failed,
            pages_cancelled=self.pages_cancelled,
            budget_exhausted=self.registry.stopped,
            max_concurrency_observed=self.limiter.peak,
        )


async def crawl_site(
    base_url: str,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    max_pages: int = DEFAULT_MAX_PAGES,
    fetcher: Optional[Fetcher] = None,
    **settings,
) -> CrawlReport:
    """Crawl a website and return a CrawlReport.

    This is the primary public API.

    Args:
        base_url: Starting URL; only pages on its host are followed.
        max_concurrency: Maximum fetches in flight at once (default 5).
        max_pages: Maximum distinct pages to admit (default 100).
        fetcher: Optional Fetcher to use instead of the aiohttp one.
        **settings: Extra CrawlSettings fields (request_timeout, user_agent).
    """
    crawl_settings = CrawlSettings(
        base_url=base_url,
        max_concurrency=max_concurrency,
        max_pages=max_pages,
        **settings,
    )
    scheduler = CrawlScheduler(crawl_settings, fetcher=fetcher)
    await scheduler.crawl()
    return scheduler.report()


async def crawl_site_pages(
    base_url: str,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    max_pages: int = DEFAULT_MAX_PAGES,
    fetcher: Optional[Fetcher] = None,
    **settings,
) -> dict[str, int]:
    """Crawl a website and return only the canonical URL -> visit count map."""
    report = await crawl_site(base_url, max_concurrency, max_pages, fetcher=fetcher, **settings)
    return report.pages
