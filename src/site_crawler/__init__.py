"""site-crawler: bounded, concurrent same-host website crawler."""

__version__ = "0.1.0"

from .crawler import FetchResult, PageFetcher
from .dedup import Admission, VisitRegistry, normalize_url
from .exceptions import CrawlerError, FetchError, InvalidURLError
from .extraction import extract_page_data
from .link_discovery import get_urls_from_html
from .models import CrawlReport, CrawlSettings, PageData
from .scheduler import CrawlScheduler, crawl_site, crawl_site_pages

__all__ = [
    "Admission",
    "CrawlReport",
    "CrawlScheduler",
    "CrawlSettings",
    "CrawlerError",
    "FetchError",
    "FetchResult",
    "InvalidURLError",
    "PageData",
    "PageFetcher",
    "VisitRegistry",
    "crawl_site",
    "crawl_site_pages",
    "extract_page_data",
    "get_urls_from_html",
    "normalize_url",
]
