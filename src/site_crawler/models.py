"""Pydantic models for crawl settings, page data and crawl results."""

from __future__ import annotations

import logging
import os
from typing import Optional

from pydantic import BaseModel, Field

from . import __version__

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5
DEFAULT_MAX_PAGES = 100
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_USER_AGENT = f"site-crawler/{__version__}"

USER_AGENT_ENV = "SITE_CRAWLER_USER_AGENT"
TIMEOUT_ENV = "SITE_CRAWLER_TIMEOUT"


class CrawlSettings(BaseModel):
    """Budgets and client options for one crawl run."""

    base_url: str = Field(description="Starting address; only pages on its host are crawled")
    max_concurrency: int = Field(
        default=DEFAULT_MAX_CONCURRENCY,
        ge=1,
        description="Maximum number of page fetches in flight at once",
    )
    max_pages: int = Field(
        default=DEFAULT_MAX_PAGES,
        ge=1,
        description="Maximum number of distinct pages admitted to the crawl",
    )
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        gt=0,
        description="Total timeout for a single page fetch, in seconds",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        min_length=1,
        description="User-Agent header sent with every request",
    )

    @classmethod
    def from_env(cls, base_url: str, **overrides) -> CrawlSettings:
        """Build settings, taking user agent and timeout from the environment when set."""
        values: dict = {}
        user_agent = os.getenv(USER_AGENT_ENV)
        if user_agent:
            values["user_agent"] = user_agent
        raw_timeout = os.getenv(TIMEOUT_ENV)
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                logger.warning(f"Ignoring invalid {TIMEOUT_ENV}={raw_timeout!r}")
            else:
                if timeout > 0:
                    values["request_timeout"] = timeout
                else:
                    logger.warning(f"Ignoring non-positive {TIMEOUT_ENV}={raw_timeout!r}")
        values.update(overrides)
        return cls(base_url=base_url, **values)


class PageData(BaseModel):
    """Content pulled out of a single HTML page."""

    url: str
    h1: str = ""
    first_paragraph: str = ""
    outgoing_links: list[str] = Field(default_factory=list)
    image_urls: list[str] = Field(default_factory=list)


class CrawlReport(BaseModel):
    """Final result returned to the library consumer."""

    base_url: str = Field(description="The starting URL of the crawl")
    pages: dict[str, int] = Field(
        default_factory=dict,
        description="Canonical URL -> number of times it was encountered",
    )
    failed_pages: list[str] = Field(
        default_factory=list,
        description="Admitted pages whose fetch failed; not included in pages",
    )
    pages_crawled: int = Field(default=0, description="Pages fetched successfully")
    pages_failed: int = Field(default=0, description="Admitted pages whose fetch failed")
    pages_cancelled: int = Field(default=0, description="Fetches aborted once the page budget ran out")
    budget_exhausted: bool = Field(default=False)
    max_concurrency_observed: Optional[int] = Field(
        default=None,
        description="Highest number of fetches that were in flight at once",
    )
