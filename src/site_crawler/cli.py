"""CLI entry point for site-crawler."""

import argparse
import asyncio
import json
import logging
import math
import os
import sys
from typing import Optional, Sequence

from .exceptions import ArgumentError
from .models import DEFAULT_MAX_CONCURRENCY, DEFAULT_MAX_PAGES, CrawlSettings
from .scheduler import CrawlScheduler


def _ensure_utf8() -> None:
    """Ensure stdout/stderr use UTF-8 on Windows to avoid charmap errors."""
    if sys.platform == "win32":
        os.environ.setdefault("PYTHONUTF8", "1")
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting with status 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ArgumentError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="site-crawler",
        description="Crawl every page of a website reachable from a starting URL",
    )
    parser.add_argument(
        "args",
        nargs="*",
        metavar="BASE_URL [MAX_CONCURRENCY MAX_PAGES]",
        help=(
            "Starting URL, optionally followed by the maximum number of concurrent "
            f"fetches (default: {DEFAULT_MAX_CONCURRENCY}) and the maximum number of "
            f"pages (default: {DEFAULT_MAX_PAGES})"
        ),
    )
    parser.add_argument(
        "--output",
        choices=["json", "table"],
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def parse_positive_int(name: str, raw: str) -> int:
    """Parse a finite, positive number and truncate it to an int."""
    try:
        value = float(raw)
    except ValueError:
        raise ArgumentError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise ArgumentError(f"{name} must be a finite positive number, got {raw!r}")
    number = int(value)
    if number < 1:
        raise ArgumentError(f"{name} must be at least 1, got {raw!r}")
    return number


def settings_from_args(positional: Sequence[str]) -> CrawlSettings:
    """Validate the positional arguments and build CrawlSettings."""
    if len(positional) < 1:
        raise ArgumentError("no base URL provided.")
    if len(positional) not in (1, 3):
        raise ArgumentError(
            "wrong number of arguments. Usage: site-crawler BASE_URL [MAX_CONCURRENCY MAX_PAGES]"
        )

    base_url = positional[0]
    max_concurrency = DEFAULT_MAX_CONCURRENCY
    max_pages = DEFAULT_MAX_PAGES
    if len(positional) == 3:
        max_concurrency = parse_positive_int("max concurrency", positional[1])
        max_pages = parse_positive_int("max pages", positional[2])

    return CrawlSettings.from_env(base_url, max_concurrency=max_concurrency, max_pages=max_pages)


def main(argv: Optional[Sequence[str]] = None) -> int:
    _ensure_utf8()
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        settings = settings_from_args(args.args)
    except ArgumentError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    print(f"Starting crawl at {settings.base_url}")

    async def run() -> CrawlScheduler:
        scheduler = CrawlScheduler(settings)
        await scheduler.crawl()
        return scheduler

    scheduler = asyncio.run(run())
    report = scheduler.report()

    if args.output == "json":
        print(json.dumps(report.model_dump(), indent=2))
    else:
        for url, count in report.pages.items():
            print(f"{url}: {count}")
        if not report.pages:
            print("\nNo pages were crawled.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
