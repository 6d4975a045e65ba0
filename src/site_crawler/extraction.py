"""Page content extraction: heading, lead paragraph, links and images."""

from typing import Optional

from bs4 import BeautifulSoup, Tag

from .link_discovery import collect_urls
from .models import PageData


def _text_of(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return element.get_text().strip()


def _first_paragraph(soup: BeautifulSoup) -> str:
    # A <p> inside <main> wins over any earlier one in the page.
    main = soup.find("main")
    if main is not None:
        paragraph = main.find("p")
        if paragraph is not None:
            return _text_of(paragraph)
    return _text_of(soup.find("p"))


def get_h1_from_html(html: str) -> str:
    """Return the stripped text of the first <h1>, or "" if there is none."""
    soup = BeautifulSoup(html, "html.parser")
    return _text_of(soup.find("h1"))


def get_first_paragraph_from_html(html: str) -> str:
    """Return the first paragraph, preferring one inside <main>."""
    return _first_paragraph(BeautifulSoup(html, "html.parser"))


def extract_page_data(html: str, page_url: str) -> PageData:
    """Collect everything we report about a page in one parse."""
    soup = BeautifulSoup(html, "html.parser")
    return PageData(
        url=page_url,
        h1=_text_of(soup.find("h1")),
        first_paragraph=_first_paragraph(soup),
        outgoing_links=collect_urls(soup, "a", "href", page_url),
        image_urls=collect_urls(soup, "img", "src", page_url),
    )
