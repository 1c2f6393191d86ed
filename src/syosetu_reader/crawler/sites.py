"""Site-specific content sources for syosetu novels."""

from typing import Optional
from urllib.parse import urljoin, urlparse

import httpx
import structlog
from bs4 import BeautifulSoup

from syosetu_reader.config import CrawlerConfig
from syosetu_reader.crawler.base import BaseCrawler
from syosetu_reader.crawler.source import Chapter, ContentSource
from syosetu_reader.errors import FetchError

logger = structlog.get_logger()

# Upper bound on followed index pages, guards against pager loops
MAX_INDEX_PAGES = 200


def extract_body_text(html: str, selector: str) -> str:
    """Return the trimmed, non-empty text nodes under ``selector`` joined by newlines.

    Raises:
        FetchError: If the page has no element matching ``selector``
    """
    soup = BeautifulSoup(html, "lxml")
    element = soup.select_one(selector)
    if element is None:
        raise FetchError(f"chapter body not found ({selector})")
    return "\n".join(element.stripped_strings)


def parse_ncode_index(html: str, page_url: str, start_index: int = 1) -> tuple[list[Chapter], Optional[str]]:
    """Parse one ncode index page.

    Returns:
        Chapters on the page and the URL of the next index page, if any
    """
    soup = BeautifulSoup(html, "lxml")
    chapters = []
    for link in soup.select("a.p-eplist__subtitle"):
        href = link.get("href")
        if not href:
            continue
        chapters.append(
            Chapter(
                index=start_index + len(chapters),
                id=urljoin(page_url, href),
                title="".join(link.stripped_strings),
            )
        )

    next_link = soup.select_one("a.c-pager__item--next")
    next_url = urljoin(page_url, next_link["href"]) if next_link and next_link.get("href") else None
    return chapters, next_url


def parse_hameln_index(html: str, index_url: str) -> list[Chapter]:
    """Parse a syosetu.org index page into chapters."""
    soup = BeautifulSoup(html, "lxml")
    base = index_url.rstrip("/") + "/"
    chapters = []
    for link in soup.select("div.ss table a[href$='.html']"):
        href = link["href"]
        chapters.append(
            Chapter(
                index=len(chapters) + 1,
                id=href if href.startswith("http") else urljoin(base, href),
                title=link.get_text().strip(),
            )
        )
    return chapters


class NcodeSite(BaseCrawler, ContentSource):
    """ncode.syosetu.com and novel18.syosetu.com."""

    BODY_SELECTOR = "div.p-novel__body"

    def __init__(
        self,
        config: Optional[CrawlerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        adult: bool = False,
    ):
        super().__init__(config, transport)
        self.adult = adult

    def default_cookies(self) -> dict[str, str]:
        # novel18 shows an age gate without this cookie
        return {"over18": "yes"} if self.adult else {}

    async def fetch_directory(self, url: str) -> list[Chapter]:
        chapters: list[Chapter] = []
        page_url: Optional[str] = url
        seen: set[str] = set()

        while page_url and page_url not in seen and len(seen) < MAX_INDEX_PAGES:
            seen.add(page_url)
            html = await self.fetch(page_url)
            page_chapters, page_url = parse_ncode_index(html, page_url, len(chapters) + 1)
            chapters.extend(page_chapters)

        logger.info("directory_fetched", url=url, chapters=len(chapters), pages=len(seen))
        return chapters

    async def fetch_document(self, chapter_id: str) -> str:
        html = await self.fetch(chapter_id)
        return extract_body_text(html, self.BODY_SELECTOR)


class HamelnSite(BaseCrawler, ContentSource):
    """syosetu.org (Hameln).

    The site rejects plain HTTP/1.1 clients, so requests go out over HTTP/2
    with browser navigation headers.
    """

    BODY_SELECTOR = "div#honbun"
    http2 = True

    def default_headers(self) -> dict[str, str]:
        headers = super().default_headers()
        headers.update(
            {
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "none",
                "Upgrade-Insecure-Requests": "1",
            }
        )
        return headers

    async def fetch_directory(self, url: str) -> list[Chapter]:
        html = await self.fetch(url)
        chapters = parse_hameln_index(html, url)
        logger.info("directory_fetched", url=url, chapters=len(chapters), pages=1)
        return chapters

    async def fetch_document(self, chapter_id: str) -> str:
        html = await self.fetch(chapter_id)
        return extract_body_text(html, self.BODY_SELECTOR)


def get_source(
    url: str,
    config: Optional[CrawlerConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseCrawler:
    """Pick the content source for a novel index URL.

    Raises:
        ValueError: If the URL's host is not a supported site
    """
    host = (urlparse(url).hostname or "").lower()
    if host == "ncode.syosetu.com":
        return NcodeSite(config, transport)
    if host == "novel18.syosetu.com":
        return NcodeSite(config, transport, adult=True)
    if host in ("syosetu.org", "www.syosetu.org"):
        return HamelnSite(config, transport)
    raise ValueError(f"Unsupported site: {host or url}")
