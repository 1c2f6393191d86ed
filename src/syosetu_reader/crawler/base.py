"""Base HTTP crawler with encoding support."""

from typing import Optional

import httpx
import structlog

from syosetu_reader.config import CrawlerConfig, get_config
from syosetu_reader.errors import FetchError
from syosetu_reader.utils.encoding import decode_content

logger = structlog.get_logger()


class BaseCrawler:
    """HTTP client with encoding support.

    Each fetch is a single attempt; failures surface as ``FetchError``.
    """

    http2: bool = False

    def __init__(
        self,
        config: Optional[CrawlerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the crawler.

        Args:
            config: Crawler configuration, uses global config if None
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.config = config or get_config().crawler
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def default_headers(self) -> dict[str, str]:
        """Headers sent with every request."""
        return {
            "User-Agent": self.config.user_agent,
            "Accept-Language": self.config.accept_language,
        }

    def default_cookies(self) -> dict[str, str]:
        """Cookies sent with every request."""
        return {}

    async def __aenter__(self) -> "BaseCrawler":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout_seconds),
            headers=self.default_headers(),
            cookies=self.default_cookies(),
            follow_redirects=True,
            max_redirects=10,
            http2=self.http2 and self._transport is None,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raise if not initialized."""
        if self._client is None:
            raise RuntimeError("Crawler not initialized. Use 'async with' context manager.")
        return self._client

    async def fetch_raw(self, url: str) -> bytes:
        """Fetch URL content as raw bytes.

        Args:
            url: URL to fetch

        Returns:
            Raw bytes content

        Raises:
            FetchError: On transport failure or non-2xx status
        """
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("http_error", status=e.response.status_code, url=url)
            raise FetchError(f"HTTP {e.response.status_code} for {url}") from e
        except httpx.HTTPError as e:
            logger.warning("fetch_failed", error=str(e), url=url)
            raise FetchError(f"request to {url} failed: {e}") from e
        return response.content

    async def fetch(self, url: str, encoding: Optional[str] = None) -> str:
        """Fetch URL content as decoded string.

        Args:
            url: URL to fetch
            encoding: Optional explicit encoding, auto-detect if None

        Returns:
            Decoded string content
        """
        content = await self.fetch_raw(url)
        return decode_content(content, encoding)
