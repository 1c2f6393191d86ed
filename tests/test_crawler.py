"""Unit tests for the crawler module."""

import httpx
import pytest

from syosetu_reader.config import CrawlerConfig
from syosetu_reader.crawler import (
    HamelnSite,
    NcodeSite,
    collection_id_from_url,
    get_source,
)
from syosetu_reader.crawler.sites import extract_body_text, parse_hameln_index, parse_ncode_index
from syosetu_reader.errors import FetchError
from syosetu_reader.utils.encoding import decode_content, detect_encoding

NCODE_URL = "https://ncode.syosetu.com/n1234ab/"

NCODE_PAGE_1 = """
<html><body>
<div class="p-eplist">
  <div class="p-eplist__sublist"><a href="/n1234ab/1/" class="p-eplist__subtitle">
    プロローグ
  </a></div>
  <div class="p-eplist__sublist"><a href="/n1234ab/2/" class="p-eplist__subtitle">第一話　旅立ち</a></div>
</div>
<div class="c-pager"><a href="/n1234ab/?p=2" class="c-pager__item c-pager__item--next">次へ</a></div>
</body></html>
"""

NCODE_PAGE_2 = """
<html><body>
<div class="p-eplist">
  <div class="p-eplist__sublist"><a href="/n1234ab/3/" class="p-eplist__subtitle">第二話　王都</a></div>
</div>
</body></html>
"""

NCODE_CHAPTER = """
<html><body>
<div class="p-novel__body">
  <div class="js-novel-text p-novel__text">
    <p id="L1">　トウリは目を覚ました。</p>
    <p id="L2"><br></p>
    <p id="L3">「ここはどこだ？」</p>
  </div>
</div>
</body></html>
"""

HAMELN_INDEX = """
<html><body>
<div class="ss">
  <table>
    <tr><td><a href="./1.html">第1話</a></td></tr>
    <tr><td><a href="2.html">第2話</a></td></tr>
    <tr><td><a href="https://syosetu.org/">トップ</a></td></tr>
  </table>
</div>
</body></html>
"""


class TestEncoding:
    """Test encoding utilities."""

    def test_detect_utf8_encoding(self):
        content = "トウリは目を覚ました。".encode("utf-8")
        assert detect_encoding(content).lower() in ("utf-8", "utf-8-sig")

    def test_ascii_reported_as_utf8(self):
        assert detect_encoding(b"hello world") == "utf-8"

    def test_decode_with_explicit_encoding(self):
        text = "剣と魔法の世界"
        assert decode_content(text.encode("cp932"), "cp932") == text

    def test_decode_shift_jis(self):
        text = "トウリは目を覚ました。ここは王都の外れにある小さな村だった。" * 5
        assert decode_content(text.encode("cp932")) == text

    def test_decode_bad_explicit_encoding_falls_back(self):
        text = "こんにちは"
        assert decode_content(text.encode("utf-8"), "no-such-codec") == text


class TestParsing:
    """Test index and chapter parsing."""

    def test_parse_ncode_index(self):
        chapters, next_url = parse_ncode_index(NCODE_PAGE_1, NCODE_URL)

        assert [c.index for c in chapters] == [1, 2]
        assert chapters[0].id == "https://ncode.syosetu.com/n1234ab/1/"
        assert chapters[0].title == "プロローグ"
        assert chapters[1].title == "第一話　旅立ち"
        assert next_url == "https://ncode.syosetu.com/n1234ab/?p=2"

    def test_parse_ncode_last_page(self):
        chapters, next_url = parse_ncode_index(NCODE_PAGE_2, NCODE_URL, start_index=3)
        assert [c.index for c in chapters] == [3]
        assert next_url is None

    def test_parse_hameln_index(self):
        chapters = parse_hameln_index(HAMELN_INDEX, "https://syosetu.org/novel/12345")

        assert [c.title for c in chapters] == ["第1話", "第2話"]
        assert chapters[0].id == "https://syosetu.org/novel/12345/1.html"
        assert chapters[1].id == "https://syosetu.org/novel/12345/2.html"

    def test_extract_body_text(self):
        text = extract_body_text(NCODE_CHAPTER, "div.p-novel__body")
        assert text == "トウリは目を覚ました。\n「ここはどこだ？」"

    def test_extract_body_missing(self):
        with pytest.raises(FetchError, match="not found"):
            extract_body_text("<html><body><p>メンテナンス中</p></body></html>", "div#honbun")


class TestSourceSelection:
    """Test URL dispatch and collection ids."""

    def test_get_source(self):
        config = CrawlerConfig()
        assert isinstance(get_source(NCODE_URL, config), NcodeSite)
        assert isinstance(get_source("https://syosetu.org/novel/12345/", config), HamelnSite)

        adult = get_source("https://novel18.syosetu.com/n9999zz/", config)
        assert isinstance(adult, NcodeSite)
        assert adult.default_cookies() == {"over18": "yes"}

    def test_get_source_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported site"):
            get_source("https://kakuyomu.jp/works/1", CrawlerConfig())

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://ncode.syosetu.com/n1234ab/", "n1234ab"),
            ("https://ncode.syosetu.com/n1234ab", "n1234ab"),
            ("https://syosetu.org/novel/12345/", "12345"),
            ("https://syosetu.org/", "novel"),
        ],
    )
    def test_collection_id_from_url(self, url, expected):
        assert collection_id_from_url(url) == expected

    def test_hameln_sends_browser_headers(self):
        headers = HamelnSite(CrawlerConfig()).default_headers()
        assert headers["Sec-Fetch-Mode"] == "navigate"
        assert "User-Agent" in headers


class TestFetching:
    """Test fetching through a mock HTTP transport."""

    @pytest.mark.asyncio
    async def test_ncode_directory_follows_pager(self):
        pages = {
            "/n1234ab/": NCODE_PAGE_1,
            "/n1234ab/?p=2": NCODE_PAGE_2,
        }

        def handler(request: httpx.Request) -> httpx.Response:
            key = request.url.raw_path.decode()
            return httpx.Response(200, content=pages[key].encode("utf-8"))

        async with NcodeSite(CrawlerConfig(), transport=httpx.MockTransport(handler)) as site:
            chapters = await site.fetch_directory(NCODE_URL)

        assert [c.index for c in chapters] == [1, 2, 3]
        assert chapters[2].title == "第二話　王都"

    @pytest.mark.asyncio
    async def test_fetch_document(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=NCODE_CHAPTER.encode("utf-8"))

        async with NcodeSite(CrawlerConfig(), transport=httpx.MockTransport(handler)) as site:
            text = await site.fetch_document("https://ncode.syosetu.com/n1234ab/1/")

        assert text.startswith("トウリは目を覚ました。")

    @pytest.mark.asyncio
    async def test_http_error_raises_fetch_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with HamelnSite(CrawlerConfig(), transport=httpx.MockTransport(handler)) as site:
            with pytest.raises(FetchError, match="HTTP 503"):
                await site.fetch_document("https://syosetu.org/novel/12345/1.html")

    @pytest.mark.asyncio
    async def test_transport_error_raises_fetch_error(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        async with NcodeSite(CrawlerConfig(), transport=httpx.MockTransport(handler)) as site:
            with pytest.raises(FetchError):
                await site.fetch_document("https://ncode.syosetu.com/n1234ab/1/")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_adult_cookie_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["cookie"] = request.headers.get("cookie", "")
            return httpx.Response(200, content=NCODE_CHAPTER.encode("utf-8"))

        site = get_source("https://novel18.syosetu.com/n9999zz/", CrawlerConfig(), httpx.MockTransport(handler))
        async with site:
            await site.fetch_document("https://novel18.syosetu.com/n9999zz/1/")

        assert "over18=yes" in seen["cookie"]

    def test_client_requires_context(self):
        with pytest.raises(RuntimeError):
            NcodeSite(CrawlerConfig()).client
