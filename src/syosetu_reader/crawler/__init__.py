"""Crawler module for fetching chapters from Japanese web novel sites."""

from syosetu_reader.crawler.base import BaseCrawler
from syosetu_reader.crawler.sites import HamelnSite, NcodeSite, get_source
from syosetu_reader.crawler.source import Chapter, ContentSource, collection_id_from_url

__all__ = [
    "BaseCrawler",
    "Chapter",
    "ContentSource",
    "HamelnSite",
    "NcodeSite",
    "collection_id_from_url",
    "get_source",
]
