"""Content source interface and chapter model."""

from abc import ABC, abstractmethod
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field


class Chapter(BaseModel):
    """One chapter of a novel as listed on its index page."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(description="Position in the directory listing (1-based)")
    id: str = Field(description="Absolute chapter URL, used as the document id")
    title: str = Field(default="", description="Chapter title")


class ContentSource(ABC):
    """A novel site that can list chapters and deliver their raw text.

    Implementations raise ``FetchError`` for network failures and for pages
    missing the expected content; they never retry internally.
    """

    @abstractmethod
    async def fetch_directory(self, url: str) -> list[Chapter]:
        """Fetch the ordered chapter list from a novel index page."""

    @abstractmethod
    async def fetch_document(self, chapter_id: str) -> str:
        """Fetch the raw body text of a chapter."""


def collection_id_from_url(url: str) -> str:
    """Derive the collection (novel) id from its index URL.

    Examples:
        "https://ncode.syosetu.com/n1234ab/" -> "n1234ab"
        "https://syosetu.org/novel/12345/" -> "12345"
    """
    path = urlparse(url).path if "://" in url else url
    parts = [p for p in path.split("/") if p]
    return parts[-1] if parts else "novel"
