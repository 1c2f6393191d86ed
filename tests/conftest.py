"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Mapping, Optional

import pytest
from dotenv import load_dotenv

from syosetu_reader.crawler.source import Chapter, ContentSource
from syosetu_reader.errors import FetchError, ServiceError
from syosetu_reader.store import GlossaryStore, TranslationCache
from syosetu_reader.translator.service import TranslationService

# Load .env at import time for pytest
load_dotenv()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")


@pytest.fixture(scope="session")
def openai_api_available():
    """Check if an OpenAI-compatible API key is available for testing."""
    api_key = os.getenv("OPENAI_API_KEY", "")
    return bool(api_key) and not api_key.startswith("sk-your")


def make_chapter(index: int, collection: str = "n0001aa") -> Chapter:
    return Chapter(
        index=index,
        id=f"https://ncode.syosetu.com/{collection}/{index}/",
        title=f"第{index}話",
    )


class FakeSource(ContentSource):
    """In-memory content source keyed by chapter id."""

    def __init__(self, documents: Optional[dict[str, str]] = None):
        self.documents = documents or {}
        self.fetch_calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}

    async def fetch_directory(self, url: str) -> list[Chapter]:
        return []

    async def fetch_document(self, chapter_id: str) -> str:
        self.fetch_calls.append(chapter_id)
        if chapter_id in self.gates:
            await self.gates[chapter_id].wait()
        if chapter_id not in self.documents:
            raise FetchError(f"HTTP 404 for {chapter_id}")
        return self.documents[chapter_id]


class FakeTranslator(TranslationService):
    """Translation service returning canned output keyed by raw text."""

    def __init__(self):
        self.translations: dict[str, str] = {}
        self.term_lines: dict[str, list[str]] = {}
        self.fail_translate: set[str] = set()
        self.fail_extract: set[str] = set()
        self.translate_calls: list[tuple[str, dict[str, str]]] = []
        self.extract_calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}

    async def translate(self, text: str, known_terms: Mapping[str, str]) -> str:
        self.translate_calls.append((text, dict(known_terms)))
        if text in self.gates:
            await self.gates[text].wait()
        if text in self.fail_translate:
            raise ServiceError("401 Unauthorized")
        return self.translations.get(text, f"译:{text}")

    async def extract_terms(
        self, translated_text: str, raw_text: str, known_terms: Mapping[str, str]
    ) -> list[str]:
        self.extract_calls.append(raw_text)
        if raw_text in self.fail_extract:
            raise ServiceError("response is missing choices[0].message.content")
        return list(self.term_lines.get(raw_text, []))


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def fake_translator():
    return FakeTranslator()


@pytest.fixture
def glossary_store(tmp_path):
    return GlossaryStore(tmp_path / "keywords.json")


@pytest.fixture
def cache(tmp_path):
    return TranslationCache(tmp_path / "translations.json")


@pytest.fixture
def chapters():
    """Three chapters of one novel."""
    return [make_chapter(i) for i in (1, 2, 3)]


@pytest.fixture
def chapter_factory():
    return make_chapter
