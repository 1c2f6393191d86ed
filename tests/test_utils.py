"""Tests for chapter selection helpers and error mapping."""

import pytest

from syosetu_reader.errors import (
    FetchError,
    ServiceError,
    StorageReadDegraded,
    StorageWriteError,
    TaskFailure,
)
from syosetu_reader.utils.chapters import filter_chapters, parse_chapter_range


class TestParseChapterRange:
    """Tests for parse_chapter_range."""

    def test_empty_means_all(self):
        assert parse_chapter_range("", 4) == [1, 2, 3, 4]

    def test_simple_range(self):
        assert parse_chapter_range("1-5", 100) == [1, 2, 3, 4, 5]

    def test_mixed(self):
        assert parse_chapter_range("1-3, 8,10-11", 100) == [1, 2, 3, 8, 10, 11]

    def test_clamped_to_available(self):
        assert parse_chapter_range("3-10,20", 5) == [3, 4, 5]

    def test_overlaps_deduplicated(self):
        assert parse_chapter_range("1-3,2-4,3", 10) == [1, 2, 3, 4]

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_chapter_range("a-b", 10)

    def test_reversed_range(self):
        with pytest.raises(ValueError, match="Reversed"):
            parse_chapter_range("5-1", 10)


class TestFilterChapters:
    """Tests for filter_chapters."""

    def test_by_title_and_index(self, chapter_factory):
        chapters = [chapter_factory(i) for i in (1, 2, 12)]
        assert filter_chapters(chapters, "") == chapters
        assert [c.index for c in filter_chapters(chapters, "2")] == [2, 12]
        assert [c.index for c in filter_chapters(chapters, "第1話")] == [1]


class TestTaskFailure:
    """Tests for failure reasons."""

    @pytest.mark.parametrize(
        "exc,prefix",
        [
            (FetchError("HTTP 404"), "fetch failed: HTTP 404"),
            (ServiceError("timeout"), "translation service failed: timeout"),
            (StorageWriteError("disk full"), "storage write failed: disk full"),
            (StorageReadDegraded("bad json"), "storage unreadable: bad json"),
            (KeyError("x"), "unexpected error: 'x'"),
        ],
    )
    def test_reason(self, exc, prefix):
        failure = TaskFailure.from_exception("doc", exc, "fetching")
        assert failure.reason == prefix
        assert failure.__cause__ is exc
        assert failure.stage == "fetching"
