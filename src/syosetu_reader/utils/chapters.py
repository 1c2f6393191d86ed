"""Chapter selection helpers for the command line."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from syosetu_reader.crawler.source import Chapter


def parse_chapter_range(spec: str, max_chapter: int) -> list[int]:
    """Parse chapter range specification.

    Args:
        spec: Range specification like "1-100" or "1,5,10-20"
        max_chapter: Maximum chapter number

    Returns:
        List of chapter indices (1-based)

    Raises:
        ValueError: If a part is not a number or range, or a range is reversed

    Examples:
        "1-10" -> [1, 2, 3, ..., 10]
        "1,5,10" -> [1, 5, 10]
        "1-5,10,15-20" -> [1, 2, 3, 4, 5, 10, 15, 16, 17, 18, 19, 20]
    """
    if not spec:
        return list(range(1, max_chapter + 1))

    result = set()

    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, end = part.split("-", 1)
            first = max(int(start.strip()), 1)
            last = int(end.strip())
            if first > last:
                raise ValueError(f"Reversed chapter range: {part}")
            result.update(range(first, min(last + 1, max_chapter + 1)))
        else:
            idx = int(part)
            if 1 <= idx <= max_chapter:
                result.add(idx)

    return sorted(result)


def filter_chapters(chapters: list["Chapter"], query: str) -> list["Chapter"]:
    """Filter chapters by case-insensitive title substring or index digits."""
    if not query:
        return list(chapters)
    q = query.lower()
    return [c for c in chapters if q in c.title.lower() or q in str(c.index)]
