"""Term pairs: parsing extraction output and formatting known terms for prompts."""

import json
from typing import Iterable, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = structlog.get_logger()


class TermPair(BaseModel):
    """A single glossary entry (Japanese source term → Chinese target term).

    On the wire the pair is the JSON object
    ``{"japanese": "トウリ", "chinese": "托莉"}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str = Field(alias="japanese", min_length=1, description="Japanese term")
    target: str = Field(alias="chinese", min_length=1, description="Chinese translation")

    def to_line(self) -> str:
        """Serialize as one JSONL line in wire form."""
        return json.dumps(self.model_dump(by_alias=True), ensure_ascii=False)


def parse_term_line(line: str) -> Optional[TermPair]:
    """Parse one extraction output line.

    Returns:
        The term pair, or None if the line is not a JSON object with
        non-empty ``japanese`` and ``chinese`` strings
    """
    line = line.strip().rstrip(",")
    if not line.startswith("{"):
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    source, target = data.get("japanese"), data.get("chinese")
    try:
        return TermPair.model_validate(
            {
                "japanese": source.strip() if isinstance(source, str) else source,
                "chinese": target.strip() if isinstance(target, str) else target,
            }
        )
    except ValidationError:
        return None


def parse_term_pairs(lines: Iterable[str]) -> list[TermPair]:
    """Parse extraction output, dropping malformed lines."""
    pairs = []
    skipped = 0
    for line in lines:
        if not line.strip() or line.strip().startswith("```"):
            continue
        pair = parse_term_line(line)
        if pair is None:
            skipped += 1
            continue
        pairs.append(pair)

    if skipped:
        logger.debug("term_lines_skipped", skipped=skipped, parsed=len(pairs))
    return pairs


def format_known_terms(terms: Mapping[str, str]) -> str:
    """Known pairs as the inline ``jp:zh, ...`` list used by the translate prompt."""
    return ", ".join(f"{jp}:{zh}" for jp, zh in terms.items())


def format_existing_pairs(terms: Mapping[str, str]) -> str:
    """Known pairs as JSON lines, the same shape the extractor must answer in."""
    return "\n".join(TermPair(source=jp, target=zh).to_line() for jp, zh in terms.items())
