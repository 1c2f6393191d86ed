"""Durable cache of finished chapter translations."""

from pathlib import Path
from typing import Optional

from syosetu_reader.store.json_store import JsonFileStore


class TranslationCache(JsonFileStore):
    """Maps collection id → {chapter id → translated text}.

    ``put`` does not reject overwrites; the pipeline checks ``get`` before
    starting work, which makes entries write-once in practice.
    """

    def __init__(self, path: Path = Path("translations.json"), strict_reads: bool = False):
        super().__init__(path, strict_reads)

    def get(self, collection_id: str, chapter_id: str) -> Optional[str]:
        return self.read_all().get(collection_id, {}).get(chapter_id)

    def put(self, collection_id: str, chapter_id: str, text: str) -> None:
        """Store a translation, replacing the file atomically."""
        with self.locked():
            data = self.read_all()
            data.setdefault(collection_id, {})[chapter_id] = text
            self.write_all(data)

    def list_cached(self, collection_id: str) -> set[str]:
        return set(self.read_all().get(collection_id, {}))
