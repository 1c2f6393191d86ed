"""Durable per-novel glossary with insert-if-absent merge semantics."""

from pathlib import Path
from typing import Iterable, Mapping

import structlog

from syosetu_reader.store.json_store import JsonFileStore
from syosetu_reader.translator.glossary import TermPair

logger = structlog.get_logger()


class GlossaryStore(JsonFileStore):
    """Maps collection id → {japanese term → chinese term}.

    Once a term exists for a collection its translation never changes through
    ``merge``; later conflicting values are discarded.
    """

    def __init__(self, path: Path = Path("keywords.json"), strict_reads: bool = False):
        super().__init__(path, strict_reads)

    def load(self, collection_id: str) -> dict[str, str]:
        """Return the term mapping for a collection (empty if none)."""
        return dict(self.read_all().get(collection_id, {}))

    def merge(self, collection_id: str, pairs: Iterable[TermPair]) -> dict[str, str]:
        """Insert pairs whose source term is absent and persist atomically.

        Returns:
            The collection's mapping after the merge

        Raises:
            StorageWriteError: If the file could not be replaced
        """
        with self.locked():
            data = self.read_all()
            entries = data.setdefault(collection_id, {})
            added = 0
            for pair in pairs:
                if pair.source not in entries:
                    entries[pair.source] = pair.target
                    added += 1
            self.write_all(data)

        logger.debug("glossary_merged", collection=collection_id, added=added, total=len(entries))
        return dict(entries)

    def restore(self, collection_id: str, entries: Mapping[str, str]) -> None:
        """Replace a collection's mapping with a previously loaded one.

        Only used to undo a merge whose chapter could not be cached.
        """
        with self.locked():
            data = self.read_all()
            if entries:
                data[collection_id] = dict(entries)
            else:
                data.pop(collection_id, None)
            self.write_all(data)

        logger.info("glossary_restored", collection=collection_id, total=len(entries))
