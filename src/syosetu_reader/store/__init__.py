"""Durable glossary and translation cache stores."""

from syosetu_reader.store.glossary_store import GlossaryStore
from syosetu_reader.store.json_store import JsonFileStore
from syosetu_reader.store.translation_cache import TranslationCache

__all__ = ["GlossaryStore", "JsonFileStore", "TranslationCache"]
