"""Translation module for Japanese to Chinese translation."""

from syosetu_reader.translator.glossary import TermPair, parse_term_line, parse_term_pairs
from syosetu_reader.translator.llm import LLMClient
from syosetu_reader.translator.service import LLMTranslator, TranslationService

__all__ = [
    "LLMClient",
    "LLMTranslator",
    "TermPair",
    "TranslationService",
    "parse_term_line",
    "parse_term_pairs",
]
