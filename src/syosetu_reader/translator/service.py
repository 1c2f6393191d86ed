"""Translation service interface and its LLM-backed implementation."""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

import structlog

from syosetu_reader.translator.glossary import format_existing_pairs, format_known_terms
from syosetu_reader.translator.llm import LLMClient

logger = structlog.get_logger()


TRANSLATE_PROMPT = """请将以下日文内容完整、准确地翻译成中文。
要求：
1. 保持原文段落结构；
2. 不要添加任何解释、注释或额外信息；
3. **仅输出译文，不要输出原文或其他解释；**
4. 注重文章原本的表达，特别是对话需要准确反映语气与人物特点。

{content}"""

KEYWORD_PROMPT = """请根据以下已提取的翻译列表、日文原文和中文译文，
从中找出新的专有名词（日文原文中的人名、地名、招式名、非常见物品名等），以及它们
在译文中的对应中文译名。
要求：
1. 仅输出新的翻译对照，不要重复已提取条目；
2. 输出格式为 JSONL，每行一个，例如:{{"japanese":"トウリ","chinese":"托莉"}}；
3. **不要添加任何说明、注释或其他额外内容。不要使用markdown格式或使用三引号将json包裹**

已提取的翻译列表:
{existing_pairs}

日文原文:
{japanese_text}

中文译文:
{chinese_text}"""


class TranslationService(ABC):
    """Translates chapter text and discovers new proper-noun pairs.

    Implementations raise ``ServiceError`` for transport/auth failures and for
    responses missing their payload.
    """

    @abstractmethod
    async def translate(self, text: str, known_terms: Mapping[str, str]) -> str:
        """Translate raw text, honouring the known term pairs."""

    @abstractmethod
    async def extract_terms(
        self,
        translated_text: str,
        raw_text: str,
        known_terms: Mapping[str, str],
    ) -> list[str]:
        """Return response lines, each expected to hold one JSON term pair."""


class LLMTranslator(TranslationService):
    """Japanese → Chinese translation through an OpenAI-compatible chat model."""

    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm or LLMClient()

    def build_translate_prompt(self, text: str, known_terms: Mapping[str, str]) -> str:
        known = f"已知翻译对照：{format_known_terms(known_terms)}\n" if known_terms else ""
        return TRANSLATE_PROMPT.format(content=f"{known}{text}")

    def build_keyword_prompt(
        self,
        translated_text: str,
        raw_text: str,
        known_terms: Mapping[str, str],
    ) -> str:
        return KEYWORD_PROMPT.format(
            existing_pairs=format_existing_pairs(known_terms) or "(无)",
            japanese_text=raw_text,
            chinese_text=translated_text,
        )

    async def translate(self, text: str, known_terms: Mapping[str, str]) -> str:
        logger.debug("translate_request", chars=len(text), known_terms=len(known_terms))
        return await self.llm.complete(self.build_translate_prompt(text, known_terms))

    async def extract_terms(
        self,
        translated_text: str,
        raw_text: str,
        known_terms: Mapping[str, str],
    ) -> list[str]:
        prompt = self.build_keyword_prompt(translated_text, raw_text, known_terms)
        response = await self.llm.complete(prompt)
        return response.split("\n")
