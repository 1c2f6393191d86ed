"""OpenAI-compatible LLM client wrapper."""

from typing import Optional

import openai
import structlog

from syosetu_reader.config import LLMConfig, get_config
from syosetu_reader.errors import ServiceError

logger = structlog.get_logger()


class LLMClient:
    """OpenAI-compatible chat completion client (DeepSeek by default).

    Each call is a single attempt; failures surface as ``ServiceError``.
    """

    def __init__(self, config: Optional[LLMConfig] = None):
        """Initialize the LLM client.

        Args:
            config: LLM configuration, uses global config if None
        """
        self.config = config or get_config().llm
        self._client: Optional[openai.AsyncOpenAI] = None

    @property
    def client(self) -> openai.AsyncOpenAI:
        """Lazy-load the OpenAI client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        user_prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send one completion request.

        Args:
            user_prompt: User message content
            system_prompt: Optional system message content
            temperature: Override temperature (uses config default if None)
            max_tokens: Override max tokens (uses config default if None)

        Returns:
            Generated text content, stripped

        Raises:
            ServiceError: If the request fails or the response has no content
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                temperature=temperature if temperature is not None else self.config.temperature,
                max_tokens=max_tokens or self.config.max_tokens,
                stream=False,
            )
        except openai.OpenAIError as e:
            logger.warning("llm_request_failed", model=self.config.model, error=str(e))
            raise ServiceError(f"{type(e).__name__}: {e}") from e

        if not response.choices or response.choices[0].message.content is None:
            logger.warning("llm_response_missing_content", model=self.config.model)
            raise ServiceError("response is missing choices[0].message.content")

        if response.usage is not None:
            logger.debug(
                "llm_usage",
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )
        return response.choices[0].message.content.strip()
