"""OpenAI answering backend using openai SDK with native async.

Also serves OpenAI-compatible endpoints when ``base_url`` is configured.
"""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from ecosystem_agent.providers.base import AnsweringService, ServiceError

logger = logging.getLogger(__name__)


class OpenAIService(AnsweringService):
    """OpenAI backend via openai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__()
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ServiceError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    async def aclose(self) -> None:
        await self._client.close()

    async def ask(self, prompt: str) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=self._config.max_tokens,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ServiceError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ServiceError(self._config.name, f"API call failed: {exc}") from exc

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ServiceError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens
        self._record_tokens(token_count)

        logger.debug("OpenAI answer: %.2fs, %s tokens", time.monotonic() - start, token_count)
        return choice.message.content
