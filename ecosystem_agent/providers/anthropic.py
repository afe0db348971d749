"""Anthropic Claude answering backend using anthropic SDK with native async."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from ecosystem_agent.providers.base import AnsweringService, ServiceError

logger = logging.getLogger(__name__)


class AnthropicService(AnsweringService):
    """Anthropic Claude backend via anthropic SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__()
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ServiceError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    async def aclose(self) -> None:
        await self._client.close()

    async def ask(self, prompt: str) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ServiceError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ServiceError(self._config.name, f"API call failed: {exc}") from exc

        text_blocks = [b.text for b in response.content or [] if b.type == "text"]
        if not text_blocks:
            raise ServiceError(self._config.name, "No text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens
        self._record_tokens(token_count)

        logger.debug("Anthropic answer: %.2fs, %s tokens", time.monotonic() - start, token_count)
        return "\n".join(text_blocks)
