"""Gemini answering backend using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from ecosystem_agent.providers.base import AnsweringService, ServiceError

logger = logging.getLogger(__name__)


class GeminiService(AnsweringService):
    """Google Gemini backend via google-genai SDK."""

    def __init__(self, config: ModelConfig) -> None:
        super().__init__()
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ServiceError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    async def ask(self, prompt: str) -> str:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=prompt,
                    config=genai_types.GenerateContentConfig(
                        max_output_tokens=self._config.max_tokens,
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ServiceError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ServiceError(self._config.name, f"API call failed: {exc}") from exc

        if not response.text:
            raise ServiceError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count
        self._record_tokens(token_count)

        logger.debug("Gemini answer: %.2fs, %s tokens", time.monotonic() - start, token_count)
        return response.text
