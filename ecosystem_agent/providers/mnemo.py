"""Mnemo context-cache service: shared documentation cache plus question answering over HTTP."""

import json
import logging
from typing import Any

import httpx

from config.config_loader import MnemoConfig
from ecosystem_agent.models import Err, Ok, UsageStats
from ecosystem_agent.providers.base import AnsweringService, ServiceError

logger = logging.getLogger(__name__)


def _tool_text(data: Any) -> Ok[str] | Err:
    """Pull the text out of an MCP-style tool payload ``{"content": [{"type": "text", "text": ...}]}``.

    Older deployments answer with a flat ``response``/``answer``/``text`` key.
    """
    if not isinstance(data, dict):
        return Err("decode", f"unexpected payload type {type(data).__name__}")
    content = data.get("content")
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict):
            return Ok(str(first.get("text") or ""))
    for key in ("response", "answer", "text"):
        if data.get(key):
            return Ok(str(data[key]))
    return Ok("")


class MnemoService(AnsweringService):
    """Answering backend backed by a shared Mnemo cache alias."""

    def __init__(self, config: MnemoConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__()
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Content-Type": "application/json"},
            timeout=config.timeout_sec,
            transport=transport,
        )

    def name(self) -> str:
        return "mnemo"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(self, tool: str, payload: dict[str, Any]) -> Ok[Any] | Err:
        try:
            response = await self._client.post(f"/tools/{tool}", json=payload)
        except httpx.TimeoutException as exc:
            return Err("network", f"{tool} timed out after {self._config.timeout_sec}s ({exc})")
        except httpx.HTTPError as exc:
            return Err("network", f"{tool}: {exc}")
        if response.is_error:
            return Err("http", f"{tool}: {response.status_code} {response.text}", response.status_code)
        try:
            return Ok(response.json())
        except ValueError as exc:
            return Err("decode", f"{tool}: invalid JSON ({exc})")

    async def ask(self, prompt: str) -> str:
        result = await self._call(
            "context_query",
            {
                "alias": self._config.alias,
                "query": prompt,
                "maxTokens": self._config.max_tokens,
                "temperature": self._config.temperature,
            },
        )
        if isinstance(result, Err):
            raise ServiceError(self.name(), f"Failed to query cache: {result.message}")
        text = _tool_text(result.value)
        if isinstance(text, Err):
            raise ServiceError(self.name(), text.message)
        return text.value

    async def list_caches(self) -> list[dict[str, Any]]:
        """Return active caches; an unreachable service is reported as no caches."""
        result = await self._call("context_list", {})
        if isinstance(result, Err):
            logger.warning("Could not list caches: %s", result.message)
            return []
        data = result.value
        if isinstance(data, dict) and isinstance(data.get("content"), list) and data["content"]:
            try:
                parsed = json.loads(data["content"][0].get("text") or "[]")
            except (ValueError, AttributeError):
                return []
            return parsed if isinstance(parsed, list) else []
        if isinstance(data, dict):
            return list(data.get("caches") or [])
        return []

    async def ensure_loaded(self, sources: list[str]) -> None:
        alias = self._config.alias
        caches = await self.list_caches()
        if any(isinstance(c, dict) and c.get("alias") == alias for c in caches):
            logger.info("Using existing shared cache: %s", alias)
            return

        logger.info("Loading shared cache %s with %d sources...", alias, len(sources))
        result = await self._call(
            "context_load",
            {
                "alias": alias,
                "sources": sources,
                "systemInstruction": self._config.system_instruction,
                "ttl": self._config.ttl_sec,
            },
        )
        if isinstance(result, Err):
            raise ServiceError(self.name(), f"Failed to load cache: {result.message}")
        logger.info("Loaded shared cache: %s", alias)

    async def usage_stats(self) -> UsageStats:
        result = await self._call("context_stats", {})
        if isinstance(result, Err) or not isinstance(result.value, dict):
            return UsageStats()
        data = result.value
        return UsageStats(
            cost=float(data.get("totalCost") or 0),
            tokens_used=int(data.get("tokensUsed") or 0),
        )
