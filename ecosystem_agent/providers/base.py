"""Abstract base for all answering-service backends."""

from abc import ABC, abstractmethod

from ecosystem_agent.errors import ExternalServiceError
from ecosystem_agent.models import UsageStats


class ServiceError(ExternalServiceError):
    """Raised when an answering-service call fails."""

    def __init__(self, service_name: str, message: str) -> None:
        self.service_name = service_name
        super().__init__(f"[{service_name}] {message}")


class AnsweringService(ABC):
    """Ask a question, get text back.

    Backends without a shared context cache inherit the no-op ``ensure_loaded``
    and report the token usage they counted themselves.
    """

    def __init__(self) -> None:
        self._usage = UsageStats()

    @abstractmethod
    def name(self) -> str:
        """Return the short backend name (e.g. 'mnemo', 'gemini')."""
        ...

    @abstractmethod
    async def ask(self, prompt: str) -> str:
        """Send a prompt and return the response text.

        Raises:
            ServiceError: On API failure, timeout, or empty response.
        """
        ...

    async def ensure_loaded(self, sources: list[str]) -> None:
        """Make sure the shared context is available. Idempotent."""
        return None

    async def usage_stats(self) -> UsageStats:
        return self._usage

    async def aclose(self) -> None:
        """Release the backend's client. Safe to call once per service."""
        return None

    def _record_tokens(self, token_count: int | None) -> None:
        if token_count:
            self._usage.tokens_used += token_count
