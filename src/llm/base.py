"""Base LLM provider abstraction."""

from abc import ABC, abstractmethod


class LLMError(Exception):
    """Base LLM error."""


class LLMRateLimitError(LLMError):
    """Rate limit hit."""


class LLMAuthError(LLMError):
    """Authentication failure."""


class LLMProvider(ABC):
    """Abstract LLM provider interface. Calls are blocking."""

    provider_name: str = "base"
    model: str = ""

    @abstractmethod
    def generate(
        self, messages: list[dict], system: str | None = None, max_tokens: int = 300
    ) -> str:
        """Generate a response from messages.

        Args:
            messages: List of {"role": ..., "content": ...} dicts
            system: Optional system prompt
            max_tokens: Max response tokens

        Returns:
            Generated text (empty string if the model produced none)

        Raises:
            LLMAuthError, LLMRateLimitError, LLMError
        """
        ...
