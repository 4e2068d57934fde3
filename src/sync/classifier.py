"""LLM judgment of a day's browser window titles."""

import asyncio
from typing import Optional

import structlog

from cli.config_models import RetryConfig
from cli.retry import retry_from_config
from llm import LLMError, LLMProvider, LLMRateLimitError

from .errors import ClassificationError

logger = structlog.get_logger(source="classifier")

TITLES_PLACEHOLDER = "{{titles}}"
NO_TITLES_COMMENT = "No titles."
APPROVED_COMMENT = "Classifier approved."


def render_prompt(template: str, titles: list[str]) -> str:
    """Substitute the newline-joined titles for ``{{titles}}``."""
    return template.replace(TITLES_PLACEHOLDER, "\n".join(titles))


def parse_verdict(response: str) -> tuple[str, float]:
    """``(comment, value)`` from a classifier answer.

    A trimmed answer of exactly ``no`` approves the day (1.0). Anything else
    flags it (0.0) with the answer's second line as the comment.
    """
    if response.strip() == "no":
        return APPROVED_COMMENT, 1.0
    lines = response.splitlines()
    return (lines[1] if len(lines) > 1 else ""), 0.0


class LLMClassifier:
    """Judges window titles through an LLM provider.

    Provider calls are blocking and run in a worker thread; rate limits are
    retried with the LLM backoff policy.
    """

    def __init__(
        self,
        provider: LLMProvider,
        prompt_template: str,
        max_tokens: int = 300,
        retry: Optional[RetryConfig] = None,
    ):
        self.provider = provider
        self.prompt_template = prompt_template
        self.max_tokens = max_tokens
        self._generate = retry_from_config(
            retry or RetryConfig(), retry_type="llm", exceptions=(LLMRateLimitError,)
        )(self._generate_once)

    def _generate_once(self, prompt: str) -> str:
        return self.provider.generate(
            [{"role": "user", "content": prompt}], max_tokens=self.max_tokens
        )

    async def classify(self, titles: list[str]) -> tuple[str, float]:
        """Verdict for a day's titles; no LLM call when there are none.

        Raises:
            ClassificationError: provider failure or empty answer.
        """
        if not titles:
            return NO_TITLES_COMMENT, 1.0

        prompt = render_prompt(self.prompt_template, titles)
        try:
            response = await asyncio.to_thread(self._generate, prompt)
        except LLMError as e:
            raise ClassificationError(f"{self.provider.provider_name}: {e}") from e
        if response is None:
            raise ClassificationError(f"{self.provider.provider_name}: empty response")

        comment, value = parse_verdict(response)
        logger.debug("titles_classified", count=len(titles), value=value)
        return comment, value
