"""Fatebook forecasting API client."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from cli.config_models import RetryConfig
from sync.errors import TransportError

from .base import ServiceClient, parse_datetime

DEFAULT_URL = "https://fatebook.io/api"


@dataclass(frozen=True)
class Question:
    id: str
    title: str
    created_at: Optional[datetime]

    @classmethod
    def from_api(cls, data: dict) -> "Question":
        return cls(
            id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            created_at=parse_datetime(data.get("createdAt")),
        )


class FatebookClient(ServiceClient):
    service_name = "fatebook"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_URL,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryConfig] = None,
    ):
        super().__init__(base_url=base_url, client=client, retry=retry)
        self.api_key = api_key

    async def get_questions(self, limit: int = 10000) -> list[Question]:
        """Most recent questions, newest first."""
        payload = await self.get_json(
            "v0/getQuestions", params={"apiKey": self.api_key, "limit": limit}
        )
        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise TransportError("fatebook: response has no 'items' list")
        return [Question.from_api(item) for item in items if isinstance(item, dict)]
