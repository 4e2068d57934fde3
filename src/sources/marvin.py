"""Amazing Marvin client (CouchDB-compatible sync database)."""

import time
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog

from cli.config_models import RetryConfig
from sync.errors import TransportError

from .base import ServiceClient

logger = structlog.get_logger(source="marvin")

RECENT_COMPLETION_DAYS = 14


@dataclass(frozen=True)
class MarvinCredentials:
    uri: str
    username: str
    password: str
    database_name: str


class MarvinClient(ServiceClient):
    """Query tasks and categories through the CouchDB ``_find`` endpoint."""

    service_name = "marvin"

    def __init__(
        self,
        credentials: MarvinCredentials,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryConfig] = None,
    ):
        super().__init__(
            base_url=credentials.uri,
            headers={"Accept": "application/json"},
            client=client,
            retry=retry,
        )
        self.credentials = credentials

    async def find_docs(self, selector: dict) -> list[dict]:
        """Return documents matching a Mango selector."""
        response = await self.post(
            f"{self.credentials.database_name}/_find",
            json={"selector": selector},
            auth=(self.credentials.username, self.credentials.password),
        )
        body = self.json_of(response, self.service_name)
        docs = body.get("docs") if isinstance(body, dict) else None
        if not isinstance(docs, list):
            raise TransportError("marvin: _find response has no 'docs' list")
        return [doc for doc in docs if isinstance(doc, dict)]

    async def get_category_id_by_title(self, title: str) -> str:
        docs = await self.find_docs({"db": "Categories", "type": "category", "title": title})
        if not docs:
            raise TransportError(f"marvin: no category found with title '{title}'")
        if len(docs) > 1:
            raise TransportError(
                f"marvin: found {len(docs)} categories with title '{title}', expected exactly one"
            )
        category_id = docs[0].get("_id")
        if not isinstance(category_id, str):
            raise TransportError(f"marvin: category '{title}' does not have a valid _id")
        return category_id

    async def find_recently_completed_tasks_in_category(
        self, category_title: str, days: int = RECENT_COMPLETION_DAYS
    ) -> list[dict]:
        """Tasks in the category marked done within the last ``days`` days."""
        category_id = await self.get_category_id_by_title(category_title)
        since_ms = int(time.time() * 1000) - days * 24 * 60 * 60 * 1000
        tasks = await self.find_docs(
            {
                "db": "Tasks",
                "parentId": category_id,
                "done": True,
                "doneAt": {"$gte": since_ms},
            }
        )
        logger.debug("marvin_tasks_fetched", category=category_title, count=len(tasks))
        return tasks
