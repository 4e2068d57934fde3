"""Base async HTTP client shared by service adapters."""

from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog

from cli.config_models import RetryConfig
from cli.retry import http_retry
from sync.errors import TransportError

logger = structlog.get_logger(source="sources")

USER_AGENT = "beesync/0.1.0"


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601/RFC 3339 string to an aware UTC datetime.

    Naive strings are assumed to be UTC. Returns None when missing or unparseable.
    """
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        logger.warning("unparseable_datetime", value=value)
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_datetime(value: datetime) -> str:
    """Format an aware datetime as RFC 3339 in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class ServiceClient:
    """Async HTTP client with retrying GETs and error translation.

    Every transport or HTTP status failure surfaces as ``TransportError`` so
    callers only deal with the sync error taxonomy.
    """

    service_name = "source"

    def __init__(
        self,
        base_url: str = "",
        headers: Optional[dict] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryConfig] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            timeout=30.0,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
        )
        if client is not None and headers:
            self.client.headers.update(headers)
        retry = retry or RetryConfig()
        self._get_with_retry = http_retry(
            max_attempts=retry.max_attempts,
            min_wait=retry.min_wait,
            max_wait=retry.max_wait,
            exceptions=(httpx.TransportError,),
        )(self._get_once)

    def url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _get_once(self, url: str, params=None) -> httpx.Response:
        response = await self.client.get(url, params=params)
        response.raise_for_status()
        return response

    async def get(self, path: str, params=None) -> httpx.Response:
        """GET with retry on transport errors; raises TransportError."""
        url = self.url(path)
        logger.debug("http_get", service=self.service_name, url=url)
        try:
            return await self._get_with_retry(url, params=params)
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{self.service_name}: HTTP {e.response.status_code} from {url}: "
                f"{e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{self.service_name}: request to {url} failed: {e}") from e

    async def post(self, path: str, **kwargs) -> httpx.Response:
        """Single-attempt POST; raises TransportError."""
        url = self.url(path)
        logger.debug("http_post", service=self.service_name, url=url)
        try:
            response = await self.client.post(url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{self.service_name}: HTTP {e.response.status_code} from {url}: "
                f"{e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{self.service_name}: request to {url} failed: {e}") from e

    @staticmethod
    def json_of(response: httpx.Response, service: str = "source"):
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"{service}: invalid JSON in response: {e}") from e

    async def get_json(self, path: str, params=None):
        response = await self.get(path, params=params)
        return self.json_of(response, self.service_name)

    async def close(self):
        """Close the async client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
