"""Beeminder API v1 client."""

from typing import Optional

import httpx
import structlog

from cli.config_models import RetryConfig
from sources.base import ServiceClient
from sync.errors import TargetWriteError, TransportError
from sync.models import CanonicalDatapoint, TargetDatapoint

from .base import TargetStore

logger = structlog.get_logger(source="beeminder")

BEEMINDER_API = "https://www.beeminder.com/api/v1"


class BeeminderClient(ServiceClient, TargetStore):
    """Datapoint CRUD for one Beeminder user."""

    service_name = "beeminder"

    def __init__(
        self,
        username: str,
        auth_token: str,
        base_url: str = BEEMINDER_API,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryConfig] = None,
    ):
        super().__init__(base_url=base_url, client=client, retry=retry)
        self.username = username
        self.auth_token = auth_token

    def _goal_path(self, goal: str) -> str:
        return f"users/{self.username}/goals/{goal}"

    async def list_datapoints(
        self, goal: str, sort: Optional[str] = None, count: Optional[int] = None
    ) -> list[TargetDatapoint]:
        params: dict = {"auth_token": self.auth_token}
        if sort:
            params["sort"] = sort
        if count is not None:
            params["count"] = count
        payload = await self.get_json(f"{self._goal_path(goal)}/datapoints.json", params=params)
        if not isinstance(payload, list):
            raise TransportError(f"beeminder: expected a datapoint list for goal '{goal}'")
        try:
            return [TargetDatapoint.from_api(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"beeminder: malformed datapoint in '{goal}': {e}") from e

    async def create_datapoint(self, goal: str, datapoint: CanonicalDatapoint) -> TargetDatapoint:
        url = self.url(f"{self._goal_path(goal)}/datapoints.json")
        data = {"auth_token": self.auth_token, **datapoint.to_params()}
        try:
            response = await self.client.post(url, data=data)
            response.raise_for_status()
            return TargetDatapoint.from_api(response.json())
        except httpx.HTTPStatusError as e:
            raise TargetWriteError(
                f"beeminder: create in '{goal}' failed with HTTP {e.response.status_code}: "
                f"{e.response.text[:200]}"
            ) from e
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            raise TargetWriteError(f"beeminder: create in '{goal}' failed: {e}") from e

    async def delete_datapoint(self, goal: str, datapoint_id: str) -> None:
        url = self.url(f"{self._goal_path(goal)}/datapoints/{datapoint_id}.json")
        try:
            response = await self.client.delete(url, params={"auth_token": self.auth_token})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TargetWriteError(
                f"beeminder: delete of {datapoint_id} in '{goal}' failed with HTTP "
                f"{e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TargetWriteError(
                f"beeminder: delete of {datapoint_id} in '{goal}' failed: {e}"
            ) from e
