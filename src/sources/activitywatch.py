"""ActivityWatch REST client for window-title events."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from cli.config_models import RetryConfig
from sync.errors import TransportError

from .base import ServiceClient, format_datetime, parse_datetime

DEFAULT_URL = "http://localhost:5600"


@dataclass(frozen=True)
class WindowEvent:
    """One window-watcher event."""

    id: int
    timestamp: Optional[datetime]
    duration: float
    app: str
    title: str


class ActivityWatchClient(ServiceClient):
    service_name = "activitywatch"

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryConfig] = None,
    ):
        super().__init__(base_url=base_url, client=client, retry=retry)

    async def get_events(self, bucket: str, start: datetime, end: datetime) -> list[WindowEvent]:
        """Events of ``bucket`` within ``[start, end]``."""
        payload = await self.get_json(
            f"api/0/buckets/{bucket}/events",
            params={"start": format_datetime(start), "end": format_datetime(end)},
        )
        if not isinstance(payload, list):
            raise TransportError("activitywatch: expected a list of events")

        events = []
        for raw in payload:
            try:
                data = raw.get("data") or {}
                events.append(
                    WindowEvent(
                        id=int(raw.get("id") or 0),
                        timestamp=parse_datetime(raw.get("timestamp")),
                        duration=float(raw.get("duration") or 0.0),
                        app=str(data.get("app") or ""),
                        title=str(data.get("title") or ""),
                    )
                )
            except (AttributeError, TypeError, ValueError) as e:
                raise TransportError(f"activitywatch: malformed event {raw!r}: {e}") from e
        return events


def sum_duration_by_title(events: list[WindowEvent]) -> dict[str, float]:
    """Total seconds spent per distinct window title."""
    totals: dict[str, float] = {}
    for event in events:
        totals[event.title] = totals.get(event.title, 0.0) + event.duration
    return totals
