"""Focusmate API client."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import httpx

from cli.config_models import RetryConfig
from sync.errors import TransportError

from .base import ServiceClient, format_datetime, parse_datetime

FOCUSMATE_API = "https://api.focusmate.com/v1"


@dataclass(frozen=True)
class SessionUser:
    user_id: str
    completed: bool = False
    session_title: Optional[str] = None


@dataclass(frozen=True)
class Session:
    """A booked session; ``users[0]`` is the API key's owner."""

    session_id: str
    start_time: Optional[datetime]
    duration_ms: int
    users: tuple[SessionUser, ...] = ()
    partner_name: Optional[str] = field(default=None, compare=False)

    @property
    def me(self) -> Optional[SessionUser]:
        return self.users[0] if self.users else None

    @property
    def partner(self) -> Optional[SessionUser]:
        return self.users[1] if len(self.users) > 1 else None

    @property
    def completed(self) -> bool:
        return bool(self.me and self.me.completed)

    @classmethod
    def from_api(cls, data: dict) -> "Session":
        users = tuple(
            SessionUser(
                user_id=str(u.get("userId") or ""),
                completed=bool(u.get("completed", False)),
                session_title=u.get("sessionTitle"),
            )
            for u in data.get("users") or []
            if isinstance(u, dict)
        )
        return cls(
            session_id=str(data.get("sessionId") or ""),
            start_time=parse_datetime(data.get("startTime")),
            duration_ms=int(data.get("duration") or 0),
            users=users,
        )


class FocusmateClient(ServiceClient):
    service_name = "focusmate"

    def __init__(
        self,
        api_key: str,
        base_url: str = FOCUSMATE_API,
        client: Optional[httpx.AsyncClient] = None,
        retry: Optional[RetryConfig] = None,
    ):
        super().__init__(
            base_url=base_url, headers={"X-API-KEY": api_key}, client=client, retry=retry
        )

    async def get_sessions(self, start: datetime, end: datetime) -> list[Session]:
        payload = await self.get_json(
            "sessions", params={"start": format_datetime(start), "end": format_datetime(end)}
        )
        sessions = payload.get("sessions") if isinstance(payload, dict) else None
        if not isinstance(sessions, list):
            raise TransportError("focusmate: response has no 'sessions' list")
        try:
            return [Session.from_api(s) for s in sessions if isinstance(s, dict)]
        except (TypeError, ValueError) as e:
            raise TransportError(f"focusmate: malformed session: {e}") from e

    async def get_user_name(self, user_id: str) -> str:
        payload = await self.get_json(f"users/{user_id}")
        user = payload.get("user") if isinstance(payload, dict) else None
        if not isinstance(user, dict) or not user.get("name"):
            raise TransportError(f"focusmate: no profile name for user {user_id}")
        return str(user["name"])
