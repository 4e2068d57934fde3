"""Canonical and target datapoint models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from shared_types import JobStatus

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class CanonicalDatapoint:
    """A datapoint ready to be mirrored into the goal tracker.

    ``external_id`` is sent as the Beeminder ``requestid`` so it is echoed back
    on every later fetch. Aggregate (per-day) datapoints carry a ``daystamp``
    and no ``timestamp``.
    """

    value: float
    comment: str
    timestamp: Optional[datetime] = None
    daystamp: Optional[str] = None
    external_id: Optional[str] = None

    def to_params(self) -> dict:
        """Form parameters for the Beeminder create endpoint."""
        params: dict = {"value": self.value, "comment": self.comment}
        if self.timestamp is not None:
            params["timestamp"] = int(self.timestamp.timestamp())
        if self.daystamp:
            params["daystamp"] = self.daystamp
        if self.external_id:
            params["requestid"] = self.external_id
        return params


@dataclass(frozen=True)
class TargetDatapoint:
    """A datapoint as stored by the goal tracker."""

    id: str
    value: float
    timestamp: Optional[datetime] = None
    daystamp: Optional[str] = None
    comment: str = ""
    external_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "TargetDatapoint":
        ts = data.get("timestamp")
        return cls(
            id=str(data["id"]),
            value=float(data.get("value") or 0.0),
            timestamp=datetime.fromtimestamp(ts, tz=timezone.utc) if ts is not None else None,
            daystamp=data.get("daystamp"),
            comment=data.get("comment") or "",
            external_id=data.get("requestid"),
        )


@dataclass
class JobSummary:
    """Counters and per-unit errors from one job run."""

    job: str
    goal: str
    fetched: int = 0
    mapped: int = 0
    skipped: int = 0
    created: int = 0
    deleted: int = 0
    unchanged: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def status(self) -> JobStatus:
        if not self.errors:
            return JobStatus.SUCCESS
        if self.created or self.deleted or self.unchanged:
            return JobStatus.PARTIAL
        return JobStatus.ERROR

    @property
    def ok(self) -> bool:
        return not self.errors
