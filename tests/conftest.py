"""Shared test fixtures for beesync."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cli.config_models import RetryConfig  # noqa: E402
from sync.errors import TargetWriteError  # noqa: E402
from sync.models import CanonicalDatapoint, TargetDatapoint  # noqa: E402
from target.base import TargetStore  # noqa: E402


class FakeTarget(TargetStore):
    """In-memory goal tracker that records every call.

    ``fail_creates`` / ``fail_deletes`` hold comments / ids whose write raises.
    """

    def __init__(self):
        self.goals: dict[str, list[TargetDatapoint]] = {}
        self.list_calls: list[tuple] = []
        self.created: list[tuple[str, CanonicalDatapoint]] = []
        self.deleted: list[tuple[str, str]] = []
        self.fail_creates: set[str] = set()
        self.fail_deletes: set[str] = set()
        self._next_id = 1

    def seed(self, goal: str, *datapoints: TargetDatapoint):
        self.goals.setdefault(goal, []).extend(datapoints)

    def add(self, goal: str, value: float = 1.0, timestamp=None, daystamp=None, comment="", external_id=None):
        dp = TargetDatapoint(
            id=f"dp{self._next_id}",
            value=value,
            timestamp=timestamp,
            daystamp=daystamp,
            comment=comment,
            external_id=external_id,
        )
        self._next_id += 1
        self.seed(goal, dp)
        return dp

    async def list_datapoints(self, goal, sort=None, count=None):
        self.list_calls.append((goal, sort, count))
        points = list(self.goals.get(goal, []))
        if sort == "timestamp":
            points.sort(
                key=lambda dp: dp.timestamp or datetime.min.replace(tzinfo=timezone.utc),
                reverse=True,
            )
        return points[:count] if count is not None else points

    async def create_datapoint(self, goal, datapoint):
        if datapoint.comment in self.fail_creates:
            raise TargetWriteError(f"create rejected: {datapoint.comment}")
        self.created.append((goal, datapoint))
        ts = datapoint.timestamp
        if ts is not None:
            ts = datetime.fromtimestamp(int(ts.timestamp()), tz=timezone.utc)
        return self.add(
            goal,
            value=datapoint.value,
            timestamp=ts,
            daystamp=datapoint.daystamp,
            comment=datapoint.comment,
            external_id=datapoint.external_id,
        )

    async def delete_datapoint(self, goal, datapoint_id):
        if datapoint_id in self.fail_deletes:
            raise TargetWriteError(f"delete rejected: {datapoint_id}")
        self.deleted.append((goal, datapoint_id))
        self.goals[goal] = [dp for dp in self.goals.get(goal, []) if dp.id != datapoint_id]

    async def close(self):
        pass


@pytest.fixture
def fake_target():
    return FakeTarget()


@pytest.fixture
def no_wait_retry():
    """Retry settings that never sleep."""
    return RetryConfig(max_attempts=3, min_wait=0, max_wait=0, llm_max_wait=0)


@pytest.fixture
def mock_transport_client():
    """Build an ``httpx.AsyncClient`` served by a handler function."""

    def build(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build
