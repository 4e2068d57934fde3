"""Goal-tracker store interface used by the reconciliation engine."""

from abc import ABC, abstractmethod
from typing import Optional

from sync.models import CanonicalDatapoint, TargetDatapoint


class TargetStore(ABC):
    """Where mirrored datapoints live. The single source of truth for dedup."""

    @abstractmethod
    async def list_datapoints(
        self, goal: str, sort: Optional[str] = None, count: Optional[int] = None
    ) -> list[TargetDatapoint]:
        """Datapoints of ``goal``; with ``sort="timestamp"`` most recent first.

        Raises:
            TransportError: the goal cannot be read.
        """
        ...

    @abstractmethod
    async def create_datapoint(self, goal: str, datapoint: CanonicalDatapoint) -> TargetDatapoint:
        """Raises TargetWriteError on failure."""
        ...

    @abstractmethod
    async def delete_datapoint(self, goal: str, datapoint_id: str) -> None:
        """Raises TargetWriteError on failure."""
        ...
