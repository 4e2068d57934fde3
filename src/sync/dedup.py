"""Membership index of records already mirrored to the target."""

from datetime import datetime
from typing import Hashable, Iterable, Optional, Union

from shared_types import DedupStrategy

from .models import CanonicalDatapoint, TargetDatapoint

Datapoint = Union[CanonicalDatapoint, TargetDatapoint]


def _whole_seconds(value: datetime) -> int:
    return int(value.timestamp())


def dedup_key(datapoint: Datapoint, strategy: DedupStrategy) -> Optional[Hashable]:
    """Key of ``datapoint`` under ``strategy``, or None if it lacks the field.

    Timestamps compare at whole-second precision since the target stores Unix
    seconds.
    """
    if strategy == DedupStrategy.IDENTIFIER:
        return datapoint.external_id or None
    if strategy == DedupStrategy.TIMESTAMP:
        return _whole_seconds(datapoint.timestamp) if datapoint.timestamp else None
    if strategy == DedupStrategy.LABEL:
        return datapoint.comment or None
    raise ValueError(f"Unknown dedup strategy: {strategy}")


class DedupIndex:
    """Set of dedup keys for one goal under one strategy."""

    def __init__(self, strategy: DedupStrategy, keys: Optional[set] = None):
        self.strategy = strategy
        self._keys: set = keys if keys is not None else set()

    @classmethod
    def build(cls, existing: Iterable[TargetDatapoint], strategy: DedupStrategy) -> "DedupIndex":
        keys = set()
        for dp in existing:
            key = dedup_key(dp, strategy)
            if key is not None:
                keys.add(key)
        return cls(strategy, keys)

    def contains(self, datapoint: Datapoint) -> bool:
        key = dedup_key(datapoint, self.strategy)
        return key is not None and key in self._keys

    def add(self, datapoint: Datapoint) -> None:
        key = dedup_key(datapoint, self.strategy)
        if key is not None:
            self._keys.add(key)

    def __len__(self) -> int:
        return len(self._keys)
