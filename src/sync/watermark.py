"""Cursor for incremental source fetches."""

from datetime import datetime

import structlog

from target.base import TargetStore

from .models import EPOCH

logger = structlog.get_logger(source="watermark")


async def resolve_watermark(target: TargetStore, goal: str) -> datetime:
    """Timestamp of the most recent datapoint of ``goal``.

    Falls back to the Unix epoch when the goal is empty or the most recent
    datapoint has value 0.0 (a reset marker, not a mirrored record).

    Raises:
        TransportError: the goal cannot be read.
    """
    latest = await target.list_datapoints(goal, sort="timestamp", count=1)
    if not latest:
        logger.debug("watermark_epoch", goal=goal, reason="empty_goal")
        return EPOCH

    newest = latest[0]
    if newest.value == 0.0 or newest.timestamp is None:
        logger.debug("watermark_epoch", goal=goal, reason="zero_marker")
        return EPOCH

    logger.debug("watermark_resolved", goal=goal, since=newest.timestamp.isoformat())
    return newest.timestamp
