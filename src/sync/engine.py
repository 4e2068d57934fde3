"""Reconciliation engine: append-only mirroring and per-day aggregate correction."""

from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional

import structlog

from shared_types import DedupStrategy
from target.base import TargetStore

from .dedup import DedupIndex
from .errors import ClassificationError, MappingError, TargetWriteError, TransportError
from .mapping import daystamp as to_daystamp
from .models import EPOCH, CanonicalDatapoint, JobSummary, TargetDatapoint
from .watermark import resolve_watermark

logger = structlog.get_logger(source="engine")

EPSILON = 0.01

Fetcher = Callable[[Optional[datetime]], Awaitable[list[Any]]]
Mapper = Callable[[Any], CanonicalDatapoint]
FanOut = Callable[[CanonicalDatapoint], list[str]]


def creation_order(datapoints: list[CanonicalDatapoint]) -> list[CanonicalDatapoint]:
    """Non-decreasing timestamp; untimed datapoints keep their order at the end."""
    return sorted(datapoints, key=lambda dp: (dp.timestamp is None, dp.timestamp or EPOCH))


class AppendOnlyJob:
    """Create target datapoints for source records not yet mirrored.

    With ``use_watermark`` the source is asked only for records newer than the
    goal's most recent datapoint. Otherwise ``fetch`` receives None and
    returns a fixed window. Existing datapoints are never modified.
    """

    def __init__(
        self,
        name: str,
        goal: str,
        target: TargetStore,
        fetch: Fetcher,
        mapper: Mapper,
        strategy: DedupStrategy,
        use_watermark: bool = False,
        history_floor: int = 0,
        full_history: bool = False,
        fan_out: Optional[FanOut] = None,
        dry_run: bool = False,
    ):
        self.name = name
        self.goal = goal
        self.target = target
        self.fetch = fetch
        self.mapper = mapper
        self.strategy = strategy
        self.use_watermark = use_watermark
        self.history_floor = history_floor
        self.full_history = full_history
        self.fan_out = fan_out
        self.dry_run = dry_run
        self.log = logger.bind(job=name, goal=goal)

    async def _history(self, candidates: int) -> list[TargetDatapoint]:
        if self.full_history:
            return await self.target.list_datapoints(self.goal, sort="timestamp")
        count = max(candidates, self.history_floor)
        return await self.target.list_datapoints(self.goal, sort="timestamp", count=count)

    def _map_all(self, records: list, summary: JobSummary) -> list[CanonicalDatapoint]:
        candidates = []
        for record in records:
            try:
                candidates.append(self.mapper(record))
            except MappingError as e:
                summary.errors.append(f"mapping: {e}")
                self.log.warning("record_skipped", error=str(e))
        summary.mapped = len(candidates)
        return candidates

    async def run(self) -> JobSummary:
        """Mirror new records into the goal.

        Raises:
            TransportError: watermark, source or history fetch failed.
        """
        summary = JobSummary(job=self.name, goal=self.goal)

        since = await resolve_watermark(self.target, self.goal) if self.use_watermark else None
        records = await self.fetch(since)
        summary.fetched = len(records)

        candidates = self._map_all(records, summary)
        if not candidates:
            self.log.info("nothing_to_sync", fetched=summary.fetched)
            return summary

        index = DedupIndex.build(await self._history(len(candidates)), self.strategy)
        pending = []
        for dp in candidates:
            if index.contains(dp):
                summary.skipped += 1
                continue
            index.add(dp)
            pending.append(dp)

        ordered = creation_order(pending)
        for position, dp in enumerate(ordered):
            if not await self._create(self.goal, dp, summary):
                if self.use_watermark:
                    self.log.warning("batch_halted", remaining=len(ordered) - position - 1)
                    break
                continue
            summary.created += 1
            for extra_goal in self.fan_out(dp) if self.fan_out else []:
                await self._create(extra_goal, dp, summary)

        self.log.info(
            "sync_complete",
            fetched=summary.fetched,
            created=summary.created,
            skipped=summary.skipped,
            errors=len(summary.errors),
        )
        return summary

    async def _create(self, goal: str, dp: CanonicalDatapoint, summary: JobSummary) -> bool:
        if self.dry_run:
            self.log.info("would_create", target_goal=goal, comment=dp.comment)
            return True
        try:
            await self.target.create_datapoint(goal, dp)
        except TargetWriteError as e:
            summary.errors.append(f"create in {goal}: {e}")
            self.log.error("create_failed", target_goal=goal, comment=dp.comment, error=str(e))
            return False
        self.log.info("datapoint_created", target_goal=goal, comment=dp.comment)
        return True


DayFetcher = Callable[[datetime, datetime], Awaitable[list[str]]]
Classify = Callable[[list[str]], Awaitable[tuple[str, float]]]
DayWindows = Callable[[], list[tuple[datetime, datetime, date]]]


class AggregateCorrectionJob:
    """Converge one datapoint per day onto a freshly computed verdict.

    Existing datapoints for a day whose value disagrees are deleted; the fresh
    datapoint is created unless one already agrees.
    """

    def __init__(
        self,
        name: str,
        goal: str,
        target: TargetStore,
        windows: DayWindows,
        fetch_titles: DayFetcher,
        classify: Classify,
        history_limit: int = 50,
        dry_run: bool = False,
    ):
        self.name = name
        self.goal = goal
        self.target = target
        self.windows = windows
        self.fetch_titles = fetch_titles
        self.classify = classify
        self.history_limit = history_limit
        self.dry_run = dry_run
        self.log = logger.bind(job=name, goal=goal)

    async def _verdicts(self, windows, summary: JobSummary) -> list[tuple[str, CanonicalDatapoint]]:
        verdicts = []
        for start, end, bucket in windows:
            stamp = to_daystamp(bucket)
            try:
                titles = await self.fetch_titles(start, end)
                summary.fetched += len(titles)
                comment, value = await self.classify(titles)
            except (TransportError, ClassificationError) as e:
                summary.errors.append(f"{stamp}: {e}")
                self.log.error("day_skipped", daystamp=stamp, error=str(e))
                continue
            verdicts.append((stamp, CanonicalDatapoint(value=value, comment=comment, daystamp=stamp)))
        summary.mapped = len(verdicts)
        return verdicts

    async def run(self) -> JobSummary:
        """Correct the last days' datapoints, oldest first.

        Raises:
            TransportError: existing datapoints cannot be read.
        """
        summary = JobSummary(job=self.name, goal=self.goal)
        windows = self.windows()
        verdicts = await self._verdicts(windows, summary)
        if not verdicts:
            return summary

        # At least one datapoint per day in the lookback
        count = max(self.history_limit, len(windows))
        existing = await self.target.list_datapoints(self.goal, count=count)
        by_day: dict[str, list[TargetDatapoint]] = {}
        for dp in existing:
            if dp.daystamp:
                by_day.setdefault(dp.daystamp, []).append(dp)

        for stamp, fresh in verdicts:
            await self._reconcile_day(stamp, fresh, by_day.get(stamp, []), summary)

        self.log.info(
            "sync_complete",
            days=len(verdicts),
            created=summary.created,
            deleted=summary.deleted,
            unchanged=summary.unchanged,
            errors=len(summary.errors),
        )
        return summary

    async def _reconcile_day(
        self,
        stamp: str,
        fresh: CanonicalDatapoint,
        existing: list[TargetDatapoint],
        summary: JobSummary,
    ):
        already_correct = False
        delete_failed = False
        for dp in existing:
            if abs(dp.value - fresh.value) <= EPSILON:
                already_correct = True
                continue
            if self.dry_run:
                self.log.info("would_delete", daystamp=stamp, datapoint_id=dp.id, value=dp.value)
                summary.deleted += 1
                continue
            try:
                await self.target.delete_datapoint(self.goal, dp.id)
            except TargetWriteError as e:
                summary.errors.append(f"{stamp}: {e}")
                self.log.error("delete_failed", daystamp=stamp, datapoint_id=dp.id, error=str(e))
                delete_failed = True
                continue
            summary.deleted += 1
            self.log.info("datapoint_deleted", daystamp=stamp, datapoint_id=dp.id, value=dp.value)

        if already_correct:
            summary.unchanged += 1
            self.log.debug("day_unchanged", daystamp=stamp)
            return
        if delete_failed:
            return

        if self.dry_run:
            self.log.info("would_create", daystamp=stamp, value=fresh.value, comment=fresh.comment)
            summary.created += 1
            return
        try:
            await self.target.create_datapoint(self.goal, fresh)
        except TargetWriteError as e:
            summary.errors.append(f"{stamp}: {e}")
            self.log.error("create_failed", daystamp=stamp, error=str(e))
            return
        summary.created += 1
        self.log.info("datapoint_created", daystamp=stamp, value=fresh.value, comment=fresh.comment)
