"""Tests for per-day aggregate correction."""

from datetime import date, datetime, timedelta, timezone

import pytest

from shared_types import JobStatus
from sync.engine import AggregateCorrectionJob
from sync.errors import ClassificationError, TransportError

UTC = timezone.utc


def windows_for(*days: date):
    def windows():
        result = []
        for d in days:
            end = datetime(d.year, d.month, d.day, tzinfo=UTC)
            result.append((end - timedelta(days=1), end, d))
        return result

    return windows


def fixed_titles(by_end_day: dict):
    async def fetch(start, end):
        value = by_end_day.get(end.date(), [])
        if isinstance(value, Exception):
            raise value
        return value

    return fetch


def verdicts(by_first_title: dict):
    async def classify(titles):
        if not titles:
            return "No titles.", 1.0
        verdict = by_first_title[titles[0]]
        if isinstance(verdict, Exception):
            raise verdict
        return verdict

    return classify


def make_job(target, days, titles, classify, **kwargs):
    return AggregateCorrectionJob(
        name="clean_view",
        goal="view",
        target=target,
        windows=windows_for(*days),
        fetch_titles=fixed_titles(titles),
        classify=classify,
        **kwargs,
    )


class TestAggregateCorrection:
    @pytest.mark.asyncio
    async def test_converges_wrong_value(self, fake_target):
        stale = fake_target.add("view", value=0.0, daystamp="20240101", comment="flagged")
        job = make_job(
            fake_target,
            [date(2024, 1, 1)],
            {date(2024, 1, 1): ["Docs - Firefox"]},
            verdicts({"Docs - Firefox": ("Classifier approved.", 1.0)}),
        )
        summary = await job.run()

        assert fake_target.deleted == [("view", stale.id)]
        assert len(fake_target.created) == 1
        goal, created = fake_target.created[0]
        assert (created.daystamp, created.value) == ("20240101", 1.0)
        assert created.timestamp is None
        assert summary.deleted == 1
        assert summary.created == 1

    @pytest.mark.asyncio
    async def test_matching_value_is_left_alone(self, fake_target):
        fake_target.add("view", value=1.0, daystamp="20240101", comment="No titles.")
        job = make_job(fake_target, [date(2024, 1, 1)], {}, verdicts({}))
        summary = await job.run()

        assert fake_target.deleted == []
        assert fake_target.created == []
        assert summary.unchanged == 1
        assert summary.status == JobStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_within_epsilon_counts_as_match(self, fake_target):
        fake_target.add("view", value=0.995, daystamp="20240101")
        summary = await make_job(fake_target, [date(2024, 1, 1)], {}, verdicts({})).run()

        assert summary.unchanged == 1
        assert fake_target.created == []

    @pytest.mark.asyncio
    async def test_flagged_day_uses_second_line(self, fake_target):
        job = make_job(
            fake_target,
            [date(2024, 1, 2)],
            {date(2024, 1, 2): ["Feed - Brave"]},
            verdicts({"Feed - Brave": ("Feed - Brave", 0.0)}),
        )
        await job.run()

        _, created = fake_target.created[0]
        assert created.value == 0.0
        assert created.comment == "Feed - Brave"

    @pytest.mark.asyncio
    async def test_days_processed_oldest_first(self, fake_target):
        days = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
        await make_job(fake_target, days, {}, verdicts({})).run()

        assert [dp.daystamp for _, dp in fake_target.created] == ["20240101", "20240102", "20240103"]

    @pytest.mark.asyncio
    async def test_source_failure_skips_only_that_day(self, fake_target):
        days = [date(2024, 1, 1), date(2024, 1, 2)]
        titles = {date(2024, 1, 1): TransportError("activitywatch down")}
        summary = await make_job(fake_target, days, titles, verdicts({})).run()

        assert [dp.daystamp for _, dp in fake_target.created] == ["20240102"]
        assert len(summary.errors) == 1
        assert summary.status == JobStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_classifier_failure_skips_only_that_day(self, fake_target):
        days = [date(2024, 1, 1), date(2024, 1, 2)]
        titles = {date(2024, 1, 1): ["A - Firefox"], date(2024, 1, 2): ["B - Firefox"]}
        classify = verdicts(
            {"A - Firefox": ClassificationError("llm down"), "B - Firefox": ("ok", 1.0)}
        )
        summary = await make_job(fake_target, days, titles, classify).run()

        assert [dp.daystamp for _, dp in fake_target.created] == ["20240102"]
        assert summary.errors == ["20240101: llm down"]

    @pytest.mark.asyncio
    async def test_failed_delete_skips_create(self, fake_target):
        stale = fake_target.add("view", value=0.0, daystamp="20240101")
        fake_target.fail_deletes.add(stale.id)
        summary = await make_job(fake_target, [date(2024, 1, 1)], {}, verdicts({})).run()

        assert fake_target.created == []
        assert len(summary.errors) == 1

    @pytest.mark.asyncio
    async def test_history_window(self, fake_target):
        await make_job(
            fake_target, [date(2024, 1, 1)], {}, verdicts({}), history_limit=7
        ).run()
        assert fake_target.list_calls == [("view", None, 7)]

    @pytest.mark.asyncio
    async def test_long_lookback_reads_every_day(self, fake_target):
        first = date(2024, 1, 1)
        days = [first + timedelta(days=n) for n in range(60)]
        job = make_job(fake_target, days, {}, verdicts({}))

        await job.run()
        summary = await job.run()

        assert fake_target.list_calls[-1] == ("view", None, 60)
        assert len(fake_target.created) == 60
        assert summary.created == 0
        assert summary.unchanged == 60

    @pytest.mark.asyncio
    async def test_rerun_converges(self, fake_target):
        fake_target.add("view", value=0.0, daystamp="20240101")
        job = make_job(fake_target, [date(2024, 1, 1)], {}, verdicts({}))
        await job.run()
        summary = await job.run()

        assert summary.created == 0
        assert summary.deleted == 0
        assert summary.unchanged == 1

    @pytest.mark.asyncio
    async def test_dry_run(self, fake_target):
        fake_target.add("view", value=0.0, daystamp="20240101")
        summary = await make_job(
            fake_target, [date(2024, 1, 1)], {}, verdicts({}), dry_run=True
        ).run()

        assert summary.deleted == 1
        assert summary.created == 1
        assert fake_target.deleted == []
        assert fake_target.created == []
