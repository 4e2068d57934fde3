"""The six configured sync jobs: source adapter + mapper + dedup strategy + mode."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from cli.config_models import (
    CategorySyncConfig,
    CleanTubeConfig,
    CleanViewConfig,
    FatebookConfig,
    FocusmateConfig,
    GitHubConfig,
    SyncConfig,
)
from llm import LLMError, create_llm_provider
from shared_types import DedupStrategy, JobName
from sources.activitywatch import ActivityWatchClient
from sources.fatebook import FatebookClient
from sources.focusmate import FocusmateClient, Session
from sources.github import GitHubClient
from sources.marvin import MarvinClient, MarvinCredentials
from target.base import TargetStore

from .activity import aggregate_video_titles, browser_titles, day_windows
from .classifier import LLMClassifier
from .engine import AggregateCorrectionJob, AppendOnlyJob
from .errors import ConfigError, CredentialError, TransportError
from .mapping import (
    commit_to_datapoint,
    find_matching_tags,
    question_to_datapoint,
    seen_title_to_datapoint,
    session_to_datapoint,
    task_to_datapoint,
)
from .models import JobSummary

logger = structlog.get_logger(source="jobs")

# Execution order of a full run.
JOB_ORDER = [
    JobName.FOCUSMATE,
    JobName.FATEBOOK,
    JobName.CLEAN_TUBE,
    JobName.CLEAN_VIEW,
    JobName.GITHUB,
    JobName.CATEGORY,
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def focusmate_job(
    section: FocusmateConfig,
    target: TargetStore,
    focusmate: FocusmateClient,
    dry_run: bool = False,
) -> AppendOnlyJob:
    """Completed sessions since the watermark, keyed by start time.

    Sessions whose comment carries ``#tag`` for a configured auto tag are also
    posted to the goal named ``tag``.
    """

    async def partner_name(session: Session) -> Optional[str]:
        if session.partner is None:
            return None
        try:
            return await focusmate.get_user_name(session.partner.user_id)
        except TransportError as e:
            logger.warning("partner_lookup_failed", session_id=session.session_id, error=str(e))
            return None

    async def fetch(since: Optional[datetime]) -> list[Session]:
        sessions = await focusmate.get_sessions(since, _now() + timedelta(days=1))
        completed = [s for s in sessions if s.completed]
        return [replace(s, partner_name=await partner_name(s)) for s in completed]

    return AppendOnlyJob(
        name=JobName.FOCUSMATE,
        goal=section.goal_name,
        target=target,
        fetch=fetch,
        mapper=session_to_datapoint,
        strategy=DedupStrategy.TIMESTAMP,
        use_watermark=True,
        fan_out=lambda dp: find_matching_tags(section.auto_tags, dp.comment),
        dry_run=dry_run,
    )


def fatebook_job(
    section: FatebookConfig,
    target: TargetStore,
    fatebook: FatebookClient,
    dry_run: bool = False,
) -> AppendOnlyJob:
    """Every question ever created, keyed by question id."""

    async def fetch(since: Optional[datetime]):
        return await fatebook.get_questions()

    return AppendOnlyJob(
        name=JobName.FATEBOOK,
        goal=section.goal_name,
        target=target,
        fetch=fetch,
        mapper=question_to_datapoint,
        strategy=DedupStrategy.IDENTIFIER,
        dry_run=dry_run,
    )


def clean_tube_job(
    section: CleanTubeConfig,
    target: TargetStore,
    activity: ActivityWatchClient,
    dry_run: bool = False,
) -> AppendOnlyJob:
    """Videos watched in the lookback window, keyed by title."""
    run_time = _now()

    async def fetch(since: Optional[datetime]) -> list[str]:
        start = run_time - timedelta(days=section.lookback_days)
        events = await activity.get_events(section.window_bucket, start, run_time)
        return aggregate_video_titles(
            events, section.min_video_duration_seconds, section.title_separator
        )

    return AppendOnlyJob(
        name=JobName.CLEAN_TUBE,
        goal=section.goal_name,
        target=target,
        fetch=fetch,
        mapper=lambda title: seen_title_to_datapoint(title, run_time),
        strategy=DedupStrategy.LABEL,
        history_floor=section.max_datapoints,
        dry_run=dry_run,
    )


def clean_view_job(
    section: CleanViewConfig,
    target: TargetStore,
    activity: ActivityWatchClient,
    classifier: LLMClassifier,
    dry_run: bool = False,
    now: Optional[datetime] = None,
) -> AggregateCorrectionJob:
    """One classifier verdict per completed local day."""

    async def fetch_titles(start: datetime, end: datetime) -> list[str]:
        events = await activity.get_events(section.window_bucket, start, end)
        return browser_titles(events, section.min_window_duration_seconds, section.browser_keywords)

    return AggregateCorrectionJob(
        name=JobName.CLEAN_VIEW,
        goal=section.goal_name,
        target=target,
        windows=lambda: day_windows(section.lookback_days, now),
        fetch_titles=fetch_titles,
        classify=classifier.classify,
        history_limit=section.history_limit,
        dry_run=dry_run,
    )


def github_job(
    section: GitHubConfig,
    target: TargetStore,
    github: GitHubClient,
    dry_run: bool = False,
) -> AppendOnlyJob:
    """Commits since the watermark, keyed by sha."""

    async def fetch(since: Optional[datetime]):
        return await github.get_commits(section.username, since)

    return AppendOnlyJob(
        name=JobName.GITHUB,
        goal=section.goal_name,
        target=target,
        fetch=fetch,
        mapper=commit_to_datapoint,
        strategy=DedupStrategy.IDENTIFIER,
        use_watermark=True,
        dry_run=dry_run,
    )


def category_job(
    section: CategorySyncConfig,
    target: TargetStore,
    marvin: MarvinClient,
    dry_run: bool = False,
) -> AppendOnlyJob:
    """Tasks of one category completed recently, keyed by task id."""

    async def fetch(since: Optional[datetime]):
        return await marvin.find_recently_completed_tasks_in_category(
            section.category, days=section.lookback_days
        )

    return AppendOnlyJob(
        name=JobName.CATEGORY,
        goal=section.goal_name,
        target=target,
        fetch=fetch,
        mapper=task_to_datapoint,
        strategy=DedupStrategy.IDENTIFIER,
        full_history=True,
        dry_run=dry_run,
    )


def build_classifier(config: SyncConfig, section: CleanViewConfig) -> LLMClassifier:
    """Classifier from the ``llm`` section.

    Raises:
        CredentialError: no usable API key.
    """
    api_key = config.llm.api_key.resolve() if config.llm.api_key else None
    try:
        provider = create_llm_provider(
            provider=config.llm.provider, api_key=api_key, model=config.llm.model
        )
    except LLMError as e:
        raise CredentialError(f"Cannot create LLM provider: {e}") from e
    return LLMClassifier(
        provider,
        section.prompt_template,
        max_tokens=config.llm.max_tokens,
        retry=config.retry,
    )


async def run_job(
    name: JobName, config: SyncConfig, target: TargetStore, dry_run: bool = False
) -> JobSummary:
    """Resolve credentials, open the source client and run one job.

    Raises:
        ConfigError: the job has no config section.
        CredentialError: a credential cannot be resolved.
        TransportError: the job could not begin (watermark, source or history fetch).
    """
    section = getattr(config, name.value, None)
    if section is None:
        raise ConfigError(f"Job '{name}' is not configured")
    retry = config.retry

    if name == JobName.FOCUSMATE:
        async with FocusmateClient(section.key.resolve(), retry=retry) as focusmate:
            return await focusmate_job(section, target, focusmate, dry_run).run()

    if name == JobName.FATEBOOK:
        async with FatebookClient(
            section.key.resolve(), base_url=section.base_url, retry=retry
        ) as fatebook:
            return await fatebook_job(section, target, fatebook, dry_run).run()

    if name == JobName.CLEAN_TUBE:
        async with ActivityWatchClient(section.activity_watch_base_url, retry=retry) as aw:
            return await clean_tube_job(section, target, aw, dry_run).run()

    if name == JobName.CLEAN_VIEW:
        classifier = build_classifier(config, section)
        async with ActivityWatchClient(section.activity_watch_base_url, retry=retry) as aw:
            return await clean_view_job(section, target, aw, classifier, dry_run).run()

    if name == JobName.GITHUB:
        token = section.key.resolve() if section.key else None
        async with GitHubClient(token, retry=retry) as github:
            return await github_job(section, target, github, dry_run).run()

    if name == JobName.CATEGORY:
        credentials = MarvinCredentials(
            uri=section.uri.resolve(),
            username=section.username.resolve(),
            password=section.password.resolve(),
            database_name=section.database_name.resolve(),
        )
        async with MarvinClient(credentials, retry=retry) as marvin:
            return await category_job(section, target, marvin, dry_run).run()

    raise ConfigError(f"Unknown job: {name}")
