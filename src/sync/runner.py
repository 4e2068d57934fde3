"""Run configured jobs in order; one job's failure never stops the others."""

from dataclasses import dataclass
from typing import Optional

import structlog

from cli.config_models import SyncConfig
from observability import log_run_summary, metrics
from shared_types import JobName, JobStatus
from target.base import TargetStore
from target.beeminder import BeeminderClient

from .errors import ConfigError, SyncError
from .jobs import JOB_ORDER, run_job
from .models import JobSummary

logger = structlog.get_logger(source="runner")


@dataclass
class JobResult:
    """Outcome of one job: a summary, or the error that stopped it from starting."""

    name: JobName
    summary: Optional[JobSummary] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.summary is not None and self.summary.ok

    @property
    def status(self) -> JobStatus:
        if self.error is not None or self.summary is None:
            return JobStatus.ERROR
        return self.summary.status


def configured_jobs(config: SyncConfig) -> list[JobName]:
    """Jobs with a config section, in execution order."""
    return [name for name in JOB_ORDER if getattr(config, name.value) is not None]


def select_jobs(config: SyncConfig, requested: Optional[list[str]] = None) -> list[JobName]:
    """Requested jobs in execution order; all configured jobs when none requested.

    Raises:
        ConfigError: an unknown or unconfigured job was requested.
    """
    available = configured_jobs(config)
    if not requested:
        return available

    wanted = set()
    for raw in requested:
        try:
            name = JobName(raw)
        except ValueError:
            raise ConfigError(
                f"Unknown job '{raw}'. Known jobs: {', '.join(j.value for j in JOB_ORDER)}"
            ) from None
        if name not in available:
            raise ConfigError(f"Job '{raw}' has no section in the config file")
        wanted.add(name)
    return [name for name in available if name in wanted]


def build_target(config: SyncConfig) -> BeeminderClient:
    """Beeminder client from the ``beeminder`` section.

    Raises:
        ConfigError: username missing.
        CredentialError: auth token cannot be resolved.
    """
    if not config.beeminder.username:
        raise ConfigError("beeminder.username is not set")
    return BeeminderClient(
        username=config.beeminder.username,
        auth_token=config.beeminder.key.resolve(),
        base_url=config.beeminder.base_url,
        retry=config.retry,
    )


async def run_one(
    name: JobName, config: SyncConfig, target: TargetStore, dry_run: bool = False
) -> JobResult:
    log = logger.bind(job=name.value)
    log.info("job_started", dry_run=dry_run)
    with metrics.timer(f"job.{name.value}"):
        try:
            summary = await run_job(name, config, target, dry_run=dry_run)
        except SyncError as e:
            metrics.counter("jobs_failed")
            log.error("job_failed", error=str(e), error_type=type(e).__name__)
            return JobResult(name=name, error=str(e))
        except Exception as e:
            metrics.counter("jobs_failed")
            log.error("job_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
            return JobResult(name=name, error=f"{type(e).__name__}: {e}")

    metrics.record_job(summary)
    if not summary.ok:
        metrics.counter("jobs_failed")
    log.info("job_finished", status=summary.status.value, created=summary.created)
    return JobResult(name=name, summary=summary)


async def run_jobs(
    config: SyncConfig,
    names: list[JobName],
    target: Optional[TargetStore] = None,
    dry_run: bool = False,
) -> list[JobResult]:
    """Run ``names`` sequentially against one target store.

    When no target is given a Beeminder client is built from config and
    closed afterwards.
    """
    owned = target is None
    store = build_target(config) if owned else target
    results = []
    try:
        for name in names:
            results.append(await run_one(name, config, store, dry_run=dry_run))
    finally:
        if owned:
            await store.close()

    log_run_summary(jobs_run=len(results), jobs_failed=sum(1 for r in results if not r.ok))
    return results
