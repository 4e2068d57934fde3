"""Source record -> canonical datapoint mappers.

Every mapper is a pure function. Missing required fields raise
``MappingError``; missing optional fields fall back to fixed values
(``"Untitled task"``, empty session title, ``"unknown partner"``).
"""

from datetime import date, datetime, timezone
from typing import Optional

from sources.fatebook import Question
from sources.focusmate import Session
from sources.github import Commit

from .errors import MappingError
from .models import CanonicalDatapoint

UNTITLED_TASK = "Untitled task"
UNKNOWN_PARTNER = "unknown partner"


def daystamp(value: date | datetime) -> str:
    """``YYYYMMDD`` for the calendar date of ``value`` in its own time zone."""
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"


def first_line(text: str) -> str:
    lines = text.splitlines()
    return lines[0].strip() if lines else ""


def _require_timestamp(value: Optional[datetime], what: str) -> datetime:
    if value is None:
        raise MappingError(f"{what} has no usable timestamp")
    return value


def task_to_datapoint(task: dict) -> CanonicalDatapoint:
    """Completed Amazing Marvin task; keyed by the task ``_id``."""
    task_id = task.get("_id")
    if not isinstance(task_id, str) or not task_id:
        raise MappingError("Task missing _id field")

    title = task.get("title")
    if not isinstance(title, str) or not title:
        title = UNTITLED_TASK

    done_at = task.get("doneAt")
    if isinstance(done_at, bool) or not isinstance(done_at, (int, float)) or done_at < 0:
        raise MappingError(f"Task {task_id} missing doneAt field")
    try:
        completed = datetime.fromtimestamp(int(done_at) // 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise MappingError(f"Invalid doneAt timestamp {done_at} on task {task_id}") from e

    return CanonicalDatapoint(
        value=1.0,
        timestamp=completed,
        daystamp=daystamp(completed),
        comment=title,
        external_id=task_id,
    )


def commit_to_datapoint(commit: Commit) -> CanonicalDatapoint:
    if not commit.sha:
        raise MappingError(f"Commit in {commit.repository} has no sha")
    committed = _require_timestamp(commit.committer_date, f"Commit {commit.sha[:8]}")
    return CanonicalDatapoint(
        value=1.0,
        timestamp=committed,
        daystamp=daystamp(committed),
        comment=f"{commit.repository}: {first_line(commit.message)}",
        external_id=commit.sha,
    )


def question_to_datapoint(question: Question) -> CanonicalDatapoint:
    if not question.id:
        raise MappingError(f"Question '{question.title}' has no id")
    created = _require_timestamp(question.created_at, f"Question {question.id}")
    return CanonicalDatapoint(
        value=1.0,
        timestamp=created,
        daystamp=daystamp(created),
        comment=question.title,
        external_id=question.id,
    )


def session_to_datapoint(session: Session) -> CanonicalDatapoint:
    """Completed focus session; keyed by its start instant (no stable id is mirrored)."""
    if session.me is None:
        raise MappingError(f"Session {session.session_id} has no own-user profile")
    start = _require_timestamp(session.start_time, f"Session {session.session_id}")
    start_utc = start.astimezone(timezone.utc)

    title = session.me.session_title or ""
    partner = session.partner_name or UNKNOWN_PARTNER
    minutes = session.duration_ms // 60000
    comment = (
        f"{start_utc.strftime('%A')}, {start_utc:%H:%M} (UTC), "
        f"{title} with {partner} for {minutes} mins"
    )
    return CanonicalDatapoint(
        value=1.0,
        timestamp=start,
        daystamp=daystamp(start_utc),
        comment=comment,
    )


def seen_title_to_datapoint(title: str, seen_at: datetime) -> CanonicalDatapoint:
    """An aggregated "this was watched" fact; keyed by the title itself."""
    if not title:
        raise MappingError("Empty title")
    return CanonicalDatapoint(
        value=1.0,
        timestamp=seen_at,
        comment=title,
    )


def find_matching_tags(tags: list[str], comment: str) -> list[str]:
    """Configured tags that appear as ``#tag`` in ``comment``."""
    return [tag for tag in tags if f"#{tag}" in comment]
