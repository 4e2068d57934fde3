"""Tests for source record -> datapoint mappers."""

from datetime import date, datetime, timedelta, timezone

import pytest

from sources.fatebook import Question
from sources.focusmate import Session, SessionUser
from sources.github import Commit
from sync.errors import MappingError
from sync.mapping import (
    commit_to_datapoint,
    daystamp,
    find_matching_tags,
    question_to_datapoint,
    seen_title_to_datapoint,
    session_to_datapoint,
    task_to_datapoint,
)

UTC = timezone.utc


class TestDaystamp:
    def test_zero_padded(self):
        assert daystamp(date(2024, 1, 5)) == "20240105"

    def test_uses_own_timezone(self):
        late = datetime(2024, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert daystamp(late) == "20240101"


class TestTaskMapping:
    def test_complete_task(self):
        dp = task_to_datapoint({"_id": "t1", "title": "Write report", "doneAt": 1704067200123})

        assert dp.value == 1.0
        assert dp.external_id == "t1"
        assert dp.comment == "Write report"
        assert dp.timestamp == datetime(2024, 1, 1, tzinfo=UTC)
        assert dp.daystamp == "20240101"

    def test_missing_title_falls_back(self):
        dp = task_to_datapoint({"_id": "t1", "doneAt": 1704067200000})
        assert dp.comment == "Untitled task"

    def test_missing_id_raises(self):
        with pytest.raises(MappingError, match="_id"):
            task_to_datapoint({"title": "x", "doneAt": 1704067200000})

    @pytest.mark.parametrize("done_at", [None, "yesterday", -5, True])
    def test_bad_done_at_raises(self, done_at):
        with pytest.raises(MappingError, match="doneAt"):
            task_to_datapoint({"_id": "t1", "doneAt": done_at})

    def test_out_of_range_done_at_raises(self):
        with pytest.raises(MappingError):
            task_to_datapoint({"_id": "t1", "doneAt": 10**22})


class TestCommitMapping:
    def test_first_line_comment(self):
        commit = Commit(
            sha="abc123",
            message="  Fix parser  \n\nLonger body",
            repository="octo/repo",
            committer_date=datetime(2024, 2, 3, 10, 0, tzinfo=UTC),
        )
        dp = commit_to_datapoint(commit)

        assert dp.comment == "octo/repo: Fix parser"
        assert dp.external_id == "abc123"
        assert dp.daystamp == "20240203"

    def test_missing_date_raises(self):
        commit = Commit(sha="abc123", message="x", repository="o/r", committer_date=None)
        with pytest.raises(MappingError):
            commit_to_datapoint(commit)


class TestQuestionMapping:
    def test_question(self):
        q = Question(id="q1", title="Will it rain?", created_at=datetime(2024, 5, 1, tzinfo=UTC))
        dp = question_to_datapoint(q)

        assert dp.external_id == "q1"
        assert dp.comment == "Will it rain?"
        assert dp.value == 1.0

    def test_missing_id_raises(self):
        q = Question(id="", title="?", created_at=datetime(2024, 5, 1, tzinfo=UTC))
        with pytest.raises(MappingError):
            question_to_datapoint(q)


class TestSessionMapping:
    def _session(self, **overrides):
        fields = dict(
            session_id="s1",
            start_time=datetime(2024, 3, 4, 14, 30, tzinfo=UTC),
            duration_ms=3_000_000,
            users=(SessionUser("me", completed=True, session_title="Deep work"), SessionUser("p")),
            partner_name="Ada",
        )
        fields.update(overrides)
        return Session(**fields)

    def test_comment_format(self):
        dp = session_to_datapoint(self._session())

        assert dp.comment == "Monday, 14:30 (UTC), Deep work with Ada for 50 mins"
        assert dp.timestamp == datetime(2024, 3, 4, 14, 30, tzinfo=UTC)
        assert dp.daystamp == "20240304"
        assert dp.external_id is None

    def test_fallbacks(self):
        session = self._session(
            users=(SessionUser("me", completed=True, session_title=None),), partner_name=None
        )
        dp = session_to_datapoint(session)
        assert dp.comment == "Monday, 14:30 (UTC),  with unknown partner for 50 mins"

    def test_missing_own_user_raises(self):
        with pytest.raises(MappingError):
            session_to_datapoint(self._session(users=()))


def test_seen_title():
    seen_at = datetime(2024, 1, 1, 12, tzinfo=UTC)
    dp = seen_title_to_datapoint("Some Video", seen_at)
    assert dp.comment == "Some Video"
    assert dp.timestamp == seen_at
    assert dp.daystamp is None


def test_seen_title_needs_explicit_time():
    with pytest.raises(TypeError):
        seen_title_to_datapoint("Some Video")


def test_find_matching_tags():
    comment = "Monday, 10:00 (UTC), #writing and #code with Ada for 50 mins"
    assert find_matching_tags(["writing", "reading", "code"], comment) == ["writing", "code"]
    assert find_matching_tags([], comment) == []
