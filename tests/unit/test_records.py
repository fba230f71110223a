# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for analytics records and record narrowing."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError

from studyflow.domains.analytics import (
    Goal,
    GoalType,
    StudySession,
    Task,
    narrow_records,
)
from studyflow.infrastructure.database.models import GoalModel, StudySessionModel


class TestStudySession:
    """Tests for the StudySession record."""

    def test_naive_timestamps_are_utc(self) -> None:
        """Test that naive datetimes are read as UTC."""
        session = StudySession(
            id="s1",
            user_id="u1",
            start_time=datetime(2025, 3, 12, 9, 0),
        )

        assert session.start_time.tzinfo is not None
        assert session.start_time == datetime(2025, 3, 12, 9, 0, tzinfo=timezone.utc)

    def test_end_before_start_rejected(self, now) -> None:
        """Test that a session cannot end before it starts."""
        with pytest.raises(ValidationError):
            StudySession(
                id="s1",
                user_id="u1",
                start_time=now,
                end_time=now - timedelta(minutes=1),
            )

    def test_focus_score_range(self, now) -> None:
        """Test that focus scores outside 0-100 are rejected."""
        with pytest.raises(ValidationError):
            StudySession(id="s1", user_id="u1", start_time=now, focus_score=150)

    def test_duration(self, make_session, now) -> None:
        """Test completed and open durations."""
        completed = make_session(now - timedelta(hours=2), minutes=45)
        running = make_session(now - timedelta(minutes=20))

        assert completed.is_completed
        assert completed.duration_minutes(now) == 45
        assert not running.is_completed
        assert running.duration_minutes(now) == 20

    def test_open_session_in_future_has_no_duration(self, make_session, now) -> None:
        """Test that durations are never negative."""
        future = make_session(now + timedelta(minutes=5))

        assert future.duration_minutes(now) == 0

    def test_uuid_identifiers_coerced(self, now) -> None:
        """Test that UUID identifiers become strings."""
        user_id = uuid4()
        session = StudySession(id=uuid4(), user_id=user_id, start_time=now, subject_id=uuid4())

        assert session.user_id == str(user_id)
        assert isinstance(session.subject_id, str)


class TestNarrowRecords:
    """Tests for narrow_records."""

    def test_mappings_and_records(self, make_session, now) -> None:
        """Test that mappings are validated and typed records pass through."""
        typed = make_session(now - timedelta(hours=1), minutes=30)
        rows = [
            typed,
            {"id": "s2", "user_id": "user-1", "start_time": now.isoformat()},
        ]

        records = narrow_records(StudySession, rows)

        assert len(records) == 2
        assert records[0] is typed
        assert records[1].start_time == now

    def test_orm_rows(self, now) -> None:
        """Test that ORM instances are read through their attributes."""
        row = StudySessionModel(
            id=str(uuid4()),
            user_id="user-1",
            start_time=now - timedelta(minutes=50),
            end_time=now,
            focus_score=80,
        )

        records = narrow_records(StudySession, [row])

        assert len(records) == 1
        assert records[0].focus_score == 80
        assert records[0].subject_id is None

    def test_goal_orm_row(self) -> None:
        """Test that goal types are parsed from their string value."""
        row = GoalModel(
            id=str(uuid4()),
            user_id="user-1",
            title="Weekly hours",
            type="weekly_hours",
            target_value=12,
            current_value=3,
            is_active=True,
        )

        goals = narrow_records(Goal, [row])

        assert goals[0].type is GoalType.WEEKLY_HOURS
        assert goals[0].target_value == 12

    def test_malformed_rows_skipped(self, now, caplog) -> None:
        """Test that invalid rows are dropped with a warning."""
        rows = [
            {"id": "s1", "user_id": "user-1", "start_time": now},
            {"id": "s2", "user_id": "user-1"},
            {"id": "s3", "user_id": "user-1", "start_time": "not a date"},
            {
                "id": "s4",
                "user_id": "user-1",
                "start_time": now,
                "end_time": now - timedelta(hours=1),
            },
        ]

        with caplog.at_level("WARNING"):
            records = narrow_records(StudySession, rows, "study_sessions")

        assert [r.id for r in records] == ["s1"]
        assert caplog.text.count("Skipping malformed study_sessions record") == 3

    @pytest.mark.parametrize("rows", [None, 42, "rows", {"id": "s1"}])
    def test_non_list_results_are_empty(self, rows) -> None:
        """Test that results that are not a row collection yield nothing."""
        assert narrow_records(Task, rows) == []

    def test_empty(self) -> None:
        """Test that an empty result stays empty."""
        assert narrow_records(Task, []) == []
