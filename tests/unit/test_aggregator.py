# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for AnalyticsAggregator."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from studyflow.core.config import AnalyticsSettings
from studyflow.domains.analytics import (
    AnalyticsAggregator,
    DateWindow,
    InMemoryAnalyticsRepository,
    InvalidTimeRangeError,
    TimeRange,
)


@pytest.fixture
def mock_repository():
    """Create a repository mock returning no rows."""
    repository = MagicMock()
    repository.fetch_study_sessions = AsyncMock(return_value=[])
    repository.fetch_tasks = AsyncMock(return_value=[])
    repository.fetch_subjects = AsyncMock(return_value=[])
    repository.fetch_flashcard_attempts = AsyncMock(return_value=[])
    repository.fetch_active_goals = AsyncMock(return_value=[])
    return repository


@pytest.fixture
def scenario_repository(make_session, subjects):
    """Monday 45 minutes of Math and Tuesday 90 minutes of Physics."""
    return InMemoryAnalyticsRepository(
        sessions=[
            make_session(datetime(2025, 3, 10, 9, tzinfo=timezone.utc), minutes=45, subject_id="A"),
            make_session(datetime(2025, 3, 11, 9, tzinfo=timezone.utc), minutes=90, subject_id="B"),
        ],
        subjects=subjects,
    )


class TestFetchAnalytics:
    """Tests for the end-to-end aggregation."""

    @pytest.mark.asyncio
    async def test_two_session_scenario(self, scenario_repository, user_id, now) -> None:
        """Test the snapshot for one Math and one Physics session."""
        aggregator = AnalyticsAggregator(scenario_repository)

        snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        metrics = snapshot.study_metrics
        assert metrics.total_hours == 2.3
        assert metrics.sessions_completed == 2
        assert metrics.average_session_length == 68
        assert snapshot.completion_rate == 100
        assert [(s.name, s.value) for s in snapshot.subject_data] == [
            ("Physics", 1.5),
            ("Math", 0.8),
        ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "time_range,buckets",
        [("week", 7), ("month", 30), ("quarter", 30), ("year", 30)],
    )
    async def test_bucket_counts(self, mock_repository, user_id, now, time_range, buckets) -> None:
        """Test series lengths for every time range."""
        aggregator = AnalyticsAggregator(mock_repository)

        snapshot = await aggregator.fetch_analytics(user_id, time_range, now=now)

        assert len(snapshot.study_hours_data) == buckets
        assert len(snapshot.focus_pattern_data) == 24
        assert len(snapshot.performance_data) == 6

    @pytest.mark.asyncio
    async def test_no_data(self, mock_repository, user_id, now) -> None:
        """Test the snapshot of a user without any records."""
        aggregator = AnalyticsAggregator(mock_repository)

        snapshot = await aggregator.fetch_analytics(user_id, "month", now=now)

        assert snapshot.completion_rate == 100.0
        assert snapshot.study_metrics.focus_score == 0
        assert snapshot.performance("Efficiency") == 100
        assert snapshot.performance("Focus") == 0
        assert snapshot.subject_data == []
        assert snapshot.productivity_score == 15

    @pytest.mark.asyncio
    async def test_fixed_clock_is_repeatable(self, scenario_repository, user_id, now) -> None:
        """Test that two calls with the same data and clock agree."""
        aggregator = AnalyticsAggregator(scenario_repository)

        first = await aggregator.fetch_analytics(user_id, "month", now=now)
        second = await aggregator.compute_analytics(user_id, "month", now=now)

        assert first.to_dict() == second.to_dict()

    @pytest.mark.asyncio
    async def test_subject_hours_match_total(self, make_session, subjects, user_id, now) -> None:
        """Test that subject hours add up to the total within rounding."""
        sessions = [
            make_session(now - timedelta(hours=h), minutes=17 + h * 7, subject_id=sid)
            for h, sid in [(1, "A"), (3, "B"), (5, None), (7, "A"), (9, "B")]
        ]
        repository = InMemoryAnalyticsRepository(sessions=sessions, subjects=subjects)
        aggregator = AnalyticsAggregator(repository)

        snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        total = sum(s.value for s in snapshot.subject_data)
        tolerance = 0.05 * (len(snapshot.subject_data) + 1)
        assert abs(total - snapshot.study_metrics.total_hours) <= tolerance

    @pytest.mark.asyncio
    async def test_window_passed_to_repository(self, mock_repository, user_id, now) -> None:
        """Test the date window used for time-filtered fetches."""
        aggregator = AnalyticsAggregator(mock_repository)

        await aggregator.fetch_analytics(user_id, TimeRange.WEEK, now=now)

        mock_repository.fetch_study_sessions.assert_awaited_once_with(
            user_id, datetime(2025, 3, 9, tzinfo=timezone.utc), now
        )
        mock_repository.fetch_subjects.assert_awaited_once_with(user_id)
        mock_repository.fetch_active_goals.assert_awaited_once_with(user_id)

    @pytest.mark.asyncio
    async def test_settings_drive_week_start(self, mock_repository, user_id, now) -> None:
        """Test that the configured week start is used."""
        settings = AnalyticsSettings(week_starts_on="monday")
        aggregator = AnalyticsAggregator(mock_repository, settings)

        snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        assert snapshot.period_start == datetime(2025, 3, 10, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_invalid_time_range(self, mock_repository, user_id) -> None:
        """Test that unknown ranges fail before any fetch."""
        aggregator = AnalyticsAggregator(mock_repository)

        with pytest.raises(InvalidTimeRangeError):
            await aggregator.fetch_analytics(user_id, "decade")

        mock_repository.fetch_study_sessions.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_users_excluded(self, make_session, user_id, now) -> None:
        """Test that records of other users are not counted."""
        sessions = [
            make_session(now - timedelta(hours=2), minutes=60),
            make_session(now - timedelta(hours=2), minutes=60, user_id="someone-else"),
        ]
        aggregator = AnalyticsAggregator(InMemoryAnalyticsRepository(sessions=sessions))

        snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        assert snapshot.study_metrics.total_hours == 1.0

    @pytest.mark.asyncio
    async def test_weekly_goal_limited_to_range_window(self, make_session, user_id) -> None:
        """Test that the weekly goal only counts sessions fetched for the range."""
        tuesday = datetime(2025, 4, 1, 15, 0, tzinfo=timezone.utc)
        sessions = [
            make_session(datetime(2025, 3, 30, 9, tzinfo=timezone.utc), minutes=120),
            make_session(datetime(2025, 4, 1, 9, tzinfo=timezone.utc), minutes=60),
        ]
        aggregator = AnalyticsAggregator(InMemoryAnalyticsRepository(sessions=sessions))

        week = await aggregator.fetch_analytics(user_id, "week", now=tuesday)
        month = await aggregator.fetch_analytics(user_id, "month", now=tuesday)

        assert week.study_metrics.weekly_goal_progress == 15
        assert month.study_metrics.weekly_goal_progress == 5


class TestFetchFailures:
    """Tests for partial fetch failures."""

    @pytest.mark.asyncio
    async def test_failed_fetch_treated_as_empty(
        self, scenario_repository, make_flashcard, user_id, now, caplog
    ) -> None:
        """Test that one failing fetch leaves the other metrics intact."""
        scenario_repository.flashcards = [make_flashcard()]
        scenario_repository.fetch_flashcard_attempts = AsyncMock(
            side_effect=RuntimeError("connection reset")
        )
        aggregator = AnalyticsAggregator(scenario_repository)

        with caplog.at_level("ERROR"):
            snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        assert snapshot.performance("Retention") == 0
        assert snapshot.performance("Accuracy") == 0
        assert snapshot.performance("Speed") == 0
        assert snapshot.study_metrics.sessions_completed == 2
        assert "Error fetching flashcard_attempts" in caplog.text

    @pytest.mark.asyncio
    async def test_all_fetches_failing(self, mock_repository, user_id, now) -> None:
        """Test that a snapshot is produced even when every fetch fails."""
        for name in (
            "fetch_study_sessions",
            "fetch_tasks",
            "fetch_subjects",
            "fetch_flashcard_attempts",
            "fetch_active_goals",
        ):
            getattr(mock_repository, name).side_effect = ConnectionError("down")
        aggregator = AnalyticsAggregator(mock_repository)

        snapshot = await aggregator.fetch_analytics(user_id, "month", now=now)

        assert len(snapshot.study_hours_data) == 30
        assert snapshot.completion_rate == 100.0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, mock_repository, user_id, now) -> None:
        """Test that cancellation is not swallowed as a fetch failure."""
        mock_repository.fetch_tasks.side_effect = asyncio.CancelledError()
        aggregator = AnalyticsAggregator(mock_repository)

        with pytest.raises(asyncio.CancelledError):
            await aggregator.fetch_analytics(user_id, "week", now=now)

    @pytest.mark.asyncio
    async def test_dataset_records_failures(self, mock_repository, user_id, now) -> None:
        """Test that failed entities are reported on the dataset."""
        mock_repository.fetch_tasks.side_effect = RuntimeError("boom")
        aggregator = AnalyticsAggregator(mock_repository)
        window = DateWindow(start=now - timedelta(days=7), end=now)

        dataset = await aggregator.fetch_dataset(user_id, window)

        assert dataset.failed == ["tasks"]
        assert dataset.tasks == []


class TestMalformedRows:
    """Tests for rows that do not fit the record types."""

    @pytest.mark.asyncio
    async def test_malformed_rows_skipped(self, mock_repository, user_id, now) -> None:
        """Test that malformed rows are dropped and the rest aggregated."""
        mock_repository.fetch_study_sessions.return_value = [
            {
                "id": "s1",
                "user_id": user_id,
                "start_time": now - timedelta(hours=2),
                "end_time": now - timedelta(hours=1),
            },
            {"id": "s2", "user_id": user_id, "start_time": None},
            {"id": "s3", "user_id": user_id, "start_time": now, "focus_score": "high"},
        ]
        mock_repository.fetch_tasks.return_value = [
            {"id": "t1", "user_id": user_id, "title": "Read", "completed": True, "created_at": now},
            {"id": "t2", "user_id": user_id, "completed": False},
        ]
        aggregator = AnalyticsAggregator(mock_repository)

        snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        assert snapshot.study_metrics.sessions_completed == 1
        assert snapshot.study_metrics.total_hours == 1.0
        assert snapshot.completion_rate == 100.0

    @pytest.mark.asyncio
    async def test_non_list_result(self, mock_repository, user_id, now) -> None:
        """Test that a result that is not a list is treated as empty."""
        mock_repository.fetch_tasks.return_value = {"error": "unexpected"}
        aggregator = AnalyticsAggregator(mock_repository)

        snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        assert snapshot.completion_rate == 100.0

    @pytest.mark.asyncio
    async def test_infinite_goal_value_skipped(self, mock_repository, user_id, now) -> None:
        """Test that a goal with an infinite value is dropped before insights."""
        mock_repository.fetch_active_goals.return_value = [
            {
                "id": "g1",
                "user_id": user_id,
                "title": "Unbounded",
                "type": "custom",
                "target_value": 10,
                "current_value": float("inf"),
            },
            {
                "id": "g2",
                "user_id": user_id,
                "title": "Read chapters",
                "type": "custom",
                "target_value": 10,
                "current_value": 5,
            },
        ]
        aggregator = AnalyticsAggregator(mock_repository)

        _, insights = await aggregator.fetch_insights(user_id, "week", now=now)

        assert [g.goal_title for g in insights.goal_progress] == ["Read chapters"]
        assert insights.goal_progress[0].progress_percentage == 50

    @pytest.mark.asyncio
    async def test_nan_flashcard_time_skipped(self, mock_repository, user_id, now) -> None:
        """Test that a flashcard attempt with a NaN duration is dropped."""
        mock_repository.fetch_flashcard_attempts.return_value = [
            {
                "id": "f1",
                "user_id": user_id,
                "flashcard_id": "c1",
                "is_correct": True,
                "time_spent": float("nan"),
                "attempted_at": now,
            },
        ]
        aggregator = AnalyticsAggregator(mock_repository)

        snapshot = await aggregator.fetch_analytics(user_id, "week", now=now)

        assert snapshot.performance("Retention") == 0
        assert snapshot.performance("Speed") == 0


class TestFetchInsights:
    """Tests for fetch_insights."""

    @pytest.mark.asyncio
    async def test_single_fetch_pass(self, mock_repository, user_id, now) -> None:
        """Test that snapshot and insights come from one round of fetches."""
        aggregator = AnalyticsAggregator(mock_repository)

        snapshot, insights = await aggregator.fetch_insights(user_id, "week", now=now)

        assert mock_repository.fetch_study_sessions.await_count == 1
        assert insights.user_id == user_id
        assert insights.generated_at == snapshot.generated_at
        assert insights.time_range == "week"
