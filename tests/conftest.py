# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

All analytics tests run against a fixed reference instant so that
calendar-day bucketing is deterministic:

    NOW = Wednesday 2025-03-12 15:00 UTC
"""

import itertools
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest

from studyflow.core.config import clear_settings_cache
from studyflow.domains.analytics import (
    FlashcardAttempt,
    Goal,
    GoalType,
    StudySession,
    Subject,
    Task,
)

USER_ID = "user-1"
NOW = datetime(2025, 3, 12, 15, 0, tzinfo=timezone.utc)


# =============================================================================
# Clock and identity
# =============================================================================


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant (Wednesday 2025-03-12 15:00 UTC)."""
    return NOW


@pytest.fixture
def user_id() -> str:
    """Identifier of the user under test."""
    return USER_ID


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop the cached settings around every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Record factories
# =============================================================================


@pytest.fixture
def make_session() -> Callable[..., StudySession]:
    """Factory for study sessions.

    ``minutes=None`` creates a session that is still open.
    """
    counter = itertools.count(1)

    def _make(
        start: datetime,
        minutes: float | None = None,
        subject_id: str | None = None,
        focus_score: float | None = None,
        user_id: str = USER_ID,
    ) -> StudySession:
        return StudySession(
            id=f"session-{next(counter)}",
            user_id=user_id,
            start_time=start,
            end_time=start + timedelta(minutes=minutes) if minutes is not None else None,
            subject_id=subject_id,
            focus_score=focus_score,
        )

    return _make


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks created one hour before NOW."""
    counter = itertools.count(1)

    def _make(
        completed: bool = False,
        due_date: datetime | None = None,
        created_at: datetime = NOW - timedelta(hours=1),
        user_id: str = USER_ID,
    ) -> Task:
        number = next(counter)
        return Task(
            id=f"task-{number}",
            user_id=user_id,
            title=f"Task {number}",
            completed=completed,
            due_date=due_date,
            created_at=created_at,
        )

    return _make


@pytest.fixture
def make_flashcard() -> Callable[..., FlashcardAttempt]:
    """Factory for flashcard attempts made one hour before NOW."""
    counter = itertools.count(1)

    def _make(
        is_correct: bool = True,
        time_spent: float | None = 30,
        attempted_at: datetime = NOW - timedelta(hours=1),
        user_id: str = USER_ID,
    ) -> FlashcardAttempt:
        number = next(counter)
        return FlashcardAttempt(
            id=f"attempt-{number}",
            user_id=user_id,
            flashcard_id=f"card-{number}",
            is_correct=is_correct,
            time_spent=time_spent,
            attempted_at=attempted_at,
        )

    return _make


@pytest.fixture
def make_goal() -> Callable[..., Goal]:
    """Factory for active goals."""
    counter = itertools.count(1)

    def _make(
        target_value: float,
        current_value: float = 0,
        goal_type: GoalType = GoalType.WEEKLY_HOURS,
        title: str = "Study hours",
        is_active: bool = True,
        user_id: str = USER_ID,
    ) -> Goal:
        return Goal(
            id=f"goal-{next(counter)}",
            user_id=user_id,
            title=title,
            type=goal_type,
            target_value=target_value,
            current_value=current_value,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def subjects() -> list[Subject]:
    """Two subjects: A is Math, B is Physics."""
    return [
        Subject(id="A", user_id=USER_ID, name="Math", color="#8B5CF6"),
        Subject(id="B", user_id=USER_ID, name="Physics", color="#06B6D4"),
    ]


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
