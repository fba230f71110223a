# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data access for analytics records.

``AnalyticsRepository`` is the contract the aggregator depends on. Any
object with these five coroutines works; rows may be typed records,
mappings, or ORM objects and are narrowed by the aggregator.

Implementations:
- SQLAlchemyAnalyticsRepository: queries the hosted Postgres tables
- InMemoryAnalyticsRepository: serves records held in memory

Example:
    repository = SQLAlchemyAnalyticsRepository(get_sessionmaker())
    sessions = await repository.fetch_study_sessions(user_id, start, end)
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyflow.domains.analytics.periods import DateWindow
from studyflow.domains.analytics.records import (
    FlashcardAttempt,
    Goal,
    StudySession,
    Subject,
    Task,
)
from studyflow.infrastructure.database.connection import read_session
from studyflow.infrastructure.database.models import (
    FlashcardAttemptModel,
    GoalModel,
    StudySessionModel,
    SubjectModel,
    TaskModel,
)


logger = logging.getLogger(__name__)


@runtime_checkable
class AnalyticsRepository(Protocol):
    """Read-only access to the records analytics are computed from."""

    async def fetch_study_sessions(
        self, user_id: str, start: datetime, end: datetime
    ) -> Sequence[Any]:
        """Sessions whose ``start_time`` falls within ``[start, end]``."""
        ...

    async def fetch_tasks(self, user_id: str, start: datetime, end: datetime) -> Sequence[Any]:
        """Tasks whose ``created_at`` falls within ``[start, end]``."""
        ...

    async def fetch_subjects(self, user_id: str) -> Sequence[Any]:
        """All of the user's subjects."""
        ...

    async def fetch_flashcard_attempts(
        self, user_id: str, start: datetime, end: datetime
    ) -> Sequence[Any]:
        """Attempts whose ``attempted_at`` falls within ``[start, end]``."""
        ...

    async def fetch_active_goals(self, user_id: str) -> Sequence[Any]:
        """The user's active goals."""
        ...


class SQLAlchemyAnalyticsRepository:
    """Repository backed by the StudyFlow Postgres tables.

    Each fetch opens its own session so the aggregator can run the fetches
    concurrently.

    Attributes:
        _sessionmaker: Factory for async sessions.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository.

        Args:
            sessionmaker: Async sessionmaker bound to the StudyFlow database.
        """
        self._sessionmaker = sessionmaker

    async def _all(self, stmt: Any) -> list[Any]:
        async with read_session(self._sessionmaker) as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def fetch_study_sessions(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[StudySessionModel]:
        stmt = (
            select(StudySessionModel)
            .where(
                StudySessionModel.user_id == user_id,
                StudySessionModel.start_time >= start,
                StudySessionModel.start_time <= end,
            )
            .order_by(StudySessionModel.start_time.desc())
        )
        return await self._all(stmt)

    async def fetch_tasks(self, user_id: str, start: datetime, end: datetime) -> list[TaskModel]:
        stmt = select(TaskModel).where(
            TaskModel.user_id == user_id,
            TaskModel.created_at >= start,
            TaskModel.created_at <= end,
        )
        return await self._all(stmt)

    async def fetch_subjects(self, user_id: str) -> list[SubjectModel]:
        stmt = select(SubjectModel).where(SubjectModel.user_id == user_id)
        return await self._all(stmt)

    async def fetch_flashcard_attempts(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[FlashcardAttemptModel]:
        stmt = select(FlashcardAttemptModel).where(
            FlashcardAttemptModel.user_id == user_id,
            FlashcardAttemptModel.attempted_at >= start,
            FlashcardAttemptModel.attempted_at <= end,
        )
        return await self._all(stmt)

    async def fetch_active_goals(self, user_id: str) -> list[GoalModel]:
        stmt = select(GoalModel).where(
            GoalModel.user_id == user_id,
            GoalModel.is_active.is_(True),
        )
        return await self._all(stmt)


def _within(instant: datetime, start: datetime, end: datetime) -> bool:
    return DateWindow(start, end).contains(instant)


class InMemoryAnalyticsRepository:
    """Repository serving records held in memory.

    Applies the same filters as the SQL implementation. Useful for local
    development and tests.
    """

    def __init__(
        self,
        sessions: Sequence[StudySession] = (),
        tasks: Sequence[Task] = (),
        subjects: Sequence[Subject] = (),
        flashcards: Sequence[FlashcardAttempt] = (),
        goals: Sequence[Goal] = (),
    ) -> None:
        self.sessions = list(sessions)
        self.tasks = list(tasks)
        self.subjects = list(subjects)
        self.flashcards = list(flashcards)
        self.goals = list(goals)

    async def fetch_study_sessions(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[StudySession]:
        return [
            s for s in self.sessions
            if s.user_id == user_id and _within(s.start_time, start, end)
        ]

    async def fetch_tasks(self, user_id: str, start: datetime, end: datetime) -> list[Task]:
        return [
            t for t in self.tasks
            if t.user_id == user_id and _within(t.created_at, start, end)
        ]

    async def fetch_subjects(self, user_id: str) -> list[Subject]:
        return [s for s in self.subjects if s.user_id == user_id]

    async def fetch_flashcard_attempts(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[FlashcardAttempt]:
        return [
            f for f in self.flashcards
            if f.user_id == user_id and _within(f.attempted_at, start, end)
        ]

    async def fetch_active_goals(self, user_id: str) -> list[Goal]:
        return [g for g in self.goals if g.user_id == user_id and g.is_active]
