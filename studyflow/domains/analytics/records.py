# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed records consumed by the analytics pipeline.

Rows arrive from the data store as ORM objects, mappings, or already-typed
records. ``narrow_records`` validates them into the models below and drops
rows that do not fit, so the metric functions only ever see well-formed
data.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from studyflow.utils.datetime import ensure_utc, minutes_between

logger = logging.getLogger(__name__)


class GoalType(str, Enum):
    """Kinds of study goals."""

    WEEKLY_HOURS = "weekly_hours"
    DAILY_SESSIONS = "daily_sessions"
    COMPLETION_RATE = "completion_rate"
    CUSTOM = "custom"


class Record(BaseModel):
    """Base for read-only records owned by the data store."""

    model_config = ConfigDict(
        from_attributes=True, frozen=True, extra="ignore", allow_inf_nan=False
    )

    id: str
    user_id: str

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        # UUID columns come back as uuid.UUID from asyncpg
        if value is not None and not isinstance(value, str):
            return str(value)
        return value


class StudySession(Record):
    """A study session; completed once ``end_time`` is set."""

    start_time: datetime
    end_time: datetime | None = None
    subject_id: str | None = None
    focus_score: float | None = Field(default=None, ge=0, le=100)
    notes: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @field_validator("subject_id", mode="before")
    @classmethod
    def _coerce_subject(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "StudySession":
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time precedes start_time")
        return self

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    def duration_minutes(self, now: datetime) -> float:
        """Minutes studied, counting an open session up to ``now``."""
        end = self.end_time if self.end_time is not None else now
        return max(0.0, minutes_between(self.start_time, end))


class Task(Record):
    """A task or assignment."""

    title: str
    completed: bool = False
    due_date: datetime | None = None
    priority: str | None = None
    subject_id: str | None = None
    created_at: datetime

    @field_validator("due_date", "created_at")
    @classmethod
    def _to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @field_validator("subject_id", mode="before")
    @classmethod
    def _coerce_subject(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, str):
            return str(value)
        return value


class Subject(Record):
    """A subject the user studies."""

    name: str
    color: str | None = None


class FlashcardAttempt(Record):
    """A single flashcard answer."""

    flashcard_id: str
    is_correct: bool
    time_spent: float | None = Field(default=None, description="Seconds spent on the card")
    attempted_at: datetime

    @field_validator("flashcard_id", mode="before")
    @classmethod
    def _coerce_flashcard(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @field_validator("attempted_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Goal(Record):
    """A study goal."""

    title: str
    type: GoalType
    target_value: float
    current_value: float = 0
    is_active: bool = True


@dataclass
class AnalyticsDataset:
    """Narrowed records for one user and one date window.

    Attributes:
        sessions: Study sessions started within the window.
        tasks: Tasks created within the window.
        subjects: All of the user's subjects.
        flashcards: Flashcard attempts within the window.
        goals: Active goals.
        failed: Entities whose fetch failed and were treated as empty.
    """

    sessions: list[StudySession] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    subjects: list[Subject] = field(default_factory=list)
    flashcards: list[FlashcardAttempt] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


RecordT = TypeVar("RecordT", bound=Record)


def narrow_records(
    record_type: type[RecordT],
    rows: Iterable[Any] | None,
    entity: str | None = None,
) -> list[RecordT]:
    """Validate raw rows into typed records, skipping malformed ones.

    Args:
        record_type: Target record model.
        rows: Records, mappings, or attribute-bearing objects.
        entity: Entity name used in log messages.

    Returns:
        List of valid records in input order.
    """
    entity = entity or record_type.__name__

    if rows is None:
        return []
    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Iterable):
        logger.warning("Ignoring %s result of unexpected type %s", entity, type(rows).__name__)
        return []

    records: list[RecordT] = []
    skipped = 0

    for row in rows:
        if isinstance(row, record_type):
            records.append(row)
            continue
        try:
            records.append(record_type.model_validate(row))
        except ValidationError as e:
            skipped += 1
            logger.warning(
                "Skipping malformed %s record: errors=%d, first=%s",
                entity,
                e.error_count(),
                e.errors()[0]["msg"] if e.error_count() else "",
            )

    if skipped:
        logger.info("Narrowed %s records: kept=%d, skipped=%d", entity, len(records), skipped)

    return records
