# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pure metric functions over fetched analytics records.

Every function takes the reference instant ``now`` explicitly so that a
single aggregation pass sees one consistent clock. Calendar days and hours
are evaluated in the timezone ``tz`` (an IANA name).

Open sessions (no ``end_time``) count up to ``now`` everywhere.
"""

from collections import defaultdict
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from studyflow.domains.analytics.periods import TimeRange, week_start_day
from studyflow.domains.analytics.records import (
    FlashcardAttempt,
    Goal,
    GoalType,
    StudySession,
    Subject,
    Task,
)
from studyflow.domains.analytics.snapshot import (
    PERFORMANCE_AXES,
    PERFORMANCE_TARGET,
    ChartPoint,
    FocusPattern,
    PerformanceAxis,
    StudyMetrics,
    SubjectShare,
)
from studyflow.utils.datetime import local_midnight, to_local

DEFAULT_WEEKLY_HOURS_GOAL = 20.0
DEFAULT_CARD_SECONDS = 30.0
CONSISTENCY_DAYS = 30
UNKNOWN_SUBJECT = "Unknown"

SUBJECT_COLORS = ("#8B5CF6", "#06B6D4", "#10B981", "#F59E0B", "#EF4444", "#EC4899")

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# Productivity blend
HOURS_WEIGHT = 0.30
FOCUS_WEIGHT = 0.25
GOAL_WEIGHT = 0.20
COMPLETION_WEIGHT = 0.15
STREAK_WEIGHT = 0.10
HOURS_FOR_FULL_SCORE = 40
STREAK_FOR_FULL_SCORE = 30


def round_half_up(value: float, digits: int = 0) -> float:
    """Round half away from zero, like JavaScript's ``Math.round`` on positives.

    Args:
        value: Number to round.
        digits: Decimal places to keep.

    Returns:
        Rounded float.
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_int(value: float) -> int:
    """Round to the nearest integer, halves up."""
    return int(round_half_up(value))


def local_day(instant: datetime, tz: str) -> date:
    return to_local(instant, tz).date()


# =============================================================================
# Session-level helpers
# =============================================================================


def session_focus(session: StudySession, now: datetime) -> float:
    """Get a session's focus score, estimating it when not recorded.

    Completed sessions of 25-50 minutes score 90, shorter ones 70 and
    longer ones 80. Sessions still open score 50.
    """
    if session.focus_score is not None:
        return session.focus_score

    if not session.is_completed:
        return 50.0

    duration = session.duration_minutes(now)
    if 25 <= duration <= 50:
        return 90.0
    if duration < 25:
        return 70.0
    return 80.0


def average_focus(sessions: Sequence[StudySession], now: datetime) -> float:
    """Mean focus over sessions, 0 when there are none."""
    if not sessions:
        return 0.0
    return sum(session_focus(s, now) for s in sessions) / len(sessions)


def total_minutes(sessions: Sequence[StudySession], now: datetime) -> float:
    return sum(s.duration_minutes(now) for s in sessions)


def completed_count(sessions: Sequence[StudySession]) -> int:
    return sum(1 for s in sessions if s.is_completed)


def sessions_by_day(sessions: Sequence[StudySession], tz: str) -> dict[date, list[StudySession]]:
    """Group sessions by the local calendar day they started on."""
    grouped: dict[date, list[StudySession]] = defaultdict(list)
    for session in sessions:
        grouped[local_day(session.start_time, tz)].append(session)
    return grouped


# =============================================================================
# Study metrics
# =============================================================================


def weekly_hours_goal(goals: Sequence[Goal], default: float = DEFAULT_WEEKLY_HOURS_GOAL) -> float:
    """Get the weekly hour target from the first active ``weekly_hours`` goal."""
    for goal in goals:
        if goal.type is GoalType.WEEKLY_HOURS and goal.is_active:
            if goal.target_value > 0:
                return goal.target_value
            break
    return default


def weekly_goal_progress(
    sessions: Sequence[StudySession],
    goals: Sequence[Goal],
    now: datetime,
    tz: str = "UTC",
    week_starts_on: str = "sunday",
    default_goal: float = DEFAULT_WEEKLY_HOURS_GOAL,
) -> float:
    """Percentage of the weekly hour goal reached since the start of the week, capped at 100."""
    week_start = local_midnight(week_start_day(local_day(now, tz), week_starts_on), tz)
    week_minutes = total_minutes([s for s in sessions if s.start_time >= week_start], now)
    goal_hours = weekly_hours_goal(goals, default_goal)
    return min(100.0, week_minutes / 60 / goal_hours * 100)


def streak_days(sessions: Sequence[StudySession], now: datetime, tz: str = "UTC") -> int:
    """Count consecutive days with a session, walking back from today.

    A day without sessions today yields 0.
    """
    days = {local_day(s.start_time, tz) for s in sessions}
    streak = 0
    current = local_day(now, tz)
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def calculate_study_metrics(
    sessions: Sequence[StudySession],
    goals: Sequence[Goal],
    now: datetime,
    tz: str = "UTC",
    week_starts_on: str = "sunday",
    default_goal: float = DEFAULT_WEEKLY_HOURS_GOAL,
) -> StudyMetrics:
    """Compute the headline study metrics."""
    minutes = total_minutes(sessions, now)
    completed = completed_count(sessions)
    average = minutes / completed if completed else 0.0

    return StudyMetrics(
        total_hours=round_half_up(minutes / 60, 1),
        sessions_completed=completed,
        average_session_length=round_int(average),
        weekly_goal_progress=round_int(
            weekly_goal_progress(sessions, goals, now, tz, week_starts_on, default_goal)
        ),
        focus_score=round_int(average_focus(sessions, now)),
        streak_days=streak_days(sessions, now, tz),
    )


# =============================================================================
# Chart series
# =============================================================================


def bucket_label(day: date, time_range: TimeRange) -> str:
    """Label a daily bucket: weekday for weeks, ``Mon D`` otherwise."""
    if time_range is TimeRange.WEEK:
        return WEEKDAY_LABELS[day.weekday()]
    return f"{MONTH_LABELS[day.month - 1]} {day.day}"


def calculate_daily_study_hours(
    sessions: Sequence[StudySession],
    time_range: TimeRange,
    now: datetime,
    tz: str = "UTC",
) -> list[ChartPoint]:
    """Build the per-day study series, oldest bucket first, ending today."""
    grouped = sessions_by_day(sessions, tz)
    today = local_day(now, tz)
    points: list[ChartPoint] = []

    for offset in range(time_range.bucket_count - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_sessions = grouped.get(day, [])
        efficiency = (
            completed_count(day_sessions) / len(day_sessions) * 100 if day_sessions else 0.0
        )
        points.append(
            ChartPoint(
                name=bucket_label(day, time_range),
                value=round_half_up(total_minutes(day_sessions, now) / 60, 1),
                sessions=len(day_sessions),
                efficiency=round_int(efficiency),
                focus=round_int(average_focus(day_sessions, now)),
            )
        )

    return points


def calculate_subject_distribution(
    sessions: Sequence[StudySession],
    subjects: Sequence[Subject],
    now: datetime,
) -> list[SubjectShare]:
    """Hours per subject, largest first, colored by rank.

    Sessions without a subject, or whose subject is not in ``subjects``,
    are reported as "Unknown".
    """
    names = {subject.id: subject.name for subject in subjects}
    minutes_by_subject: dict[str | None, float] = {}

    for session in sessions:
        # Unresolved subjects share one "Unknown" slice
        key = session.subject_id if session.subject_id in names else None
        minutes_by_subject[key] = minutes_by_subject.get(key, 0.0) + session.duration_minutes(now)

    ranked = sorted(
        minutes_by_subject.items(),
        key=lambda item: (-item[1], names.get(item[0], UNKNOWN_SUBJECT)),
    )

    return [
        SubjectShare(
            name=names.get(subject_id, UNKNOWN_SUBJECT),
            value=round_half_up(minutes / 60, 1),
            color=SUBJECT_COLORS[rank % len(SUBJECT_COLORS)],
            subject_id=subject_id,
        )
        for rank, (subject_id, minutes) in enumerate(ranked)
    ]


def calculate_focus_patterns(
    sessions: Sequence[StudySession],
    now: datetime,
    tz: str = "UTC",
) -> list[FocusPattern]:
    """Average focus and session count for each local start hour, 0-23."""
    by_hour: dict[int, list[StudySession]] = defaultdict(list)
    for session in sessions:
        by_hour[to_local(session.start_time, tz).hour].append(session)

    return [
        FocusPattern(
            hour=hour,
            focus=round_int(average_focus(by_hour.get(hour, []), now)),
            sessions=len(by_hour.get(hour, [])),
        )
        for hour in range(24)
    ]


# =============================================================================
# Performance radar
# =============================================================================


def calculate_consistency(sessions: Sequence[StudySession], now: datetime, tz: str = "UTC") -> float:
    """Share of the last 30 calendar days (today included) with a session."""
    today = local_day(now, tz)
    first_day = today - timedelta(days=CONSISTENCY_DAYS - 1)
    active_days = {
        day for day in (local_day(s.start_time, tz) for s in sessions) if first_day <= day <= today
    }
    return len(active_days) / CONSISTENCY_DAYS * 100


def calculate_efficiency(sessions: Sequence[StudySession]) -> float:
    """Completed share of sessions; 100 when there are no sessions."""
    if not sessions:
        return 100.0
    return completed_count(sessions) / len(sessions) * 100


def calculate_retention(flashcards: Sequence[FlashcardAttempt]) -> float:
    """Correct share of flashcard attempts; 0 when there are none."""
    if not flashcards:
        return 0.0
    return sum(1 for f in flashcards if f.is_correct) / len(flashcards) * 100


def calculate_study_speed(flashcards: Sequence[FlashcardAttempt]) -> float:
    """Cards per minute on a 0-100 scale, where 2 cards per minute is 100."""
    if not flashcards:
        return 0.0

    total_seconds = sum(
        f.time_spent if f.time_spent and f.time_spent > 0 else DEFAULT_CARD_SECONDS
        for f in flashcards
    )
    cards_per_minute = len(flashcards) / (total_seconds / 60)
    return min(100.0, cards_per_minute * 50)


def calculate_performance_metrics(
    sessions: Sequence[StudySession],
    flashcards: Sequence[FlashcardAttempt],
    now: datetime,
    tz: str = "UTC",
) -> list[PerformanceAxis]:
    """Six-axis performance radar."""
    retention = calculate_retention(flashcards)
    # Accuracy mirrors retention until a separate accuracy source exists
    accuracy = retention

    values = (
        average_focus(sessions, now),
        calculate_consistency(sessions, now, tz),
        calculate_efficiency(sessions),
        retention,
        calculate_study_speed(flashcards),
        accuracy,
    )
    return [
        PerformanceAxis(subject=name, current=round_int(value), target=PERFORMANCE_TARGET)
        for name, value in zip(PERFORMANCE_AXES, values)
    ]


# =============================================================================
# Task completion and productivity
# =============================================================================


def calculate_completion_rate(tasks: Sequence[Task]) -> float:
    """Completed share of tasks; 100 when there are no tasks."""
    if not tasks:
        return 100.0
    return sum(1 for t in tasks if t.completed) / len(tasks) * 100


def calculate_productivity_score(metrics: StudyMetrics, completion_rate: float) -> int:
    """Weighted blend of hours, focus, weekly goal, completion and streak."""
    normalized_hours = min(100.0, metrics.total_hours / HOURS_FOR_FULL_SCORE * 100)
    normalized_streak = min(100.0, metrics.streak_days / STREAK_FOR_FULL_SCORE * 100)

    score = (
        normalized_hours * HOURS_WEIGHT
        + metrics.focus_score * FOCUS_WEIGHT
        + metrics.weekly_goal_progress * GOAL_WEIGHT
        + completion_rate * COMPLETION_WEIGHT
        + normalized_streak * STREAK_WEIGHT
    )
    return round_int(score)
