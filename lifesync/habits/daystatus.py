"""Per-day completion status and the summary views built on it."""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable

from .models import Habit

logger = logging.getLogger(__name__)

# Days before today that may still be marked
DEFAULT_LOCK_WINDOW = 3

WEEKDAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class DayStatus(str, Enum):
    ALL = "all"
    SOME = "some"
    NONE = "none"
    EMPTY = "empty"
    FUTURE = "future"


@dataclass
class DaySummary:
    """Status of one calendar day."""
    day: date
    status: DayStatus
    active: int
    completed: int
    locked: bool


@dataclass
class CompletionRate:
    """Completed vs possible habit-days over a window."""
    completed: int
    possible: int

    @property
    def skipped(self) -> int:
        return self.possible - self.completed

    @property
    def percent(self) -> int:
        if self.possible == 0:
            return 0
        return round(self.completed / self.possible * 100)


def habits_active_on(day: date, habits: Iterable[Habit]) -> list[Habit]:
    """Habits whose [start_date, end_date] contains day, both ends inclusive."""
    return [habit for habit in habits if habit.is_active_on(day)]


def resolve_day_status(day: date, habits: Iterable[Habit], today: date) -> DayStatus:
    """
    Classify a day's aggregate completion.

    Args:
        day: Day to classify
        habits: Full habit set
        today: Current calendar day

    Returns:
        EMPTY when no habit is active, FUTURE for days after today,
        otherwise ALL / SOME / NONE by how many active habits were completed
    """
    active = habits_active_on(day, habits)
    if not active:
        return DayStatus.EMPTY

    completed = sum(1 for habit in active if habit.is_completed_on(day))
    if day > today:
        return DayStatus.FUTURE

    if completed == len(active):
        return DayStatus.ALL
    if completed > 0:
        return DayStatus.SOME
    return DayStatus.NONE


def is_locked(day: date, today: date, window_days: int = DEFAULT_LOCK_WINDOW) -> bool:
    """
    Whether a day rejects new completion marks.

    Future days are locked. Past days are markable for window_days calendar
    days, so with the default window today-3 is markable and today-4 is not.
    """
    if day > today:
        return True
    return (today - day).days > window_days


def month_statuses(
    year: int,
    month: int,
    habits: list[Habit],
    today: date,
    window_days: int = DEFAULT_LOCK_WINDOW,
) -> list[DaySummary]:
    """Status of every day in a calendar month."""
    days_in_month = calendar.monthrange(year, month)[1]
    summaries = []
    for n in range(1, days_in_month + 1):
        day = date(year, month, n)
        active = habits_active_on(day, habits)
        summaries.append(
            DaySummary(
                day=day,
                status=resolve_day_status(day, active, today),
                active=len(active),
                completed=sum(1 for habit in active if habit.is_completed_on(day)),
                locked=is_locked(day, today, window_days),
            )
        )
    return summaries


def completion_rate(habits: list[Habit], today: date, days: int = 30) -> CompletionRate:
    """Completed / possible habit-days over the last `days` days, today included."""
    completed = 0
    possible = 0
    for offset in range(days):
        day = today - timedelta(days=offset)
        for habit in habits_active_on(day, habits):
            possible += 1
            if habit.is_completed_on(day):
                completed += 1
    return CompletionRate(completed=completed, possible=possible)


def weekly_completion(habits: list[Habit], today: date) -> list[tuple[date, int]]:
    """Completion percentage for each of the last 7 days, oldest first."""
    result = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        result.append((day, completion_rate(habits, day, days=1).percent))
    return result


def weekday_totals(habits: Iterable[Habit]) -> dict[str, int]:
    """
    Total completions per day of week.

    Returns:
        Mapping of weekday name to count, Sunday first
    """
    counts = [0] * 7
    for habit in habits:
        for day in habit.completed_dates:
            # Python weekday: Monday=0, Sunday=6
            counts[(day.weekday() + 1) % 7] += 1
    return dict(zip(WEEKDAY_NAMES, counts))


def done_today(habits: Iterable[Habit], today: date) -> list[Habit]:
    return [habit for habit in habits if habit.is_completed_on(today)]


def broken_streaks(habits: Iterable[Habit], today: date) -> list[Habit]:
    """Habits whose last completion is more than two calendar days old."""
    broken = []
    for habit in habits:
        last = habit.last_completed
        if last is not None and abs((today - last).days) > 2:
            broken.append(habit)
    return broken


def missed_dates(habit: Habit, today: date, lookback: int = 7) -> list[date]:
    """Days in the last `lookback` days (excluding today) with no completion."""
    missed = []
    for offset in range(1, lookback + 1):
        day = today - timedelta(days=offset)
        if day >= habit.start_date and not habit.is_completed_on(day):
            missed.append(day)
    return missed


def top_streaks(habits: Iterable[Habit], limit: int = 3) -> list[Habit]:
    return sorted(habits, key=lambda habit: habit.streaks, reverse=True)[:limit]


def average_streak(habits: list[Habit]) -> int:
    if not habits:
        return 0
    return round(sum(habit.streaks for habit in habits) / len(habits))

