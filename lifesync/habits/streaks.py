"""Streak calculation for habit completions."""

import logging
from datetime import date

from .models import Habit

logger = logging.getLogger(__name__)


class StreakCalculator:
    """Derives current and maximum streaks as completions are recorded."""

    # Largest gap in calendar days that still continues a streak
    grace_days = 1

    def next_streak(self, habit: Habit, day: date) -> int:
        """
        Compute the streak after completing a habit on a day.

        The previous completion is the last entry of completed_dates before
        day is appended. Gaps are measured in calendar days, so 23:59 one
        night and 00:01 the next morning is a gap of one day.

        Args:
            habit: Habit as it was before the completion
            day: Calendar day being completed

        Returns:
            New value for habit.streaks

        Example:
            completed_dates = [Mon], streaks = 1
            day = Tue -> 2, day = Wed -> 1
        """
        last_date = habit.last_completed
        if last_date is None:
            return 1

        diff_days = (day - last_date).days
        if diff_days <= self.grace_days:
            return habit.streaks + 1
        return 1

    def apply(self, habit: Habit, day: date) -> Habit:
        """
        Record a completion on habit in place.

        Appends day to completed_dates without checking for duplicates and
        updates streaks / max_streaks.

        Returns:
            The same habit object
        """
        new_streak = self.next_streak(habit, day)
        habit.completed_dates.append(day)
        habit.streaks = new_streak
        habit.max_streaks = max(habit.max_streaks, new_streak)

        logger.debug(
            f"{habit.name}: completed {day.isoformat()} "
            f"(streak {habit.streaks}, best {habit.max_streaks})"
        )
        return habit

    def updated_fields(self, habit: Habit, day: date) -> dict:
        """
        Document fields to write for a completion, leaving habit untouched.

        Returns:
            Partial document with completedDates, streaks and maxStreaks
        """
        updated = self.apply(habit.model_copy(deep=True), day)
        return {
            "completedDates": [d.isoformat() for d in updated.completed_dates],
            "streaks": updated.streaks,
            "maxStreaks": updated.max_streaks,
        }
