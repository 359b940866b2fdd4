"""Day status, lock window and summary views."""

from datetime import date

from lifesync.habits import daystatus
from lifesync.habits.daystatus import DayStatus

TODAY = date(2024, 3, 15)
DAY = date(2024, 3, 10)


def test_all_some_none(make_habit):
    habits = [make_habit() for _ in range(3)]
    assert daystatus.resolve_day_status(DAY, habits, TODAY) == DayStatus.NONE

    habits[0].completed_dates.append(DAY)
    assert daystatus.resolve_day_status(DAY, habits, TODAY) == DayStatus.SOME

    habits[1].completed_dates.append(DAY)
    habits[2].completed_dates.append(DAY)
    assert daystatus.resolve_day_status(DAY, habits, TODAY) == DayStatus.ALL


def test_empty_when_no_habit_active(make_habit):
    habits = [make_habit(start_date=date(2024, 4, 1), end_date=date(2024, 4, 30))]

    assert daystatus.resolve_day_status(DAY, habits, TODAY) == DayStatus.EMPTY
    assert daystatus.resolve_day_status(DAY, [], TODAY) == DayStatus.EMPTY


def test_future_overrides_completion_counts(make_habit):
    future = date(2024, 3, 20)
    habits = [make_habit(completed_dates=[future])]

    assert daystatus.resolve_day_status(future, habits, TODAY) == DayStatus.FUTURE


def test_today_is_not_future(make_habit):
    habits = [make_habit(completed_dates=[TODAY])]

    assert daystatus.resolve_day_status(TODAY, habits, TODAY) == DayStatus.ALL


def test_interval_bounds_are_inclusive(make_habit):
    habit = make_habit(start_date=DAY, end_date=DAY)

    assert daystatus.habits_active_on(DAY, [habit]) == [habit]
    assert daystatus.habits_active_on(date(2024, 3, 9), [habit]) == []
    assert daystatus.habits_active_on(date(2024, 3, 11), [habit]) == []


def test_lock_boundary():
    assert not daystatus.is_locked(TODAY, TODAY)
    assert not daystatus.is_locked(date(2024, 3, 12), TODAY)
    assert daystatus.is_locked(date(2024, 3, 11), TODAY)
    assert daystatus.is_locked(date(2024, 3, 16), TODAY)


def test_lock_window_is_configurable():
    assert not daystatus.is_locked(date(2024, 3, 8), TODAY, window_days=7)
    assert daystatus.is_locked(date(2024, 3, 14), TODAY, window_days=0)


def test_month_statuses(make_habit):
    habit = make_habit(completed_dates=["2024-03-14"])

    summaries = daystatus.month_statuses(2024, 3, [habit], TODAY)

    assert len(summaries) == 31
    by_day = {s.day.day: s for s in summaries}
    assert by_day[14].status == DayStatus.ALL
    assert by_day[14].completed == 1
    assert by_day[13].status == DayStatus.NONE
    assert by_day[16].status == DayStatus.FUTURE
    assert by_day[16].locked
    assert not by_day[12].locked
    assert by_day[11].locked


def test_completion_rate(make_habit):
    habits = [
        make_habit(completed_dates=["2024-03-14", "2024-03-15"]),
        make_habit(start_date=date(2024, 3, 14), completed_dates=["2024-03-15"]),
    ]

    rate = daystatus.completion_rate(habits, TODAY, days=2)

    assert rate.possible == 4
    assert rate.completed == 3
    assert rate.skipped == 1
    assert rate.percent == 75


def test_completion_rate_without_habits():
    assert daystatus.completion_rate([], TODAY).percent == 0


def test_weekly_completion(make_habit):
    habits = [make_habit(completed_dates=["2024-03-15"]), make_habit()]

    weekly = daystatus.weekly_completion(habits, TODAY)

    assert [day for day, _ in weekly][0] == date(2024, 3, 9)
    assert weekly[-1] == (TODAY, 50)
    assert weekly[0] == (date(2024, 3, 9), 0)


def test_weekday_totals(make_habit):
    # 2024-03-10 is a Sunday, 2024-03-11 a Monday
    habit = make_habit(completed_dates=["2024-03-10", "2024-03-11", "2024-03-17"])

    totals = daystatus.weekday_totals([habit])

    assert list(totals) == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
    assert totals["Sun"] == 2
    assert totals["Mon"] == 1


def test_broken_streaks(make_habit):
    recent = make_habit(completed_dates=["2024-03-13"])
    stale = make_habit(completed_dates=["2024-03-12"])
    never = make_habit()

    assert daystatus.broken_streaks([recent, stale, never], TODAY) == [stale]


def test_missed_dates(make_habit):
    habit = make_habit(start_date=date(2024, 3, 11), completed_dates=["2024-03-13"])

    missed = daystatus.missed_dates(habit, TODAY)

    assert missed == [date(2024, 3, 14), date(2024, 3, 12), date(2024, 3, 11)]


def test_top_and_average_streaks(make_habit):
    habits = [make_habit(streaks=n, max_streaks=n) for n in (1, 5, 3, 2)]

    assert [h.streaks for h in daystatus.top_streaks(habits)] == [5, 3, 2]
    assert daystatus.average_streak(habits) == 3
    assert daystatus.average_streak([]) == 0
