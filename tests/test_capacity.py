from __future__ import annotations

import uuid
from datetime import date
from types import SimpleNamespace

import pytest

from timeboxing.services.capacity import (
    WorkSchedule,
    classify_load,
    classify_monthly_assignment,
    compute_employee_load,
    compute_monthly_balance,
    compute_reliability,
    format_month_label,
    get_absence_hours_in_range,
    get_monthly_capacity,
    get_team_event_hours_in_range,
    get_week_start,
    get_weeks_for_month,
    get_working_days_in_range,
    parse_month,
    team_event_reduction,
)

EMPLOYEE_ID = uuid.uuid4()
WEEK_START = date(2026, 3, 2)
WEEK_END = date(2026, 3, 8)


def _absence(start: date, end: date, hours: float | None = None, type_: str = "vacation") -> SimpleNamespace:
    return SimpleNamespace(start_date=start, end_date=end, hours=hours, type=type_)


def _event(
    day: date,
    hours: float,
    *,
    affects_all: bool = True,
    affected: list[str] | None = None,
    name: str = "Offsite",
) -> SimpleNamespace:
    return SimpleNamespace(
        name=name,
        event_date=day,
        hours_reduction=hours,
        affects_all=affects_all,
        affected_employee_ids=affected or [],
    )


def _allocation(hours: float, actual: float | None = None, status: str = "planned") -> SimpleNamespace:
    return SimpleNamespace(hours_assigned=hours, hours_actual=actual, status=status)


def test_weeks_for_month_skip_weekend_only_edges() -> None:
    weeks = get_weeks_for_month(2026, 3)

    # 1 March 2026 is a Sunday, so its week contributes no working day.
    assert [week.week_start for week in weeks] == [
        date(2026, 3, 2),
        date(2026, 3, 9),
        date(2026, 3, 16),
        date(2026, 3, 23),
        date(2026, 3, 30),
    ]
    assert weeks[-1].effective_end == date(2026, 3, 31)
    assert weeks[-1].week_label == "30-31"
    assert weeks[0].week_label == "2-8"


def test_week_start_and_month_helpers() -> None:
    assert get_week_start(date(2026, 3, 4)) == WEEK_START
    assert get_week_start(WEEK_START) == WEEK_START
    assert format_month_label(2026, 3) == "Marzo - 2026"
    assert parse_month("2026-03") == (2026, 3)


@pytest.mark.parametrize("value", ["2026-13", "2026-3", "1999-01", "", "march"])
def test_parse_month_rejects_invalid_values(value: str) -> None:
    with pytest.raises(ValueError):
        parse_month(value)


def test_working_days_follow_schedule() -> None:
    assert get_working_days_in_range(WEEK_START, WEEK_END, WorkSchedule()) == (40.0, 5)

    part_time = WorkSchedule(friday=0.0, saturday=4.0)
    assert get_working_days_in_range(WEEK_START, WEEK_END, part_time) == (36.0, 5)
    assert get_monthly_capacity(2026, 3, WorkSchedule()) == 176.0


def test_absence_hours_use_partial_hours_and_skip_weekends() -> None:
    absences = [
        _absence(date(2026, 3, 3), date(2026, 3, 3), hours=4),
        _absence(date(2026, 3, 6), date(2026, 3, 9)),
    ]

    # Friday counts in full; Saturday and Sunday have no scheduled hours and
    # Monday falls outside the range.
    assert get_absence_hours_in_range(WEEK_START, WEEK_END, absences, WorkSchedule()) == 12.0


def test_partial_absence_never_exceeds_scheduled_hours() -> None:
    absences = [_absence(WEEK_START, WEEK_START, hours=10)]
    schedule = WorkSchedule(monday=6.0)

    assert get_absence_hours_in_range(WEEK_START, WEEK_END, absences, schedule) == 6.0


def test_full_day_team_event_takes_the_employee_schedule() -> None:
    friday = date(2026, 3, 6)
    schedule = WorkSchedule(friday=6.0)

    assert team_event_reduction(_event(friday, 8), 6.0) == 6.0
    assert team_event_reduction(_event(friday, 2), 6.0) == 2.0
    assert team_event_reduction(_event(friday, 2), 0.0) == 0.0
    assert get_team_event_hours_in_range(WEEK_START, WEEK_END, EMPLOYEE_ID, [_event(friday, 8)], schedule) == 6.0


def test_team_event_only_affects_listed_employees() -> None:
    friday = date(2026, 3, 6)
    other = str(uuid.uuid4())
    events = [
        _event(friday, 4, affects_all=False, affected=[other]),
        _event(friday, 2, affects_all=False, affected=[str(EMPLOYEE_ID)]),
    ]

    assert get_team_event_hours_in_range(WEEK_START, WEEK_END, EMPLOYEE_ID, events, WorkSchedule()) == 2.0


@pytest.mark.parametrize(
    ("hours", "expected"),
    [(0, "empty"), (34, "healthy"), (36, "warning"), (40, "warning"), (41, "overload")],
)
def test_weekly_load_status(hours: float, expected: str) -> None:
    load = compute_employee_load(
        employee_id=EMPLOYEE_ID,
        schedule=WorkSchedule(),
        start=WEEK_START,
        end=WEEK_END,
        allocations=[_allocation(hours)] if hours else [],
    )

    assert load.capacity == 40.0
    assert load.status == expected


def test_load_subtracts_absences_and_events() -> None:
    load = compute_employee_load(
        employee_id=EMPLOYEE_ID,
        schedule=WorkSchedule(),
        start=WEEK_START,
        end=WEEK_END,
        allocations=[_allocation(20), _allocation(4)],
        absences=[_absence(date(2026, 3, 3), date(2026, 3, 3))],
        team_events=[_event(date(2026, 3, 6), 4, name="Formación")],
    )

    assert load.base_capacity == 40.0
    assert load.capacity == 28.0
    assert load.hours == 24.0
    assert load.percentage == pytest.approx(85.71)
    assert load.status == "warning"
    assert [(item.kind, item.name, item.hours) for item in load.breakdown] == [
        ("absence", "Vacaciones", 8.0),
        ("team_event", "Formación", 4.0),
    ]


def test_load_without_capacity_is_overload() -> None:
    load = compute_employee_load(
        employee_id=EMPLOYEE_ID,
        schedule=WorkSchedule(),
        start=WEEK_START,
        end=WEEK_END,
        allocations=[_allocation(5)],
        absences=[_absence(WEEK_START, WEEK_END)],
    )

    assert load.capacity == 0.0
    assert load.percentage == 0.0
    assert load.status == "overload"


def test_custom_thresholds() -> None:
    assert classify_load(10, 75, warning_threshold=70, overload_threshold=90) == "warning"
    assert classify_load(10, 95, warning_threshold=70, overload_threshold=90) == "overload"
    assert classify_monthly_assignment(50) == "healthy"
    assert classify_monthly_assignment(90) == "warning"
    assert classify_monthly_assignment(120) == "overload"


def test_reliability_needs_minimum_completed_tasks() -> None:
    rows = [_allocation(10, 10, "completed") for _ in range(4)] + [_allocation(10, None, "planned")]

    summary = compute_reliability(rows)

    assert summary.tasks_analyzed == 4
    assert summary.index == 100.0
    assert summary.trend == "insufficient"


def test_reliability_detects_underestimation() -> None:
    rows = [_allocation(10, 12.5, "completed") for _ in range(5)]

    summary = compute_reliability(rows)

    assert summary.total_estimated == 50.0
    assert summary.total_real == 62.5
    assert summary.index == 80.0
    assert summary.trend == "underestimates"
    assert summary.average_deviation == 2.5


def test_monthly_balance() -> None:
    balance = compute_monthly_balance([_allocation(10, 12, "completed"), _allocation(5)])

    assert balance.planned_hours == 15.0
    assert balance.completed_hours == 10.0
    assert balance.actual_hours == 12.0
    assert balance.pending_hours == 5.0
    assert balance.balance == -2.0
