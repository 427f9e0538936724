"""Calendar arithmetic for weekly and monthly capacity.

Everything here is pure: callers pass plain records (ORM rows work, since
only attribute access is used) and get numbers back. Weeks run Monday to
Sunday. Date ranges are inclusive on both ends.
"""

from __future__ import annotations

import calendar
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Protocol
from uuid import UUID

DAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

SPANISH_MONTHS = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

ABSENCE_TYPE_LABELS = {
    "vacation": "Vacaciones",
    "sick": "Enfermedad",
    "personal": "Personal",
    "other": "Otro",
}

MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")

LOAD_EMPTY = "empty"
LOAD_HEALTHY = "healthy"
LOAD_WARNING = "warning"
LOAD_OVERLOAD = "overload"


def _r2(value: float) -> float:
    return round(value + 0.0, 2)


@dataclass(frozen=True, slots=True)
class WorkSchedule:
    monday: float = 8.0
    tuesday: float = 8.0
    wednesday: float = 8.0
    thursday: float = 8.0
    friday: float = 8.0
    saturday: float = 0.0
    sunday: float = 0.0

    @classmethod
    def from_employee(cls, employee: object) -> WorkSchedule:
        return cls(**{key: float(getattr(employee, f"schedule_{key}") or 0) for key in DAY_KEYS})

    @property
    def weekly_hours(self) -> float:
        return sum(getattr(self, key) for key in DAY_KEYS)

    def hours_for_day(self, day: date) -> float:
        return float(getattr(self, DAY_KEYS[day.weekday()]) or 0)

    def as_dict(self) -> dict[str, float]:
        return {key: getattr(self, key) for key in DAY_KEYS}


class AbsenceLike(Protocol):
    start_date: date
    end_date: date
    hours: float | None


class TeamEventLike(Protocol):
    name: str
    event_date: date
    hours_reduction: float
    affects_all: bool
    affected_employee_ids: list


class AllocationLike(Protocol):
    hours_assigned: float
    hours_actual: float | None


@dataclass(frozen=True, slots=True)
class WeekData:
    week_start: date
    week_end: date
    week_label: str
    effective_start: date
    effective_end: date


@dataclass(frozen=True, slots=True)
class Deduction:
    kind: str
    name: str
    day: date | None
    hours: float


@dataclass(slots=True)
class LoadSummary:
    hours: float
    capacity: float
    base_capacity: float
    percentage: float
    status: str
    breakdown: list[Deduction] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ReliabilitySummary:
    index: float
    total_estimated: float
    total_real: float
    tasks_analyzed: int
    trend: str
    average_deviation: float


@dataclass(frozen=True, slots=True)
class MonthlyBalance:
    planned_hours: float
    completed_hours: float
    actual_hours: float
    pending_hours: float
    balance: float


# ---------- Weeks and months ----------
def get_week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def get_week_end(week_start: date) -> date:
    return week_start + timedelta(days=6)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def parse_month(value: str) -> tuple[int, int]:
    """Parse ``YYYY-MM`` into ``(year, month)``."""

    if not value or not MONTH_PATTERN.match(value):
        raise ValueError("month must use YYYY-MM format.")
    year, month = (int(part) for part in value.split("-"))
    if not 2000 <= year <= 2100 or not 1 <= month <= 12:
        raise ValueError("month is out of the supported range.")
    return year, month


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def format_week_label_for_month(week_start: date, year: int, month: int) -> str:
    month_start, month_end = month_bounds(year, month)
    display_start = max(week_start, month_start)
    display_end = min(get_week_end(week_start), month_end)
    return f"{display_start.day}-{display_end.day}"


def _has_weekday(start: date, end: date) -> bool:
    current = start
    while current <= end:
        if current.weekday() < 5:
            return True
        current += timedelta(days=1)
    return False


def get_weeks_for_month(year: int, month: int) -> list[WeekData]:
    """Weeks touching the month, clipped to it.

    A week whose in-month part only holds Saturday/Sunday is skipped.
    """

    month_start, month_end = month_bounds(year, month)
    weeks: list[WeekData] = []
    week_start = get_week_start(month_start)
    while week_start <= month_end:
        week_end = get_week_end(week_start)
        effective_start = max(week_start, month_start)
        effective_end = min(week_end, month_end)
        if _has_weekday(effective_start, effective_end):
            weeks.append(
                WeekData(
                    week_start=week_start,
                    week_end=week_end,
                    week_label=format_week_label_for_month(week_start, year, month),
                    effective_start=effective_start,
                    effective_end=effective_end,
                )
            )
        week_start += timedelta(days=7)
    return weeks


def is_current_week(week_start: date, today: date | None = None) -> bool:
    return get_week_start(today or date.today()) == week_start


def format_month_label(year: int, month: int) -> str:
    return f"{SPANISH_MONTHS[month - 1].capitalize()} - {year}"


def iter_days(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


# ---------- Scheduled hours ----------
def get_working_days_in_range(start: date, end: date, schedule: WorkSchedule) -> tuple[float, int]:
    """Return ``(total_hours, working_days)`` for days with scheduled hours."""

    total_hours = 0.0
    days = 0
    for day in iter_days(start, end):
        hours = schedule.hours_for_day(day)
        if hours > 0:
            total_hours += hours
            days += 1
    return total_hours, days


def get_monthly_capacity(year: int, month: int, schedule: WorkSchedule) -> float:
    month_start, month_end = month_bounds(year, month)
    total_hours, _ = get_working_days_in_range(month_start, month_end, schedule)
    return total_hours


# ---------- Absences ----------
def absence_type_label(absence_type: str) -> str:
    key = getattr(absence_type, "value", absence_type)
    return ABSENCE_TYPE_LABELS.get(key, ABSENCE_TYPE_LABELS["other"])


def _absence_day_hours(absence: AbsenceLike, scheduled: float) -> float:
    partial = getattr(absence, "hours", None)
    if partial is None:
        return scheduled
    return min(float(partial), scheduled)


def get_absence_deductions_in_range(
    start: date,
    end: date,
    absences: Iterable[AbsenceLike],
    schedule: WorkSchedule,
) -> list[Deduction]:
    deductions: list[Deduction] = []
    for absence in absences:
        overlap_start = max(absence.start_date, start)
        overlap_end = min(absence.end_date, end)
        if overlap_start > overlap_end:
            continue

        hours = 0.0
        for day in iter_days(overlap_start, overlap_end):
            scheduled = schedule.hours_for_day(day)
            if scheduled > 0:
                hours += _absence_day_hours(absence, scheduled)
        if hours > 0:
            deductions.append(
                Deduction(
                    kind="absence",
                    name=absence_type_label(getattr(absence, "type", "other")),
                    day=overlap_start,
                    hours=_r2(hours),
                )
            )
    return deductions


def get_absence_hours_in_range(
    start: date,
    end: date,
    absences: Iterable[AbsenceLike],
    schedule: WorkSchedule,
) -> float:
    return _r2(sum(item.hours for item in get_absence_deductions_in_range(start, end, absences, schedule)))


# ---------- Team events ----------
def _affects_employee(event: TeamEventLike, employee_id: UUID | str) -> bool:
    if event.affects_all:
        return True
    return str(employee_id) in {str(item) for item in (event.affected_employee_ids or [])}


def team_event_reduction(
    event: TeamEventLike,
    scheduled: float,
    *,
    full_day_hours: float = 8.0,
) -> float:
    """Hours an event removes from a day with ``scheduled`` hours.

    Reductions of a full day or more take the employee's own schedule for
    that day; partial reductions never exceed it.
    """

    if scheduled <= 0:
        return 0.0
    reduction = float(event.hours_reduction)
    if reduction >= full_day_hours:
        return scheduled
    return min(reduction, scheduled)


def get_team_event_details_in_range(
    start: date,
    end: date,
    employee_id: UUID | str,
    events: Iterable[TeamEventLike],
    schedule: WorkSchedule,
    *,
    full_day_hours: float = 8.0,
) -> list[Deduction]:
    details: list[Deduction] = []
    for event in events:
        if not start <= event.event_date <= end:
            continue
        if not _affects_employee(event, employee_id):
            continue
        hours = team_event_reduction(event, schedule.hours_for_day(event.event_date), full_day_hours=full_day_hours)
        if hours > 0:
            details.append(Deduction(kind="team_event", name=event.name, day=event.event_date, hours=_r2(hours)))
    return details


def get_team_event_hours_in_range(
    start: date,
    end: date,
    employee_id: UUID | str,
    events: Iterable[TeamEventLike],
    schedule: WorkSchedule,
    *,
    full_day_hours: float = 8.0,
) -> float:
    details = get_team_event_details_in_range(
        start, end, employee_id, events, schedule, full_day_hours=full_day_hours
    )
    return _r2(sum(item.hours for item in details))


# ---------- Load ----------
def classify_load(
    hours: float,
    percentage: float,
    *,
    warning_threshold: float = 85.0,
    overload_threshold: float = 100.0,
) -> str:
    if hours == 0:
        return LOAD_EMPTY
    if percentage <= warning_threshold:
        return LOAD_HEALTHY
    if percentage <= overload_threshold:
        return LOAD_WARNING
    return LOAD_OVERLOAD


def load_percentage(hours: float, capacity: float) -> float:
    if capacity <= 0:
        return 0.0
    return _r2(hours / capacity * 100)


def compute_employee_load(
    *,
    employee_id: UUID | str,
    schedule: WorkSchedule,
    start: date,
    end: date,
    allocations: Iterable[AllocationLike],
    absences: Iterable[AbsenceLike] = (),
    team_events: Iterable[TeamEventLike] = (),
    warning_threshold: float = 85.0,
    overload_threshold: float = 100.0,
    full_day_hours: float = 8.0,
) -> LoadSummary:
    """Compare assigned hours against net scheduled hours in a range."""

    base_capacity, _ = get_working_days_in_range(start, end, schedule)
    breakdown = get_absence_deductions_in_range(start, end, absences, schedule)
    breakdown.extend(
        get_team_event_details_in_range(
            start, end, employee_id, team_events, schedule, full_day_hours=full_day_hours
        )
    )
    deducted = sum(item.hours for item in breakdown)
    capacity = _r2(max(0.0, base_capacity - deducted))
    hours = _r2(sum(float(item.hours_assigned or 0) for item in allocations))

    percentage = load_percentage(hours, capacity)
    if capacity <= 0 and hours > 0:
        status = LOAD_OVERLOAD
    else:
        status = classify_load(
            hours,
            percentage,
            warning_threshold=warning_threshold,
            overload_threshold=overload_threshold,
        )

    return LoadSummary(
        hours=hours,
        capacity=capacity,
        base_capacity=_r2(base_capacity),
        percentage=percentage,
        status=status,
        breakdown=breakdown,
    )


def classify_monthly_assignment(percentage: float, *, warning_threshold: float = 85.0, overload_threshold: float = 100.0) -> str:
    if percentage > overload_threshold:
        return LOAD_OVERLOAD
    if percentage > warning_threshold:
        return LOAD_WARNING
    return LOAD_HEALTHY


# ---------- Estimation quality ----------
def compute_reliability(allocations: Sequence[object], *, min_tasks: int = 5) -> ReliabilitySummary:
    """Estimated vs real hours over completed allocations."""

    completed = [
        row
        for row in allocations
        if getattr(getattr(row, "status", None), "value", getattr(row, "status", None)) == "completed"
        and float(row.hours_assigned or 0) > 0
        and float(row.hours_actual or 0) > 0
    ]
    total_estimated = _r2(sum(float(row.hours_assigned) for row in completed))
    total_real = _r2(sum(float(row.hours_actual) for row in completed))
    tasks_analyzed = len(completed)
    index = _r2(total_estimated / total_real * 100) if total_real > 0 else 0.0

    trend = "insufficient"
    if tasks_analyzed >= min_tasks:
        if 90 <= index <= 110:
            trend = "accurate"
        elif index < 90:
            trend = "underestimates"
        else:
            trend = "overestimates"

    average_deviation = _r2((total_real - total_estimated) / tasks_analyzed) if tasks_analyzed else 0.0
    return ReliabilitySummary(
        index=index,
        total_estimated=total_estimated,
        total_real=total_real,
        tasks_analyzed=tasks_analyzed,
        trend=trend,
        average_deviation=average_deviation,
    )


def compute_monthly_balance(allocations: Sequence[object]) -> MonthlyBalance:
    planned = 0.0
    completed_hours = 0.0
    actual = 0.0
    for row in allocations:
        assigned = float(row.hours_assigned or 0)
        planned += assigned
        status = getattr(getattr(row, "status", None), "value", getattr(row, "status", None))
        if status == "completed":
            completed_hours += assigned
            actual += float(row.hours_actual or 0)
    return MonthlyBalance(
        planned_hours=_r2(planned),
        completed_hours=_r2(completed_hours),
        actual_hours=_r2(actual),
        pending_hours=_r2(planned - completed_hours),
        balance=_r2(completed_hours - actual),
    )
