"""Client budget reports, employee dashboards and report exports."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from uuid import UUID

from fastapi import HTTPException, status
from openpyxl import Workbook
from sqlalchemy.orm import Session

from timeboxing.core.config import get_settings
from timeboxing.models.entities import Allocation, AllocationStatus, Project, ProjectStatus
from timeboxing.repositories.planning_repository import PlanningRepository
from timeboxing.services.capacity import (
    compute_monthly_balance,
    compute_reliability,
    format_month_label,
    month_bounds,
)
from timeboxing.services.formatting import format_hours, format_percentage
from timeboxing.services.planning_service import PlanningService, parse_month_or_422


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


@dataclass(slots=True)
class ClientUsage:
    used: float
    budget: float
    percentage: float
    near_limit: bool
    over_budget: bool


EXPORT_COLUMNS = (
    "client",
    "project",
    "status",
    "assigned_hours",
    "actual_hours",
    "budget_hours",
    "minimum_hours",
    "planning_percentage",
    "over_budget",
    "under_minimum",
)


def _r2(value: float) -> float:
    return round(value + 0.0, 2)


def _month_allocations(allocations: list[Allocation], month_start: date, month_end: date) -> list[Allocation]:
    return [row for row in allocations if month_start <= row.week_start_date <= month_end]


class ReportingService:
    """Read-only aggregations over clients, projects and allocations."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = PlanningRepository(db)
        self.settings = get_settings()

    def _usage(self, used: float, budget: float) -> ClientUsage:
        percentage = _r2(used / budget * 100) if budget > 0 else 0.0
        return ClientUsage(
            used=_r2(used),
            budget=_r2(budget),
            percentage=percentage,
            near_limit=self.settings.load_warning_threshold < percentage <= self.settings.load_overload_threshold,
            over_budget=percentage > self.settings.load_overload_threshold,
        )

    @staticmethod
    def serialize_usage(usage: ClientUsage) -> dict[str, object]:
        return {
            "used": usage.used,
            "budget": usage.budget,
            "percentage": usage.percentage,
            "near_limit": usage.near_limit,
            "over_budget": usage.over_budget,
        }

    # ---------- Clients ----------
    def client_month_usage(self, client_id: UUID, month: str) -> ClientUsage:
        """Hours used by a client's projects in weeks starting inside the month."""

        year, month_no = parse_month_or_422(month)
        if self.repo.get_client(client_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found.")

        month_start, month_end = month_bounds(year, month_no)
        projects = self.repo.list_projects(client_id=client_id)
        allocations = self.repo.list_allocations(
            from_week=month_start,
            to_week=month_end,
            project_ids={project.id for project in projects},
        )
        budget = sum(float(project.budget_hours or 0) for project in projects if project.status == ProjectStatus.ACTIVE)
        used = sum(float(row.hours_assigned or 0) for row in allocations)
        return self._usage(used, budget)

    def _project_analysis(self, project: Project, allocations: list[Allocation]) -> dict[str, object]:
        assigned = sum(float(row.hours_assigned or 0) for row in allocations)
        completed = [row for row in allocations if row.status == AllocationStatus.COMPLETED]
        actual = sum(float(row.hours_actual or 0) for row in completed)
        budget = float(project.budget_hours or 0)
        minimum = float(project.minimum_hours or 0)
        planning_pct = _r2(assigned / budget * 100) if budget > 0 else 0.0
        over_budget = budget > 0 and assigned > budget

        return {
            "project": PlanningService.serialize_project(project),
            "assigned_hours": _r2(assigned),
            "actual_hours": _r2(actual),
            "completed_allocations": len(completed),
            "pending_allocations": len(allocations) - len(completed),
            "budget_hours": budget,
            "minimum_hours": minimum,
            "planning_percentage": planning_pct,
            "over_budget": over_budget,
            "near_limit": planning_pct > self.settings.load_warning_threshold and not over_budget,
            "under_minimum": minimum > 0 and assigned < minimum,
            "needs_planning": budget > 0 and assigned < budget * 0.5,
            "no_activity": budget > 0 and assigned == 0,
            "employee_ids": sorted({str(row.employee_id) for row in allocations}),
        }

    def client_report(self, month: str) -> dict[str, object]:
        """Usage of every client plus a per-project breakdown for the month."""

        year, month_no = parse_month_or_422(month)
        month_start, month_end = month_bounds(year, month_no)
        clients = self.repo.list_clients()
        projects = self.repo.list_projects()
        allocations = self.repo.list_allocations(from_week=month_start, to_week=month_end)

        projects_by_client: dict[UUID, list[Project]] = {}
        for project in projects:
            projects_by_client.setdefault(project.client_id, []).append(project)
        allocations_by_project: dict[UUID, list[Allocation]] = {}
        for row in _month_allocations(allocations, month_start, month_end):
            allocations_by_project.setdefault(row.project_id, []).append(row)

        rows: list[dict[str, object]] = []
        for client in clients:
            client_projects = projects_by_client.get(client.id, [])
            analyses = [
                self._project_analysis(project, allocations_by_project.get(project.id, []))
                for project in client_projects
            ]
            budget = sum(
                float(project.budget_hours or 0)
                for project in client_projects
                if project.status == ProjectStatus.ACTIVE
            )
            used = sum(float(item["assigned_hours"]) for item in analyses)
            rows.append(
                {
                    "client": PlanningService.serialize_client(client),
                    "usage": self.serialize_usage(self._usage(used, budget)),
                    "projects": analyses,
                }
            )

        return {
            "month": month,
            "label": format_month_label(year, month_no),
            "clients": rows,
            "summary": {
                "total_clients": len(rows),
                "at_risk_clients": sum(1 for row in rows if row["usage"]["near_limit"]),
                "over_budget_clients": sum(1 for row in rows if row["usage"]["over_budget"]),
                "over_budget_projects": sum(
                    1 for row in rows for project in row["projects"] if project["over_budget"]
                ),
            },
        }

    # ---------- Employees ----------
    def employee_dashboard(self, employee_id: UUID, month: str) -> dict[str, object]:
        """Weekly loads, estimation reliability and upcoming time off."""

        planning = PlanningService(self.db)
        employee = planning.get_employee(employee_id)
        year, month_no = parse_month_or_422(month)
        month_start, month_end = month_bounds(year, month_no)

        grid = planning.planner_grid(month)
        employee_row = next(
            (row for row in grid["rows"] if row["employee"]["id"] == str(employee.id)),
            None,
        )
        weeks = employee_row["weeks"] if employee_row is not None else []

        history = self.repo.list_allocations_for_employee(employee.id)
        month_rows = _month_allocations(history, month_start, month_end)
        reliability = compute_reliability(history, min_tasks=self.settings.reliability_min_tasks)
        balance = compute_monthly_balance(month_rows)

        absences = self.repo.list_absences(from_date=month_start, to_date=month_end, employee_id=employee.id)
        events = [
            event
            for event in self.repo.list_team_events(from_date=month_start, to_date=month_end)
            if event.affects_all or str(employee.id) in {str(item) for item in event.affected_employee_ids or []}
        ]
        month_load = planning.employee_month_load(employee.id, month)

        return {
            "employee": PlanningService.serialize_employee(employee),
            "month": month,
            "label": format_month_label(year, month_no),
            "weeks": weeks,
            "month_load": planning.serialize_load(month_load),
            "reliability": {
                "index": reliability.index,
                "total_estimated": reliability.total_estimated,
                "total_real": reliability.total_real,
                "tasks_analyzed": reliability.tasks_analyzed,
                "trend": reliability.trend,
                "average_deviation": reliability.average_deviation,
            },
            "balance": {
                "planned_hours": balance.planned_hours,
                "completed_hours": balance.completed_hours,
                "actual_hours": balance.actual_hours,
                "pending_hours": balance.pending_hours,
                "balance": balance.balance,
                "label": format_hours(balance.balance),
            },
            "absences": [PlanningService.serialize_absence(row) for row in absences],
            "team_events": [PlanningService.serialize_team_event(row) for row in events],
        }

    # ---------- Exports ----------
    @staticmethod
    def _flatten_client_report(report: dict[str, object]) -> list[dict[str, str]]:
        flat_rows: list[dict[str, str]] = []
        for row in report["clients"]:
            client = row["client"]
            for analysis in row["projects"]:
                project = analysis["project"]
                flat_rows.append(
                    {
                        "client": str(client["name"]),
                        "project": str(project["name"]),
                        "status": str(project["status"]),
                        "assigned_hours": format_hours(analysis["assigned_hours"]),
                        "actual_hours": format_hours(analysis["actual_hours"]),
                        "budget_hours": format_hours(analysis["budget_hours"]),
                        "minimum_hours": format_hours(analysis["minimum_hours"]),
                        "planning_percentage": format_percentage(analysis["planning_percentage"]),
                        "over_budget": "yes" if analysis["over_budget"] else "no",
                        "under_minimum": "yes" if analysis["under_minimum"] else "no",
                    }
                )
        return flat_rows

    def export_client_report(self, month: str, format_name: str) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        flattened = self._flatten_client_report(self.client_report(month))
        base_filename = f"client-report-{month}"

        if normalized_format == "csv":
            sio = io.StringIO()
            writer = csv.DictWriter(sio, fieldnames=list(EXPORT_COLUMNS))
            writer.writeheader()
            writer.writerows(flattened)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "report"
        sheet.append(list(EXPORT_COLUMNS))
        for row in flattened:
            sheet.append([row.get(column, "") for column in EXPORT_COLUMNS])

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
