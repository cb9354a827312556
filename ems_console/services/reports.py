from __future__ import annotations

import logging
from datetime import date
from typing import Any

from ems_console.backend import BackendClient
from ems_console.errors import ApiError
from ems_console.models import EMPLOYEE_SCOPED_REPORTS, ExportFormat, ReportKind
from ems_console.schemas import (
    DailyTimeTrackingAndPerformanceRow,
    DailyTimeTrackingRow,
    EmployeeAchievementReport,
    EmployeeDailyWorkTimeRow,
    LocationPoint,
    ReportTable,
    ReportView,
)
from ems_console.services.formatting import (
    build_route_url,
    format_date_label,
    format_minutes_decimal,
    format_score,
    format_time,
    status_label,
)
from ems_console.services.location import path_distance_km

logger = logging.getLogger("ems_console.reports")

REPORT_TITLES: dict[ReportKind, str] = {
    ReportKind.DAILY_TIME_TRACKING: "Daily Time Tracking Report",
    ReportKind.PERFORMANCE_OT: "Performance & OT Report",
    ReportKind.TIME_TRACKING_PERFORMANCE: "Daily Time Tracking & Performance Report",
    ReportKind.EMPLOYEE_ACHIEVEMENT: "Employee Achievement Report",
}

DAILY_TIME_TRACKING_HEADERS = ["Employee", "Date", "Shift", "Location", "Working", "Idle", "Travel", "Total"]
PERFORMANCE_OT_HEADERS = ["Date", "Time In", "Time Out", "Morning OT", "Evening OT", "Work Hours", "Weight"]
MERGED_HEADERS = ["Employee", "Date", "Work Time", "Total OT", "Jobs", "Weight", "Avg Score"]
ACHIEVEMENT_HEADERS = ["Ticket #", "Generator", "Work Time", "Score", "Status"]

UNKNOWN_EMPLOYEE = "Unknown"


def validate_report_request(
    kind: ReportKind,
    start_date: date | None,
    end_date: date | None,
    employee_id: int | None,
) -> tuple[date, date]:
    if start_date is None or end_date is None:
        raise ApiError(status_code=422, code="DATE_RANGE_REQUIRED", message="Please select date range")
    if start_date > end_date:
        raise ApiError(
            status_code=422,
            code="INVALID_DATE_RANGE",
            message="Start date must be on or before end date",
        )
    if kind in EMPLOYEE_SCOPED_REPORTS and employee_id is None:
        message = (
            "Please select an employee for achievement report"
            if kind == ReportKind.EMPLOYEE_ACHIEVEMENT
            else "Please select an employee"
        )
        raise ApiError(status_code=422, code="EMPLOYEE_REQUIRED", message=message)
    return start_date, end_date


def _path_points(path: list[LocationPoint]) -> list[tuple[float, float]]:
    return [(point.latitude, point.longitude) for point in path]


def _dump(row: Any, **extra: Any) -> dict[str, Any]:
    payload = row.model_dump(mode="json", by_alias=True)
    payload.update(extra)
    return payload


def daily_time_tracking_table(rows: list[DailyTimeTrackingRow]) -> ReportTable:
    return ReportTable(
        headers=DAILY_TIME_TRACKING_HEADERS,
        rows=[
            [
                row.employee_name or "",
                format_date_label(row.date),
                f"{format_time(row.start_time)} - {format_time(row.end_time)}",
                row.location or "N/A",
                format_minutes_decimal(row.daily_working_minutes),
                format_minutes_decimal(row.idle_minutes),
                format_minutes_decimal(row.travel_minutes),
                format_minutes_decimal(row.total_minutes),
            ]
            for row in rows
        ],
        links=[build_route_url(_path_points(row.location_path)) for row in rows],
    )


def performance_summary_line(rows: list[EmployeeDailyWorkTimeRow]) -> str:
    total_work = format_minutes_decimal(sum(row.working_minutes for row in rows))
    total_ot = format_minutes_decimal(sum(row.total_ot_minutes for row in rows))
    total_weight = sum(row.total_weight_earned for row in rows)
    return (
        f"Total Days: {len(rows)} | Active Duty: {total_work} | "
        f"Total OT: {total_ot} | Weight Score: {total_weight} pts"
    )


def performance_table(rows: list[EmployeeDailyWorkTimeRow]) -> ReportTable:
    return ReportTable(
        headers=PERFORMANCE_OT_HEADERS,
        rows=[
            [
                format_date_label(row.date),
                format_time(row.start_time),
                format_time(row.end_time),
                format_minutes_decimal(row.morning_ot_minutes),
                format_minutes_decimal(row.evening_ot_minutes),
                format_minutes_decimal(row.working_minutes),
                f"{row.total_weight_earned} pts",
            ]
            for row in rows
        ],
    )


def merged_table(rows: list[DailyTimeTrackingAndPerformanceRow]) -> ReportTable:
    return ReportTable(
        headers=MERGED_HEADERS,
        rows=[
            [
                row.employee_name or "",
                format_date_label(row.date),
                format_minutes_decimal(row.daily_working_minutes),
                format_minutes_decimal(row.total_ot_minutes),
                str(row.jobs_completed),
                str(row.total_weight_earned),
                format_score(row.average_score),
            ]
            for row in rows
        ],
        links=[build_route_url(_path_points(row.location_path)) for row in rows],
    )


def achievement_tables(days: list[EmployeeAchievementReport]) -> list[ReportTable]:
    tables: list[ReportTable] = []
    for day in days:
        summary = day.daily_summary
        tables.append(
            ReportTable(
                title=f"Date: {format_date_label(day.date)}",
                subtitle=(
                    f"Tickets: {summary.total_tickets} | Completed: {summary.completed_tickets} | "
                    f"Work: {format_minutes_decimal(summary.total_work_minutes)} | "
                    f"Weight: {summary.total_weight_earned}"
                ),
                headers=ACHIEVEMENT_HEADERS,
                rows=[
                    [
                        ticket.ticket_number or "",
                        ticket.generator_name or "",
                        format_minutes_decimal(ticket.work_minutes),
                        "" if ticket.weight is None else str(ticket.weight),
                        status_label(ticket.current_status or ""),
                    ]
                    for ticket in day.ticket_achievements
                ],
            )
        )
    return tables


def _resolve_employee_name(
    backend: BackendClient,
    employee_id: int | None,
    names_from_rows: list[str | None],
    *,
    lookup_size: int,
) -> str | None:
    if employee_id is None:
        return None
    for name in names_from_rows:
        if name:
            return name
    employees = backend.get_employees(page=0, size=lookup_size).content
    for employee in employees:
        if employee.id == employee_id:
            return employee.full_name or employee.username or UNKNOWN_EMPLOYEE
    return UNKNOWN_EMPLOYEE


def build_report(
    backend: BackendClient,
    kind: ReportKind,
    *,
    start_date: date | None,
    end_date: date | None,
    employee_id: int | None = None,
    employee_lookup_size: int = 1000,
) -> ReportView:
    start, end = validate_report_request(kind, start_date, end_date, employee_id)
    summary_lines: list[str] = []
    data: list[Any]

    if kind == ReportKind.DAILY_TIME_TRACKING:
        rows = backend.get_daily_time_tracking(start, end, employee_id)
        tables = [daily_time_tracking_table(rows)]
        data = [
            _dump(
                row,
                mapUrl=build_route_url(_path_points(row.location_path)),
                pathDistanceKm=path_distance_km(_path_points(row.location_path)),
            )
            for row in rows
        ]
        names = [row.employee_name for row in rows]
    elif kind == ReportKind.PERFORMANCE_OT:
        work_rows = backend.get_employee_daily_work_time(employee_id, start, end)
        tables = [performance_table(work_rows)]
        summary_lines.append(performance_summary_line(work_rows))
        data = [_dump(row) for row in work_rows]
        names = [row.employee_name for row in work_rows]
    elif kind == ReportKind.TIME_TRACKING_PERFORMANCE:
        merged_rows = backend.get_daily_time_tracking_and_performance(start, end, employee_id)
        tables = [merged_table(merged_rows)]
        data = [
            _dump(
                row,
                mapUrl=build_route_url(_path_points(row.location_path)),
                pathDistanceKm=path_distance_km(_path_points(row.location_path)),
            )
            for row in merged_rows
        ]
        names = [row.employee_name for row in merged_rows]
    else:
        days = backend.get_employee_achievement(employee_id, start, end)
        tables = achievement_tables(days)
        data = [_dump(day) for day in days]
        names = [day.employee_name for day in days]

    employee_name = _resolve_employee_name(backend, employee_id, names, lookup_size=employee_lookup_size)
    logger.info(
        "report_generated",
        extra={
            "kind": kind.value,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "employee_id": employee_id,
            "row_count": len(data),
        },
    )
    return ReportView(
        kind=kind,
        title=REPORT_TITLES[kind],
        start_date=start,
        end_date=end,
        period_label=f"{format_date_label(start)} - {format_date_label(end)}",
        employee_id=employee_id,
        employee_name=employee_name,
        summary_lines=summary_lines,
        tables=tables,
        data=data,
    )


def _safe_name(value: str) -> str:
    return value.replace("/", "_").replace("\\", "_").strip() or UNKNOWN_EMPLOYEE


def export_filename(report: ReportView, export_format: ExportFormat) -> str:
    period = f"{report.start_date.isoformat()}_to_{report.end_date.isoformat()}"
    employee = _safe_name(report.employee_name or UNKNOWN_EMPLOYEE)
    stems = {
        ReportKind.DAILY_TIME_TRACKING: f"Daily_Time_Tracking_Report_{period}",
        ReportKind.PERFORMANCE_OT: f"Performance_OT_Report_{employee}_{period}",
        ReportKind.TIME_TRACKING_PERFORMANCE: f"Merged_Report_{period}",
        ReportKind.EMPLOYEE_ACHIEVEMENT: f"Achievement_Report_{employee}_{period}",
    }
    return f"{stems[report.kind]}.{export_format.value}"
