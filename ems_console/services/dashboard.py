from __future__ import annotations

import logging

from ems_console.backend import BackendClient
from ems_console.schemas import EmployeeDashboardView

logger = logging.getLogger("ems_console.dashboard")


def load_dashboard(backend: BackendClient) -> EmployeeDashboardView:
    pending_count = backend.get_pending_job_card_count()
    summary = backend.get_employee_dashboard()
    return EmployeeDashboardView(pending_count=pending_count, summary=summary)


def start_day(backend: BackendClient) -> EmployeeDashboardView:
    backend.start_day()
    logger.info("attendance_day_started")
    return load_dashboard(backend)


def end_day(backend: BackendClient) -> EmployeeDashboardView:
    backend.end_day()
    logger.info("attendance_day_ended")
    return load_dashboard(backend)
