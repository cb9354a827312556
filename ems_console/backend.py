from __future__ import annotations

import logging
from datetime import date
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

from ems_console.errors import BackendError
from ems_console.models import JobStatus
from ems_console.schemas import (
    DailyTimeTrackingAndPerformanceRow,
    DailyTimeTrackingRow,
    EmployeeAchievementReport,
    EmployeeDailyWorkTimeRow,
    EmployeeDashboardSummary,
    GeneratorRead,
    JobCardRead,
    JobStatusLogRead,
    JobStatusUpdatePayload,
    MainTicketRead,
    MainTicketRequest,
    PageResponse,
    TicketAssignmentRead,
    UserRead,
)
from ems_console.settings import get_backend_base_url, get_settings

logger = logging.getLogger("ems_console.backend")

T = TypeVar("T")


def _unwrap(body: Any) -> Any:
    # Some endpoints answer {"success": ..., "message": ..., "data": ...}.
    if isinstance(body, dict) and "data" in body and ("success" in body or "message" in body):
        return body["data"]
    return body


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message.strip():
            return message
    text = response.text.strip()
    if text and len(text) <= 500 and not text.startswith("<"):
        return text
    return f"Backend request failed with status {response.status_code}."


def _page_params(page: int, size: int) -> dict[str, int]:
    return {"page": max(0, page), "size": max(1, size)}


class BackendClient:
    """Typed client for the EMS backend REST API.

    One instance per incoming request; nothing is cached between calls.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str | None = None,
        timeout_seconds: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> BackendClient:
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "backend_request_failed",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            raise BackendError(None, "Backend service is unreachable.") from exc

        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "backend_request_failed",
                extra={
                    "method": method,
                    "path": path,
                    "backend_status": response.status_code,
                    "backend_message": message,
                },
            )
            raise BackendError(response.status_code, message)

        if not response.content:
            return None
        try:
            return _unwrap(response.json())
        except ValueError:
            return response.text

    def _typed(self, adapter_type: type[T] | Any, method: str, path: str, **kwargs: Any) -> T:
        return TypeAdapter(adapter_type).validate_python(self._request(method, path, **kwargs))

    # --- tickets ---

    def get_tickets_by_date_range(
        self, start_date: date, end_date: date, *, page: int = 0, size: int = 10
    ) -> PageResponse[MainTicketRead]:
        params = {"startDate": start_date.isoformat(), "endDate": end_date.isoformat(), **_page_params(page, size)}
        return self._typed(PageResponse[MainTicketRead], "GET", "/api/admin/tickets/date-range", params=params)

    def get_ticket(self, ticket_id: int) -> MainTicketRead:
        return self._typed(MainTicketRead, "GET", f"/api/admin/tickets/{ticket_id}")

    def get_ticket_assignments(self, ticket_id: int) -> list[TicketAssignmentRead]:
        return self._typed(list[TicketAssignmentRead], "GET", f"/api/admin/tickets/{ticket_id}/assignments")

    def create_ticket(self, payload: MainTicketRequest) -> MainTicketRead:
        body = payload.model_dump(mode="json", by_alias=True)
        return self._typed(MainTicketRead, "POST", "/api/admin/tickets", json=body)

    def update_ticket(self, ticket_id: int, payload: MainTicketRequest) -> MainTicketRead:
        body = payload.model_dump(mode="json", by_alias=True)
        return self._typed(MainTicketRead, "PUT", f"/api/admin/tickets/{ticket_id}", json=body)

    def cancel_ticket(self, ticket_id: int) -> None:
        self._request("PUT", f"/api/admin/tickets/{ticket_id}/cancel")

    # --- generators & users ---

    def search_generators(self, name: str, *, page: int = 0, size: int = 10) -> PageResponse[GeneratorRead]:
        params = {"name": name, **_page_params(page, size)}
        return self._typed(PageResponse[GeneratorRead], "GET", "/api/admin/generators/search", params=params)

    def get_employees(
        self, *, page: int = 0, size: int = 100, active_only: bool = False
    ) -> PageResponse[UserRead]:
        params: dict[str, Any] = _page_params(page, size)
        if active_only:
            params["activeOnly"] = "true"
        return self._typed(PageResponse[UserRead], "GET", "/api/admin/users/employees", params=params)

    def search_users(self, query: str, *, page: int = 0, size: int = 10) -> PageResponse[UserRead]:
        params = {"query": query, **_page_params(page, size)}
        return self._typed(PageResponse[UserRead], "GET", "/api/admin/users/search", params=params)

    # --- job cards ---

    def get_job_card(self, job_card_id: int) -> JobCardRead:
        return self._typed(JobCardRead, "GET", f"/api/employee/job-cards/{job_card_id}")

    def get_job_card_logs(self, job_card_id: int) -> list[JobStatusLogRead]:
        return self._typed(list[JobStatusLogRead], "GET", f"/api/employee/job-cards/{job_card_id}/logs")

    def get_job_cards_by_date(
        self,
        day: date,
        status: JobStatus | None = None,
        *,
        page: int = 0,
        size: int = 12,
    ) -> PageResponse[JobCardRead]:
        params: dict[str, Any] = _page_params(page, size)
        if status is not None:
            params["status"] = status.value
        return self._typed(
            PageResponse[JobCardRead],
            "GET",
            f"/api/employee/job-cards/date/{day.isoformat()}",
            params=params,
        )

    def get_pending_job_card_count(self) -> int:
        value = self._request("GET", "/api/employee/job-cards/pending-count")
        if isinstance(value, dict):
            value = value.get("count", 0)
        return int(value or 0)

    def update_job_card_status(
        self, job_card_id: int, new_status: JobStatus, latitude: float, longitude: float
    ) -> Any:
        # The answer is not trusted as the new view; callers reload card and logs.
        payload = JobStatusUpdatePayload(new_status=new_status, latitude=latitude, longitude=longitude)
        return self._request(
            "PUT",
            f"/api/employee/job-cards/{job_card_id}/status",
            json=payload.model_dump(mode="json", by_alias=True),
        )

    def upload_job_card_image(
        self, job_card_id: int, *, filename: str, content: bytes, content_type: str | None
    ) -> None:
        files = {"file": (filename, content, content_type or "application/octet-stream")}
        self._request("POST", f"/api/employee/job-cards/{job_card_id}/image", files=files)

    # --- attendance & dashboard ---

    def get_employee_dashboard(self) -> EmployeeDashboardSummary:
        return self._typed(EmployeeDashboardSummary, "GET", "/api/employee/dashboard")

    def start_day(self) -> None:
        self._request("POST", "/api/employee/attendance/start-day")

    def end_day(self) -> None:
        self._request("POST", "/api/employee/attendance/end-day")

    # --- reports ---

    @staticmethod
    def _report_params(start_date: date, end_date: date, employee_id: int | None) -> dict[str, Any]:
        params: dict[str, Any] = {"startDate": start_date.isoformat(), "endDate": end_date.isoformat()}
        if employee_id is not None:
            params["employeeId"] = employee_id
        return params

    def get_daily_time_tracking(
        self, start_date: date, end_date: date, employee_id: int | None = None
    ) -> list[DailyTimeTrackingRow]:
        return self._typed(
            list[DailyTimeTrackingRow],
            "GET",
            "/api/admin/reports/daily-time-tracking",
            params=self._report_params(start_date, end_date, employee_id),
        )

    def get_employee_daily_work_time(
        self, employee_id: int, start_date: date, end_date: date
    ) -> list[EmployeeDailyWorkTimeRow]:
        return self._typed(
            list[EmployeeDailyWorkTimeRow],
            "GET",
            "/api/admin/reports/employee-daily-work-time",
            params=self._report_params(start_date, end_date, employee_id),
        )

    def get_daily_time_tracking_and_performance(
        self, start_date: date, end_date: date, employee_id: int | None = None
    ) -> list[DailyTimeTrackingAndPerformanceRow]:
        return self._typed(
            list[DailyTimeTrackingAndPerformanceRow],
            "GET",
            "/api/admin/reports/daily-time-tracking-performance",
            params=self._report_params(start_date, end_date, employee_id),
        )

    def get_employee_achievement(
        self, employee_id: int, start_date: date, end_date: date
    ) -> list[EmployeeAchievementReport]:
        return self._typed(
            list[EmployeeAchievementReport],
            "GET",
            "/api/admin/reports/employee-achievement",
            params=self._report_params(start_date, end_date, employee_id),
        )

    def ping(self) -> int:
        """Status code of a cheap authenticated-or-not probe, for health checks."""
        try:
            response = self._http.get("/api/employee/job-cards/pending-count")
        except httpx.HTTPError as exc:
            raise BackendError(None, "Backend service is unreachable.") from exc
        return response.status_code


def build_backend_client(token: str | None, *, transport: httpx.BaseTransport | None = None) -> BackendClient:
    settings = get_settings()
    return BackendClient(
        base_url=get_backend_base_url(),
        token=token,
        timeout_seconds=settings.backend_timeout_seconds,
        transport=transport,
    )
