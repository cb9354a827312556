from datetime import date, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ems_console.models import JobCardType, JobStatus, ReportKind

T = TypeVar("T")


class CamelModel(BaseModel):
    # The backend and the browser both speak camelCase; Python code uses field names.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- backend resources ---


class UserRead(CamelModel):
    id: int
    username: str | None = None
    full_name: str | None = None
    email: str | None = None
    role: str | None = None
    active: bool = True


class GeneratorRead(CamelModel):
    id: int
    name: str
    model: str | None = None
    capacity: str | None = None
    location_name: str | None = None
    landline_number: str | None = None
    whats_app_number: str | None = None
    owner_email: str | None = None
    note: str | None = None


class MainTicketRead(CamelModel):
    id: int
    ticket_number: str | None = None
    title: str
    description: str | None = None
    type: str
    weight: int = Field(default=1, ge=1, le=5)
    scheduled_date: date
    scheduled_time: str = "09:00:00"
    status: JobStatus | None = None
    generator: GeneratorRead
    created_by: str | None = None
    created_at: datetime | None = None


class TicketAssignmentRead(CamelModel):
    id: int | None = None
    employee: UserRead


class JobCardRead(CamelModel):
    id: int
    status: JobStatus
    work_minutes: int | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    approved: bool = False
    image_url: str | None = None
    created_at: datetime | None = None
    main_ticket: MainTicketRead
    employee: UserRead


class JobStatusLogRead(CamelModel):
    id: int
    new_status: JobStatus
    logged_at: datetime
    latitude: float | None = None
    longitude: float | None = None


class PageResponse(CamelModel, Generic[T]):
    content: list[T] = Field(default_factory=list)
    total_elements: int = 0
    total_pages: int = 0
    number: int = 0
    size: int = 0


class EmployeeDashboardSummary(CamelModel):
    day_started: bool = False
    day_ended: bool = False
    current_status: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# --- request bodies ---


class JobStatusUpdatePayload(CamelModel):
    new_status: JobStatus
    latitude: float
    longitude: float


class JobStatusChangeRequest(CamelModel):
    new_status: JobStatus
    latitude: float | None = None
    longitude: float | None = None
    location_error: str | None = None


class MainTicketRequest(CamelModel):
    generator_id: int = 0
    title: str = ""
    description: str = ""
    type: JobCardType = JobCardType.SERVICE
    weight: int = Field(default=3, ge=1, le=5)
    scheduled_date: date | None = None
    scheduled_time: str = "09:00:00"
    employee_ids: list[int] = Field(default_factory=list)


class EmployeeToggleRequest(CamelModel):
    employee_ids: list[int] = Field(default_factory=list)
    employee_id: int


# --- reports (backend DTOs) ---


class LocationPoint(CamelModel):
    latitude: float
    longitude: float
    timestamp: datetime | None = None


class DailyTimeTrackingRow(CamelModel):
    employee_id: int | None = None
    employee_name: str | None = None
    date: date
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    daily_working_minutes: int = 0
    idle_minutes: int = 0
    travel_minutes: int = 0
    total_minutes: int = 0
    location_path: list[LocationPoint] = Field(default_factory=list)


class EmployeeDailyWorkTimeRow(CamelModel):
    employee_id: int | None = None
    employee_name: str | None = None
    date: date
    start_time: datetime | None = None
    end_time: datetime | None = None
    morning_ot_minutes: int = 0
    evening_ot_minutes: int = 0
    total_ot_minutes: int = 0
    working_minutes: int = 0
    total_weight_earned: int = 0


class DailyTimeTrackingAndPerformanceRow(CamelModel):
    employee_id: int | None = None
    employee_name: str | None = None
    date: date
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = None
    daily_working_minutes: int = 0
    idle_minutes: int = 0
    travel_minutes: int = 0
    total_minutes: int = 0
    morning_ot_minutes: int = 0
    evening_ot_minutes: int = 0
    total_ot_minutes: int = 0
    jobs_completed: int = 0
    total_weight_earned: int = 0
    average_score: float = 0.0
    location_path: list[LocationPoint] = Field(default_factory=list)


class StatusDuration(CamelModel):
    status: str
    minutes: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None


class TicketAchievement(CamelModel):
    mini_job_card_id: int | None = None
    main_ticket_id: int | None = None
    ticket_number: str | None = None
    ticket_title: str | None = None
    job_type: str | None = None
    generator_name: str | None = None
    generator_model: str | None = None
    generator_location: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    work_minutes: int = 0
    travel_minutes: int = 0
    idle_minutes: int = 0
    current_status: str | None = None
    weight: int | None = None
    scored: bool = False
    approved: bool = False
    status_breakdown: list[StatusDuration] = Field(default_factory=list)


class DailySummary(CamelModel):
    total_tickets: int = 0
    completed_tickets: int = 0
    pending_tickets: int = 0
    total_work_minutes: int = 0
    total_travel_minutes: int = 0
    total_idle_minutes: int = 0
    total_weight_earned: int = 0
    morning_ot_minutes: int = 0
    evening_ot_minutes: int = 0
    total_ot_minutes: int = 0


class EmployeeAchievementReport(CamelModel):
    employee_id: int | None = None
    employee_name: str | None = None
    date: date
    day_start_time: datetime | None = None
    day_end_time: datetime | None = None
    daily_summary: DailySummary = Field(default_factory=DailySummary)
    ticket_achievements: list[TicketAchievement] = Field(default_factory=list)


# --- views ---


class JobStatusLogView(JobStatusLogRead):
    map_url: str | None = None


class JobCardDetailView(CamelModel):
    job_card: JobCardRead
    logs: list[JobStatusLogView]
    allowed_actions: list[JobStatus]
    is_terminal: bool
    allocated_label: str
    actual_duration: str | None = None


class JobCardListItem(CamelModel):
    job_card: JobCardRead
    priority_label: str
    is_top_priority: bool


class JobCardListView(CamelModel):
    date: date
    status: JobStatus | None = None
    items: list[JobCardListItem]
    page: int
    total_elements: int
    total_pages: int
    pending_count: int | None = None


class EmployeeDashboardView(CamelModel):
    pending_count: int
    summary: EmployeeDashboardSummary


class TicketBoardRow(CamelModel):
    ticket: MainTicketRead
    assignees: list[UserRead]


class TicketBoardView(CamelModel):
    date: date
    rows: list[TicketBoardRow]
    page: int
    total_elements: int
    total_pages: int
    matched_on_page: int
    filtered: bool


class TicketFormView(CamelModel):
    form: MainTicketRequest
    selected_generator: GeneratorRead | None = None
    selected_employees: list[UserRead] = Field(default_factory=list)


class ReportTable(CamelModel):
    title: str | None = None
    subtitle: str | None = None
    headers: list[str]
    rows: list[list[str]]
    links: list[str | None] = Field(default_factory=list)


class ReportView(CamelModel):
    kind: ReportKind
    title: str
    start_date: date
    end_date: date
    period_label: str
    employee_id: int | None = None
    employee_name: str | None = None
    summary_lines: list[str] = Field(default_factory=list)
    tables: list[ReportTable]
    data: list[Any] = Field(default_factory=list)


class ReportDefaultsView(CamelModel):
    start_date: date
    end_date: date
    employees: list[UserRead]
