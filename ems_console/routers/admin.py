from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from ems_console.backend import BackendClient
from ems_console.models import ExportFormat, JobStatus, ReportKind
from ems_console.schemas import (
    EmployeeToggleRequest,
    GeneratorRead,
    MainTicketRead,
    MainTicketRequest,
    ReportDefaultsView,
    ReportView,
    TicketBoardView,
    TicketFormView,
    UserRead,
)
from ems_console.security import get_backend_client, require_bearer_token
from ems_console.services.exports import content_disposition, media_type_for, render_report
from ems_console.services.formatting import default_report_range, today_local
from ems_console.services.reports import build_report, export_filename
from ems_console.services.tickets import (
    cancel_ticket,
    default_ticket_form,
    list_ticket_board,
    load_edit_form,
    save_ticket,
    search_employees,
    search_generators,
    toggle_employee,
)
from ems_console.settings import get_settings

router = APIRouter(prefix="/api/admin", tags=["admin"])


# --- tickets ---


@router.get("/tickets", response_model=TicketBoardView)
def get_ticket_board(
    day: date | None = Query(default=None, alias="date"),
    ticket_status: JobStatus | None = Query(default=None, alias="status"),
    generator: str | None = Query(default=None),
    employee_id: int | None = Query(default=None, alias="employeeId"),
    page: int = Query(default=0, ge=0),
    backend: BackendClient = Depends(get_backend_client),
) -> TicketBoardView:
    return list_ticket_board(
        backend,
        day=day or today_local(),
        page=page,
        size=get_settings().ticket_page_size,
        status=ticket_status,
        generator_term=generator,
        employee_id=employee_id,
    )


@router.get(
    "/tickets/form-defaults",
    response_model=TicketFormView,
    dependencies=[Depends(require_bearer_token)],
)
def get_ticket_form_defaults() -> TicketFormView:
    return default_ticket_form(today_local())


@router.get("/tickets/{ticket_id}/edit-form", response_model=TicketFormView)
def get_ticket_edit_form(ticket_id: int, backend: BackendClient = Depends(get_backend_client)) -> TicketFormView:
    return load_edit_form(backend, ticket_id)


@router.post(
    "/tickets/form/toggle-employee",
    response_model=list[int],
    dependencies=[Depends(require_bearer_token)],
)
def post_toggle_employee(payload: EmployeeToggleRequest) -> list[int]:
    return toggle_employee(payload.employee_ids, payload.employee_id)


@router.post("/tickets", response_model=MainTicketRead, status_code=status.HTTP_201_CREATED)
def post_ticket(payload: MainTicketRequest, backend: BackendClient = Depends(get_backend_client)) -> MainTicketRead:
    return save_ticket(backend, payload)


@router.put("/tickets/{ticket_id}", response_model=MainTicketRead)
def put_ticket(
    ticket_id: int,
    payload: MainTicketRequest,
    backend: BackendClient = Depends(get_backend_client),
) -> MainTicketRead:
    return save_ticket(backend, payload, ticket_id=ticket_id)


@router.post("/tickets/{ticket_id}/cancel", status_code=status.HTTP_204_NO_CONTENT)
def post_cancel_ticket(ticket_id: int, backend: BackendClient = Depends(get_backend_client)) -> Response:
    cancel_ticket(backend, ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- lookups ---


@router.get("/generators/search", response_model=list[GeneratorRead])
def get_generator_search(
    q: str | None = Query(default=None),
    backend: BackendClient = Depends(get_backend_client),
) -> list[GeneratorRead]:
    return search_generators(backend, q)


@router.get("/employees", response_model=list[UserRead])
def get_employee_search(
    q: str | None = Query(default=None),
    backend: BackendClient = Depends(get_backend_client),
) -> list[UserRead]:
    return search_employees(backend, q, lookup_size=get_settings().employee_lookup_size)


# --- reports ---


@router.get("/reports/defaults", response_model=ReportDefaultsView)
def get_report_defaults(backend: BackendClient = Depends(get_backend_client)) -> ReportDefaultsView:
    settings = get_settings()
    start_date, end_date = default_report_range(settings.report_default_days, today=today_local())
    employees = backend.get_employees(page=0, size=settings.report_employee_lookup_size).content
    return ReportDefaultsView(start_date=start_date, end_date=end_date, employees=employees)


@router.get("/reports/{kind}", response_model=ReportView)
def get_report(
    kind: ReportKind,
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    employee_id: int | None = Query(default=None, alias="employeeId"),
    backend: BackendClient = Depends(get_backend_client),
) -> ReportView:
    return build_report(
        backend,
        kind,
        start_date=start_date,
        end_date=end_date,
        employee_id=employee_id,
        employee_lookup_size=get_settings().report_employee_lookup_size,
    )


@router.get("/reports/{kind}/export")
def get_report_export(
    kind: ReportKind,
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    employee_id: int | None = Query(default=None, alias="employeeId"),
    export_format: ExportFormat = Query(default=ExportFormat.PDF, alias="format"),
    backend: BackendClient = Depends(get_backend_client),
) -> Response:
    report = build_report(
        backend,
        kind,
        start_date=start_date,
        end_date=end_date,
        employee_id=employee_id,
        employee_lookup_size=get_settings().report_employee_lookup_size,
    )
    filename = export_filename(report, export_format)
    return Response(
        content=render_report(report, export_format),
        media_type=media_type_for(export_format),
        headers={"Content-Disposition": content_disposition(filename)},
    )
