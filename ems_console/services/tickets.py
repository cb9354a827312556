from __future__ import annotations

import logging
from datetime import date, timedelta

from ems_console.backend import BackendClient
from ems_console.errors import ApiError, BackendError
from ems_console.models import JobCardType, JobStatus, UserRole
from ems_console.schemas import (
    GeneratorRead,
    MainTicketRead,
    MainTicketRequest,
    TicketBoardRow,
    TicketBoardView,
    TicketFormView,
    UserRead,
)

logger = logging.getLogger("ems_console.tickets")

MAX_EMPLOYEES_PER_TICKET = 5
MIN_SEARCH_LENGTH = 3
SEARCH_PAGE_SIZE = 10


def list_ticket_board(
    backend: BackendClient,
    *,
    day: date,
    page: int,
    size: int,
    status: JobStatus | None = None,
    generator_term: str | None = None,
    employee_id: int | None = None,
) -> TicketBoardView:
    """One server page of the day's tickets, narrowed on this page only.

    Status, generator name and assignee filters run on the rows the server
    returned. ``total_elements`` and ``total_pages`` stay the server's numbers so
    paging keeps lining up with the backend; ``matched_on_page`` says how many
    rows of this page survived.
    """
    page_data = backend.get_tickets_by_date_range(day, day, page=page, size=size)
    tickets = list(page_data.content)
    filtered = False

    if status is not None:
        tickets = [ticket for ticket in tickets if ticket.status == status]
        filtered = True

    term = (generator_term or "").strip().lower()
    if term:
        tickets = [ticket for ticket in tickets if term in ticket.generator.name.lower()]
        filtered = True

    if employee_id is not None:
        filtered = True

    rows: list[TicketBoardRow] = []
    for ticket in tickets:
        try:
            assignees = [assignment.employee for assignment in backend.get_ticket_assignments(ticket.id)]
        except BackendError as exc:
            logger.warning(
                "ticket_assignments_unavailable",
                extra={"ticket_id": ticket.id, "reason": exc.message},
            )
            if employee_id is None:
                rows.append(TicketBoardRow(ticket=ticket, assignees=[]))
            continue

        if employee_id is not None and not any(employee.id == employee_id for employee in assignees):
            continue
        rows.append(TicketBoardRow(ticket=ticket, assignees=assignees))

    return TicketBoardView(
        date=day,
        rows=rows,
        page=page,
        total_elements=page_data.total_elements,
        total_pages=page_data.total_pages,
        matched_on_page=len(rows),
        filtered=filtered,
    )


def default_ticket_form(today: date) -> TicketFormView:
    form = MainTicketRequest(
        generator_id=0,
        title="",
        description="",
        type=JobCardType.SERVICE,
        weight=3,
        scheduled_date=today + timedelta(days=1),
        scheduled_time="09:00:00",
        employee_ids=[],
    )
    return TicketFormView(form=form)


def load_edit_form(backend: BackendClient, ticket_id: int) -> TicketFormView:
    ticket = backend.get_ticket(ticket_id)
    assignees = [assignment.employee for assignment in backend.get_ticket_assignments(ticket_id)]
    form = MainTicketRequest(
        generator_id=ticket.generator.id,
        title=ticket.title,
        description=ticket.description or "",
        type=_ticket_type(ticket),
        weight=ticket.weight,
        scheduled_date=ticket.scheduled_date,
        scheduled_time=ticket.scheduled_time,
        employee_ids=[employee.id for employee in assignees],
    )
    return TicketFormView(form=form, selected_generator=ticket.generator, selected_employees=assignees)


def _ticket_type(ticket: MainTicketRead) -> JobCardType:
    try:
        return JobCardType(ticket.type)
    except ValueError:
        return JobCardType.SERVICE


def toggle_employee(employee_ids: list[int], employee_id: int) -> list[int]:
    if employee_id in employee_ids:
        return [value for value in employee_ids if value != employee_id]
    if len(employee_ids) >= MAX_EMPLOYEES_PER_TICKET:
        raise ApiError(
            status_code=422,
            code="TOO_MANY_EMPLOYEES",
            message=f"Maximum {MAX_EMPLOYEES_PER_TICKET} employees allowed",
        )
    return [*employee_ids, employee_id]


def validate_ticket_form(form: MainTicketRequest) -> None:
    if form.generator_id <= 0:
        raise ApiError(status_code=422, code="GENERATOR_REQUIRED", message="Please select a generator")
    if not form.employee_ids:
        raise ApiError(status_code=422, code="EMPLOYEES_REQUIRED", message="Assign at least 1 employee")
    if len(set(form.employee_ids)) > MAX_EMPLOYEES_PER_TICKET:
        raise ApiError(
            status_code=422,
            code="TOO_MANY_EMPLOYEES",
            message=f"Maximum {MAX_EMPLOYEES_PER_TICKET} employees allowed",
        )
    if form.scheduled_date is None:
        raise ApiError(status_code=422, code="SCHEDULE_REQUIRED", message="Please select a scheduled date")
    if not form.title.strip():
        raise ApiError(status_code=422, code="TITLE_REQUIRED", message="Please enter a title")


def save_ticket(backend: BackendClient, form: MainTicketRequest, *, ticket_id: int | None = None) -> MainTicketRead:
    validate_ticket_form(form)
    form = form.model_copy(update={"employee_ids": list(dict.fromkeys(form.employee_ids))})
    if ticket_id is None:
        ticket = backend.create_ticket(form)
        logger.info("ticket_created", extra={"ticket_id": ticket.id, "employee_ids": form.employee_ids})
    else:
        ticket = backend.update_ticket(ticket_id, form)
        logger.info("ticket_updated", extra={"ticket_id": ticket_id, "employee_ids": form.employee_ids})
    return ticket


def cancel_ticket(backend: BackendClient, ticket_id: int) -> None:
    backend.cancel_ticket(ticket_id)
    logger.info("ticket_cancelled", extra={"ticket_id": ticket_id})


def search_generators(backend: BackendClient, term: str | None) -> list[GeneratorRead]:
    value = (term or "").strip()
    if len(value) < MIN_SEARCH_LENGTH:
        return []
    return backend.search_generators(value, page=0, size=SEARCH_PAGE_SIZE).content


def search_employees(backend: BackendClient, term: str | None, *, lookup_size: int) -> list[UserRead]:
    value = (term or "").strip()
    if len(value) < MIN_SEARCH_LENGTH:
        return backend.get_employees(page=0, size=lookup_size, active_only=True).content
    users = backend.search_users(value, page=0, size=SEARCH_PAGE_SIZE).content
    return [user for user in users if user.role == UserRole.EMPLOYEE.value and user.active]
