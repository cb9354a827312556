from datetime import date

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from ems_console.backend import BackendClient
from ems_console.models import JobStatus
from ems_console.schemas import (
    EmployeeDashboardView,
    JobCardDetailView,
    JobCardListView,
    JobStatusChangeRequest,
)
from ems_console.security import get_backend_client
from ems_console.services.dashboard import end_day, load_dashboard, start_day
from ems_console.services.formatting import today_local
from ems_console.services.job_cards import list_job_cards, upload_evidence
from ems_console.services.location import BoundedLocationProvider, ReportedLocationProvider
from ems_console.services.workflow import load_job_card_view, request_transition
from ems_console.settings import get_settings

router = APIRouter(prefix="/api/employee", tags=["employee"])


@router.get("/dashboard", response_model=EmployeeDashboardView)
def get_dashboard(backend: BackendClient = Depends(get_backend_client)) -> EmployeeDashboardView:
    return load_dashboard(backend)


@router.post("/attendance/start-day", response_model=EmployeeDashboardView)
def post_start_day(backend: BackendClient = Depends(get_backend_client)) -> EmployeeDashboardView:
    return start_day(backend)


@router.post("/attendance/end-day", response_model=EmployeeDashboardView)
def post_end_day(backend: BackendClient = Depends(get_backend_client)) -> EmployeeDashboardView:
    return end_day(backend)


@router.get("/job-cards", response_model=JobCardListView)
def get_job_cards(
    day: date | None = Query(default=None, alias="date"),
    status: JobStatus | None = Query(default=None),
    page: int = Query(default=0, ge=0),
    backend: BackendClient = Depends(get_backend_client),
) -> JobCardListView:
    return list_job_cards(
        backend,
        day=day or today_local(),
        status=status,
        page=page,
        size=get_settings().job_card_page_size,
    )


@router.get("/job-cards/{job_card_id}", response_model=JobCardDetailView)
def get_job_card(job_card_id: int, backend: BackendClient = Depends(get_backend_client)) -> JobCardDetailView:
    return load_job_card_view(backend, job_card_id)


@router.post("/job-cards/{job_card_id}/status", response_model=JobCardDetailView)
def post_job_card_status(
    job_card_id: int,
    payload: JobStatusChangeRequest,
    request: Request,
    backend: BackendClient = Depends(get_backend_client),
) -> JobCardDetailView:
    request.state.job_card_id = job_card_id
    provider = BoundedLocationProvider(
        ReportedLocationProvider(payload.latitude, payload.longitude, error=payload.location_error),
        timeout_seconds=get_settings().location_timeout_seconds,
    )
    return request_transition(backend, provider, job_card_id, payload.new_status)


@router.post("/job-cards/{job_card_id}/image", response_model=JobCardDetailView)
def post_job_card_image(
    job_card_id: int,
    file: UploadFile = File(...),
    backend: BackendClient = Depends(get_backend_client),
) -> JobCardDetailView:
    content = file.file.read()
    return upload_evidence(
        backend,
        job_card_id,
        filename=file.filename,
        content=content,
        content_type=file.content_type,
    )
