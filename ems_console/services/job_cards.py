from __future__ import annotations

import logging
from datetime import date

from ems_console.backend import BackendClient
from ems_console.errors import ApiError
from ems_console.models import JobStatus
from ems_console.schemas import JobCardDetailView, JobCardListItem, JobCardListView
from ems_console.services.formatting import priority_label
from ems_console.services.workflow import load_job_card_view

logger = logging.getLogger("ems_console.job_cards")

MAX_EVIDENCE_BYTES = 10 * 1024 * 1024


def list_job_cards(
    backend: BackendClient,
    *,
    day: date,
    status: JobStatus | None,
    page: int,
    size: int,
) -> JobCardListView:
    page_data = backend.get_job_cards_by_date(day, status, page=page, size=size)
    # Work the day in the order it was scheduled; "HH:MM:SS" strings sort chronologically.
    cards = sorted(page_data.content, key=lambda card: card.main_ticket.scheduled_time)
    items = [
        JobCardListItem(job_card=card, priority_label=priority_label(index), is_top_priority=index < 3)
        for index, card in enumerate(cards)
    ]
    return JobCardListView(
        date=day,
        status=status,
        items=items,
        page=page,
        total_elements=page_data.total_elements,
        total_pages=page_data.total_pages,
        pending_count=backend.get_pending_job_card_count(),
    )


def upload_evidence(
    backend: BackendClient,
    job_card_id: int,
    *,
    filename: str | None,
    content: bytes,
    content_type: str | None,
) -> JobCardDetailView:
    if not content:
        raise ApiError(status_code=422, code="EMPTY_UPLOAD", message="Please choose a photo to upload.")
    if content_type and not content_type.startswith("image/"):
        raise ApiError(status_code=422, code="INVALID_UPLOAD", message="Only image files can be uploaded.")
    if len(content) > MAX_EVIDENCE_BYTES:
        raise ApiError(status_code=413, code="UPLOAD_TOO_LARGE", message="Image is larger than 10 MB.")

    backend.upload_job_card_image(
        job_card_id,
        filename=filename or "evidence.jpg",
        content=content,
        content_type=content_type,
    )
    logger.info(
        "job_card_evidence_uploaded",
        extra={"job_card_id": job_card_id, "size_bytes": len(content), "content_type": content_type},
    )
    return load_job_card_view(backend, job_card_id)
