"""Job card status workflow.

PENDING -> TRAVELING -> STARTED -> (ON_HOLD <-> STARTED) -> COMPLETED, with CANCEL
reachable from PENDING, TRAVELING and STARTED. COMPLETED and CANCEL are terminal.

Every transition needs a device location. The backend re-validates the move and
writes the status log; nothing here changes local state before it confirms.
"""

from __future__ import annotations

import logging

from ems_console.backend import BackendClient
from ems_console.errors import BackendError, LocationUnavailable, TransitionRejected
from ems_console.models import JobStatus
from ems_console.schemas import JobCardDetailView, JobCardRead, JobStatusLogRead, JobStatusLogView
from ems_console.services.formatting import build_location_url, format_duration, format_minutes
from ems_console.services.location import LocationProvider

logger = logging.getLogger("ems_console.workflow")

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.TRAVELING, JobStatus.CANCEL}),
    JobStatus.TRAVELING: frozenset({JobStatus.STARTED, JobStatus.CANCEL}),
    JobStatus.STARTED: frozenset({JobStatus.COMPLETED, JobStatus.ON_HOLD, JobStatus.CANCEL}),
    JobStatus.ON_HOLD: frozenset({JobStatus.STARTED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCEL: frozenset(),
}

# Order the action buttons are offered in.
ACTION_ORDER: tuple[JobStatus, ...] = (
    JobStatus.TRAVELING,
    JobStatus.STARTED,
    JobStatus.ON_HOLD,
    JobStatus.COMPLETED,
    JobStatus.CANCEL,
)

TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)

AUTH_FAILURE_STATUSES = frozenset({401, 403})


def _coerce(value: JobStatus | str) -> JobStatus | None:
    if isinstance(value, JobStatus):
        return value
    try:
        return JobStatus(value)
    except ValueError:
        return None


def can_transition(current: JobStatus | str, target: JobStatus | str) -> bool:
    current_status = _coerce(current)
    target_status = _coerce(target)
    if current_status is None or target_status is None:
        return False
    return target_status in ALLOWED_TRANSITIONS[current_status]


def allowed_targets(current: JobStatus | str) -> list[JobStatus]:
    return [target for target in ACTION_ORDER if can_transition(current, target)]


def is_terminal(status: JobStatus | str) -> bool:
    return _coerce(status) in TERMINAL_STATUSES


def build_job_card_view(job_card: JobCardRead, logs: list[JobStatusLogRead]) -> JobCardDetailView:
    log_views = [
        JobStatusLogView(
            **log.model_dump(),
            map_url=build_location_url(log.latitude, log.longitude),
        )
        for log in logs
    ]
    return JobCardDetailView(
        job_card=job_card,
        logs=log_views,
        allowed_actions=allowed_targets(job_card.status),
        is_terminal=is_terminal(job_card.status),
        allocated_label=format_minutes(job_card.work_minutes),
        actual_duration=format_duration(job_card.start_time, job_card.end_time),
    )


def load_job_card_view(backend: BackendClient, job_card_id: int) -> JobCardDetailView:
    job_card = backend.get_job_card(job_card_id)
    logs = backend.get_job_card_logs(job_card_id)
    return build_job_card_view(job_card, logs)


def request_transition(
    backend: BackendClient,
    location_provider: LocationProvider,
    job_card_id: int,
    target_status: JobStatus,
) -> JobCardDetailView:
    """Move a job card to ``target_status`` and return the reloaded view.

    Raises LocationUnavailable before anything is sent when the device position
    can't be had, and TransitionRejected with the backend's own message when the
    backend refuses the move. In both cases the caller keeps whatever it last
    loaded; only a confirmed reload produces a new view.
    """
    try:
        location = location_provider.get_current_location()
    except LocationUnavailable as exc:
        logger.info(
            "job_card_location_unavailable",
            extra={"job_card_id": job_card_id, "target_status": target_status.value, "reason": exc.message},
        )
        raise

    try:
        backend.update_job_card_status(
            job_card_id,
            target_status,
            location.latitude,
            location.longitude,
        )
    except BackendError as exc:
        # Auth failures and an unreachable backend are not verdicts on the move.
        if exc.backend_status is None or exc.backend_status in AUTH_FAILURE_STATUSES:
            raise
        logger.info(
            "job_card_transition_rejected",
            extra={
                "job_card_id": job_card_id,
                "target_status": target_status.value,
                "backend_status": exc.backend_status,
                "reason": exc.message,
            },
        )
        raise TransitionRejected(exc.message, backend_status=exc.backend_status) from exc

    view = load_job_card_view(backend, job_card_id)
    logger.info(
        "job_card_transition_confirmed",
        extra={
            "job_card_id": job_card_id,
            "target_status": target_status.value,
            "status": view.job_card.status.value,
            "latitude": location.latitude,
            "longitude": location.longitude,
        },
    )
    return view
