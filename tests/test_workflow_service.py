from __future__ import annotations

import unittest
from datetime import datetime, timezone
from itertools import product

from ems_console.errors import BackendError, LocationUnavailable, TransitionRejected
from ems_console.models import JobStatus
from ems_console.schemas import JobCardRead, JobStatusLogRead
from ems_console.services.location import Coordinates, ReportedLocationProvider
from ems_console.services.workflow import (
    ALLOWED_TRANSITIONS,
    allowed_targets,
    build_job_card_view,
    can_transition,
    is_terminal,
    request_transition,
)


def _job_card(status: JobStatus, job_card_id: int = 7) -> JobCardRead:
    return JobCardRead.model_validate(
        {
            "id": job_card_id,
            "status": status.value,
            "workMinutes": 90,
            "startTime": "2026-01-05T09:00:00+05:30",
            "endTime": None,
            "mainTicket": {
                "id": 3,
                "ticketNumber": "T-0003",
                "title": "Quarterly service",
                "type": "SERVICE",
                "weight": 3,
                "scheduledDate": "2026-01-05",
                "scheduledTime": "09:00:00",
                "generator": {"id": 11, "name": "Colombo Main"},
            },
            "employee": {"id": 21, "username": "nimal", "fullName": "Nimal Perera", "role": "EMPLOYEE"},
        }
    )


class _FakeBackend:
    def __init__(self, status: JobStatus, *, reject_with: BackendError | None = None):
        self.status = status
        self.reject_with = reject_with
        self.logs: list[JobStatusLogRead] = []
        self.status_calls: list[tuple[int, JobStatus, float, float]] = []
        self.reloads = 0

    def update_job_card_status(self, job_card_id, new_status, latitude, longitude):  # type: ignore[no-untyped-def]
        self.status_calls.append((job_card_id, new_status, latitude, longitude))
        if self.reject_with is not None:
            raise self.reject_with
        self.status = new_status
        self.logs.append(
            JobStatusLogRead(
                id=len(self.logs) + 1,
                new_status=new_status,
                logged_at=datetime(2026, 1, 5, 4, 0, tzinfo=timezone.utc),
                latitude=latitude,
                longitude=longitude,
            )
        )
        return None

    def get_job_card(self, job_card_id):  # type: ignore[no-untyped-def]
        self.reloads += 1
        return _job_card(self.status, job_card_id)

    def get_job_card_logs(self, _job_card_id):  # type: ignore[no-untyped-def]
        return list(self.logs)


class _FixedLocation:
    def __init__(self, latitude: float, longitude: float):
        self.coordinates = Coordinates(latitude=latitude, longitude=longitude)

    def get_current_location(self) -> Coordinates:
        return self.coordinates


class TransitionTableTests(unittest.TestCase):
    def test_every_pair_matches_table(self) -> None:
        expected = {
            (JobStatus.PENDING, JobStatus.TRAVELING),
            (JobStatus.PENDING, JobStatus.CANCEL),
            (JobStatus.TRAVELING, JobStatus.STARTED),
            (JobStatus.TRAVELING, JobStatus.CANCEL),
            (JobStatus.STARTED, JobStatus.ON_HOLD),
            (JobStatus.STARTED, JobStatus.COMPLETED),
            (JobStatus.STARTED, JobStatus.CANCEL),
            (JobStatus.ON_HOLD, JobStatus.STARTED),
        }
        for current, target in product(JobStatus, JobStatus):
            with self.subTest(current=current, target=target):
                self.assertEqual(can_transition(current, target), (current, target) in expected)

    def test_terminal_statuses_have_no_targets(self) -> None:
        for status in (JobStatus.COMPLETED, JobStatus.CANCEL):
            self.assertTrue(is_terminal(status))
            self.assertEqual(allowed_targets(status), [])
            self.assertEqual(ALLOWED_TRANSITIONS[status], frozenset())

    def test_self_transitions_are_never_allowed(self) -> None:
        for status in JobStatus:
            self.assertFalse(can_transition(status, status))

    def test_allowed_targets_follow_action_order(self) -> None:
        self.assertEqual(
            allowed_targets(JobStatus.STARTED),
            [JobStatus.ON_HOLD, JobStatus.COMPLETED, JobStatus.CANCEL],
        )
        self.assertEqual(allowed_targets(JobStatus.PENDING), [JobStatus.TRAVELING, JobStatus.CANCEL])
        self.assertEqual(allowed_targets(JobStatus.ON_HOLD), [JobStatus.STARTED])

    def test_accepts_raw_strings_and_rejects_unknown_values(self) -> None:
        self.assertTrue(can_transition("PENDING", "TRAVELING"))
        self.assertFalse(can_transition("PENDING", "ARCHIVED"))
        self.assertFalse(can_transition("ARCHIVED", "PENDING"))
        self.assertEqual(allowed_targets("ARCHIVED"), [])
        self.assertFalse(is_terminal("ARCHIVED"))


class JobCardViewTests(unittest.TestCase):
    def test_view_carries_actions_labels_and_map_links(self) -> None:
        log = JobStatusLogRead(
            id=1,
            new_status=JobStatus.STARTED,
            logged_at=datetime(2026, 1, 5, 3, 30, tzinfo=timezone.utc),
            latitude=6.9271,
            longitude=79.8612,
        )
        view = build_job_card_view(_job_card(JobStatus.STARTED), [log])

        self.assertEqual(view.allowed_actions, [JobStatus.ON_HOLD, JobStatus.COMPLETED, JobStatus.CANCEL])
        self.assertFalse(view.is_terminal)
        self.assertEqual(view.allocated_label, "1h 30m")
        self.assertIsNone(view.actual_duration)
        self.assertEqual(view.logs[0].map_url, "https://www.google.com/maps?q=6.9271,79.8612")

    def test_completed_card_offers_no_actions(self) -> None:
        view = build_job_card_view(_job_card(JobStatus.COMPLETED), [])
        self.assertEqual(view.allowed_actions, [])
        self.assertTrue(view.is_terminal)


class RequestTransitionTests(unittest.TestCase):
    def test_confirmed_transition_returns_reloaded_view(self) -> None:
        backend = _FakeBackend(JobStatus.STARTED)

        view = request_transition(backend, _FixedLocation(6.9271, 79.8612), 7, JobStatus.ON_HOLD)

        self.assertEqual(backend.status_calls, [(7, JobStatus.ON_HOLD, 6.9271, 79.8612)])
        self.assertEqual(view.job_card.status, JobStatus.ON_HOLD)
        self.assertEqual(view.allowed_actions, [JobStatus.STARTED])
        self.assertEqual(view.logs[-1].new_status, JobStatus.ON_HOLD)
        self.assertEqual((view.logs[-1].latitude, view.logs[-1].longitude), (6.9271, 79.8612))

    def test_missing_location_never_reaches_backend(self) -> None:
        backend = _FakeBackend(JobStatus.PENDING)

        with self.assertRaises(LocationUnavailable) as ctx:
            request_transition(backend, ReportedLocationProvider(None, None), 7, JobStatus.TRAVELING)

        self.assertEqual(ctx.exception.status_code, 422)
        self.assertEqual(ctx.exception.message, "Location permission denied. Please enable GPS.")
        self.assertEqual(backend.status_calls, [])
        self.assertEqual(backend.reloads, 0)

    def test_backend_rejection_keeps_message_and_skips_reload(self) -> None:
        backend = _FakeBackend(
            JobStatus.PENDING,
            reject_with=BackendError(400, "Cannot move from PENDING to COMPLETED"),
        )

        with self.assertRaises(TransitionRejected) as ctx:
            request_transition(backend, _FixedLocation(6.9, 79.8), 7, JobStatus.COMPLETED)

        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(ctx.exception.message, "Cannot move from PENDING to COMPLETED")
        self.assertEqual(ctx.exception.backend_status, 400)
        self.assertEqual(backend.reloads, 0)

    def test_server_error_is_still_a_rejection(self) -> None:
        backend = _FakeBackend(JobStatus.STARTED, reject_with=BackendError(500, "Database unavailable"))

        with self.assertRaises(TransitionRejected) as ctx:
            request_transition(backend, _FixedLocation(6.9, 79.8), 7, JobStatus.COMPLETED)

        self.assertEqual(ctx.exception.message, "Database unavailable")

    def test_unreachable_backend_propagates_backend_error(self) -> None:
        backend = _FakeBackend(JobStatus.STARTED, reject_with=BackendError(None, "Backend service is unreachable."))

        with self.assertRaises(BackendError) as ctx:
            request_transition(backend, _FixedLocation(6.9, 79.8), 7, JobStatus.COMPLETED)

        self.assertNotIsInstance(ctx.exception, TransitionRejected)
        self.assertEqual(ctx.exception.status_code, 502)

    def test_auth_failure_is_not_reported_as_rejection(self) -> None:
        for backend_status in (401, 403):
            with self.subTest(backend_status=backend_status):
                backend = _FakeBackend(
                    JobStatus.STARTED,
                    reject_with=BackendError(backend_status, "Token expired"),
                )

                with self.assertRaises(BackendError) as ctx:
                    request_transition(backend, _FixedLocation(6.9, 79.8), 7, JobStatus.ON_HOLD)

                self.assertNotIsInstance(ctx.exception, TransitionRejected)
                self.assertEqual(ctx.exception.status_code, backend_status)
                self.assertEqual(ctx.exception.message, "Token expired")
                self.assertEqual(backend.reloads, 0)

    def test_sequential_transitions_follow_reloaded_state(self) -> None:
        backend = _FakeBackend(JobStatus.PENDING)
        location = _FixedLocation(6.9271, 79.8612)

        view = request_transition(backend, location, 7, JobStatus.TRAVELING)
        self.assertEqual(view.allowed_actions, [JobStatus.STARTED, JobStatus.CANCEL])

        view = request_transition(backend, location, 7, JobStatus.STARTED)
        view = request_transition(backend, location, 7, JobStatus.COMPLETED)

        self.assertEqual(view.job_card.status, JobStatus.COMPLETED)
        self.assertTrue(view.is_terminal)
        self.assertEqual(
            [log.new_status for log in view.logs],
            [JobStatus.TRAVELING, JobStatus.STARTED, JobStatus.COMPLETED],
        )
        self.assertEqual(backend.reloads, 3)


if __name__ == "__main__":
    unittest.main()
