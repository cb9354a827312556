from __future__ import annotations

import json
import unittest

import httpx
from fastapi.testclient import TestClient

from ems_console.backend import BackendClient
from ems_console.main import app
from ems_console.security import get_backend_client

AUTH = {"Authorization": "Bearer employee-token"}


def _job_card_json(job_card_id: int, status: str, scheduled_time: str = "09:00:00") -> dict:
    return {
        "id": job_card_id,
        "status": status,
        "workMinutes": 90,
        "approved": False,
        "mainTicket": {
            "id": job_card_id + 100,
            "ticketNumber": f"T-{job_card_id:04d}",
            "title": "Quarterly service",
            "type": "SERVICE",
            "weight": 3,
            "scheduledDate": "2026-01-05",
            "scheduledTime": scheduled_time,
            "generator": {"id": 11, "name": "Colombo Main"},
        },
        "employee": {"id": 21, "username": "nimal", "fullName": "Nimal Perera", "role": "EMPLOYEE"},
    }


class _FakeEmsBackend:
    """In-memory stand-in for the EMS REST backend behind httpx.MockTransport."""

    def __init__(self, status: str = "STARTED"):
        self.status = status
        self.logs: list[dict] = []
        self.reject_message: str | None = None
        self.reject_status = 400
        self.requests: list[httpx.Request] = []
        self.day_started = False

    def status_updates(self) -> list[httpx.Request]:
        return [request for request in self.requests if request.method == "PUT"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "PUT" and path == "/api/employee/job-cards/7/status":
            if self.reject_message:
                return httpx.Response(self.reject_status, json={"success": False, "message": self.reject_message})
            body = json.loads(request.content)
            self.status = body["newStatus"]
            self.logs.append(
                {
                    "id": len(self.logs) + 1,
                    "newStatus": body["newStatus"],
                    "loggedAt": "2026-01-05T04:00:00Z",
                    "latitude": body["latitude"],
                    "longitude": body["longitude"],
                }
            )
            return httpx.Response(200, json={"success": True, "message": "Status updated", "data": None})
        if path == "/api/employee/job-cards/7":
            return httpx.Response(200, json=_job_card_json(7, self.status))
        if path == "/api/employee/job-cards/7/logs":
            return httpx.Response(200, json=self.logs)
        if path == "/api/employee/job-cards/7/image":
            return httpx.Response(200, json={"success": True, "message": "Uploaded", "data": None})
        if path == "/api/employee/job-cards/pending-count":
            return httpx.Response(200, json=2)
        if path.startswith("/api/employee/job-cards/date/"):
            return httpx.Response(
                200,
                json={
                    "content": [
                        _job_card_json(8, "PENDING", "14:00:00"),
                        _job_card_json(9, "PENDING", "08:30:00"),
                    ],
                    "totalElements": 2,
                    "totalPages": 1,
                    "number": 0,
                    "size": 12,
                },
            )
        if path == "/api/employee/attendance/start-day":
            self.day_started = True
            return httpx.Response(200, json={"success": True, "message": "Day started", "data": None})
        if path == "/api/employee/dashboard":
            return httpx.Response(200, json={"dayStarted": self.day_started, "dayEnded": False, "todayJobs": 3})
        return httpx.Response(404, json={"message": f"No route for {path}"})


class EmployeeEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = _FakeEmsBackend()

        def _override_backend():  # type: ignore[no-untyped-def]
            return BackendClient(
                base_url="http://backend.test",
                token="employee-token",
                transport=httpx.MockTransport(self.backend.handler),
            )

        app.dependency_overrides[get_backend_client] = _override_backend
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_missing_token_is_rejected(self) -> None:
        app.dependency_overrides.clear()
        response = TestClient(app).get("/api/employee/job-cards/7")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "INVALID_TOKEN")

    def test_job_card_detail_uses_camel_case(self) -> None:
        response = self.client.get("/api/employee/job-cards/7", headers=AUTH)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["jobCard"]["status"], "STARTED")
        self.assertEqual(body["allowedActions"], ["ON_HOLD", "COMPLETED", "CANCEL"])
        self.assertEqual(body["allocatedLabel"], "1h 30m")
        self.assertFalse(body["isTerminal"])

    def test_status_change_sends_location_and_returns_reloaded_card(self) -> None:
        response = self.client.post(
            "/api/employee/job-cards/7/status",
            headers=AUTH,
            json={"newStatus": "ON_HOLD", "latitude": 6.9271, "longitude": 79.8612},
        )

        self.assertEqual(response.status_code, 200)
        updates = self.backend.status_updates()
        self.assertEqual(len(updates), 1)
        self.assertEqual(
            json.loads(updates[0].content),
            {"newStatus": "ON_HOLD", "latitude": 6.9271, "longitude": 79.8612},
        )
        body = response.json()
        self.assertEqual(body["jobCard"]["status"], "ON_HOLD")
        self.assertEqual(body["allowedActions"], ["STARTED"])
        self.assertEqual(body["logs"][-1]["latitude"], 6.9271)
        self.assertEqual(body["logs"][-1]["longitude"], 79.8612)
        self.assertEqual(body["logs"][-1]["mapUrl"], "https://www.google.com/maps?q=6.9271,79.8612")
        self.assertTrue(response.headers.get("X-Request-Id"))

    def test_status_change_without_location_makes_no_backend_call(self) -> None:
        response = self.client.post(
            "/api/employee/job-cards/7/status",
            headers=AUTH,
            json={"newStatus": "ON_HOLD", "locationError": "User denied Geolocation"},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "LOCATION_UNAVAILABLE")
        self.assertEqual(response.json()["error"]["message"], "User denied Geolocation")
        self.assertEqual(self.backend.requests, [])

    def test_rejected_status_change_returns_backend_message(self) -> None:
        self.backend.reject_message = "Job card is already completed"

        response = self.client.post(
            "/api/employee/job-cards/7/status",
            headers={**AUTH, "X-Request-Id": "req-123"},
            json={"newStatus": "COMPLETED", "latitude": 6.9271, "longitude": 79.8612},
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(
            response.json(),
            {
                "error": {
                    "code": "TRANSITION_REJECTED",
                    "message": "Job card is already completed",
                    "request_id": "req-123",
                }
            },
        )
        self.assertEqual(len(self.backend.requests), 1)

    def test_expired_token_on_status_change_is_not_a_rejection(self) -> None:
        self.backend.reject_status = 401
        self.backend.reject_message = "Token has expired"

        response = self.client.post(
            "/api/employee/job-cards/7/status",
            headers=AUTH,
            json={"newStatus": "ON_HOLD", "latitude": 6.9271, "longitude": 79.8612},
        )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"]["code"], "BACKEND_ERROR")
        self.assertEqual(response.json()["error"]["message"], "Token has expired")

    def test_unknown_status_is_a_validation_error(self) -> None:
        response = self.client.post(
            "/api/employee/job-cards/7/status",
            headers=AUTH,
            json={"newStatus": "ARCHIVED", "latitude": 6.9, "longitude": 79.8},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    def test_job_card_list_is_ordered_by_schedule(self) -> None:
        response = self.client.get("/api/employee/job-cards?date=2026-01-05", headers=AUTH)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual([item["jobCard"]["id"] for item in body["items"]], [9, 8])
        self.assertEqual(body["items"][0]["priorityLabel"], "1ST PRIORITY")
        self.assertEqual(body["pendingCount"], 2)
        self.assertEqual(self.backend.requests[0].url.path, "/api/employee/job-cards/date/2026-01-05")

    def test_start_day_returns_refreshed_dashboard(self) -> None:
        response = self.client.post("/api/employee/attendance/start-day", headers=AUTH)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["summary"]["dayStarted"])
        self.assertEqual(response.json()["pendingCount"], 2)

    def test_evidence_upload_rejects_non_images(self) -> None:
        response = self.client.post(
            "/api/employee/job-cards/7/image",
            headers=AUTH,
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "INVALID_UPLOAD")
        self.assertEqual(self.backend.requests, [])

    def test_evidence_upload_forwards_image(self) -> None:
        response = self.client.post(
            "/api/employee/job-cards/7/image",
            headers=AUTH,
            files={"file": ("site.jpg", b"\xff\xd8\xff\xe0jpeg", "image/jpeg")},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.backend.requests[0].url.path, "/api/employee/job-cards/7/image")
        self.assertIn(b"site.jpg", self.backend.requests[0].content)

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")


if __name__ == "__main__":
    unittest.main()
