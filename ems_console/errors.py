from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class BackendError(ApiError):
    """Non-2xx answer (or transport failure) from the EMS backend.

    ``message`` is the backend's own text when it sent one, so it can be shown
    to the user verbatim. ``backend_status`` keeps the upstream status code and is
    None when the backend could not be reached at all. ``status_code`` is what we
    answer with (4xx mirrored, everything else 502).
    """

    def __init__(self, backend_status: int | None, message: str):
        status_code = backend_status if backend_status is not None and 400 <= backend_status < 500 else 502
        super().__init__(status_code=status_code, code="BACKEND_ERROR", message=message)
        self.backend_status = backend_status


class LocationUnavailable(ApiError):
    def __init__(self, message: str = "Location permission denied. Please enable GPS."):
        super().__init__(status_code=422, code="LOCATION_UNAVAILABLE", message=message)


class TransitionRejected(ApiError):
    def __init__(self, message: str, *, backend_status: int | None = None):
        super().__init__(status_code=409, code="TRANSITION_REJECTED", message=message)
        self.backend_status = backend_status


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    return JSONResponse(status_code=status_code, content=payload)
