from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ems_console.backend import BackendClient, build_backend_client
from ems_console.errors import ApiError

bearer_scheme = HTTPBearer(auto_error=False)


def require_bearer_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    # The backend owns authentication; we only refuse to call it anonymously.
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials.strip():
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Missing bearer token.")

    request.state.actor = "user"
    return credentials.credentials.strip()


def get_backend_client(token: str = Depends(require_bearer_token)) -> Generator[BackendClient, None, None]:
    client = build_backend_client(token)
    try:
        yield client
    finally:
        client.close()
