#!/usr/bin/env python
from __future__ import annotations

import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path

from ems_console.backend import build_backend_client
from ems_console.errors import BackendError
from ems_console.settings import get_backend_base_url


def load_env_if_exists() -> None:
    env_file = Path(".env")
    if not env_file.exists():
        return
    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def run() -> dict:
    load_env_if_exists()
    token = os.environ.get("EMS_HEALTH_TOKEN")
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "backend_base_url": get_backend_base_url(),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append(
            {
                "name": name,
                "status": status,
                "details": details,
            }
        )

    with build_backend_client(token) as client:
        start = time.perf_counter()
        try:
            status_code = client.ping()
        except BackendError as exc:
            add("backend_reachable", "fail", {"error": exc.message})
            return report
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        add("backend_reachable", "ok", {"status_code": status_code, "latency_ms": latency_ms})

        # 401/403 still proves the service is up; only 5xx means trouble.
        add(
            "backend_status",
            "fail" if status_code >= 500 else "ok",
            {"status_code": status_code},
        )

        if token:
            try:
                pending = client.get_pending_job_card_count()
            except BackendError as exc:
                add("authenticated_call", "fail", {"backend_status": exc.backend_status, "error": exc.message})
            else:
                add("authenticated_call", "ok", {"pending_count": pending})
        else:
            add("authenticated_call", "warn", {"reason": "EMS_HEALTH_TOKEN not set"})

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
