from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ems_console.settings import get_display_timezone

GOOGLE_MAPS_DIR_URL = "https://www.google.com/maps/dir/"
GOOGLE_MAPS_QUERY_URL = "https://www.google.com/maps?q="


def format_minutes(minutes: int | None) -> str:
    if not minutes:
        return "0h 0m"
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m"


def format_minutes_decimal(minutes: int | None) -> str:
    if not minutes:
        return "0.0h"
    # Decimal(float) is exact, so halves round up the same way the browser did.
    hours = Decimal(int(minutes) / 60).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{hours}h"


def format_score(value: float | None) -> str:
    return str(Decimal(value or 0.0).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_duration(start: datetime | None, end: datetime | None) -> str | None:
    if start is None or end is None:
        return None
    total_minutes = int((end - start).total_seconds() // 60)
    hours, mins = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def _local(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(get_display_timezone())


def format_time(value: datetime | None) -> str:
    if value is None:
        return "N/A"
    return _local(value).strftime("%I:%M %p")


def format_date_label(value: date | datetime) -> str:
    if isinstance(value, datetime):
        value = _local(value).date()
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def _coordinate(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def build_location_url(latitude: float | None, longitude: float | None) -> str | None:
    if latitude is None or longitude is None:
        return None
    return f"{GOOGLE_MAPS_QUERY_URL}{_coordinate(latitude)},{_coordinate(longitude)}"


def build_route_url(points: Iterable[tuple[float, float]] | None) -> str | None:
    if not points:
        return None
    coords = "/".join(f"{_coordinate(lat)},{_coordinate(lng)}" for lat, lng in points)
    if not coords:
        return None
    return f"{GOOGLE_MAPS_DIR_URL}{coords}"


def priority_label(index: int) -> str:
    suffix = {0: "ST", 1: "ND", 2: "RD"}.get(index, "TH")
    return f"{index + 1}{suffix} PRIORITY"


def today_local(now: datetime | None = None) -> date:
    reference = now or datetime.now(get_display_timezone())
    if reference.tzinfo is None:
        return reference.date()
    return reference.astimezone(get_display_timezone()).date()


def default_report_range(days: int, *, today: date | None = None) -> tuple[date, date]:
    end = today or today_local()
    return end - timedelta(days=days), end


def status_label(value: str) -> str:
    return value.replace("_", " ", 1)
