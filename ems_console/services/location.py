from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt
from typing import Protocol

from ems_console.errors import LocationUnavailable

logger = logging.getLogger("ems_console.location")


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


class LocationProvider(Protocol):
    def get_current_location(self) -> Coordinates:
        """Return the device position or raise LocationUnavailable."""


class ReportedLocationProvider:
    """Position the device sent along with the request.

    The browser does the actual GPS acquisition; it either reports coordinates
    or the reason it could not get them.
    """

    def __init__(
        self,
        latitude: float | None,
        longitude: float | None,
        *,
        error: str | None = None,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.error = error

    def get_current_location(self) -> Coordinates:
        if self.error:
            raise LocationUnavailable(self.error)
        if self.latitude is None or self.longitude is None:
            raise LocationUnavailable()
        if not (-90.0 <= self.latitude <= 90.0) or not (-180.0 <= self.longitude <= 180.0):
            raise LocationUnavailable("Reported location is out of range.")
        return Coordinates(latitude=float(self.latitude), longitude=float(self.longitude))


class BoundedLocationProvider:
    """Fails with LocationUnavailable when the inner provider is too slow."""

    def __init__(self, inner: LocationProvider, timeout_seconds: float) -> None:
        self.inner = inner
        self.timeout_seconds = timeout_seconds

    def get_current_location(self) -> Coordinates:
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.inner.get_current_location)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError as exc:
            logger.warning("location_timeout", extra={"timeout_seconds": self.timeout_seconds})
            raise LocationUnavailable("Timed out while acquiring location.") from exc
        finally:
            executor.shutdown(wait=False)


def distance_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    earth_radius_m = 6371000.0

    lat1_rad = radians(lat1)
    lon1_rad = radians(lon1)
    lat2_rad = radians(lat2)
    lon2_rad = radians(lon2)

    delta_lat = lat2_rad - lat1_rad
    delta_lon = lon2_rad - lon1_rad

    a = sin(delta_lat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(delta_lon / 2) ** 2
    c = 2 * asin(sqrt(a))
    return earth_radius_m * c


def path_distance_km(points: Iterable[tuple[float, float]]) -> float:
    total_m = 0.0
    previous: tuple[float, float] | None = None
    for point in points:
        if previous is not None:
            total_m += distance_m(previous[0], previous[1], point[0], point[1])
        previous = point
    return round(total_m / 1000.0, 2)
