from __future__ import annotations

import threading
import unittest

from ems_console.errors import LocationUnavailable
from ems_console.services.location import (
    BoundedLocationProvider,
    Coordinates,
    ReportedLocationProvider,
    distance_m,
    path_distance_km,
)


class _SlowProvider:
    def __init__(self) -> None:
        self.release = threading.Event()

    def get_current_location(self) -> Coordinates:
        self.release.wait(timeout=2)
        return Coordinates(latitude=0.0, longitude=0.0)


class LocationServiceTests(unittest.TestCase):
    def test_distance_m_zero_for_same_point(self) -> None:
        value = distance_m(6.9271, 79.8612, 6.9271, 79.8612)
        self.assertAlmostEqual(value, 0.0, places=6)

    def test_distance_m_known_reference(self) -> None:
        # Approximate distance for 1 degree longitude on equator.
        value = distance_m(0.0, 0.0, 0.0, 1.0)
        self.assertAlmostEqual(value, 111_195, delta=300)

    def test_path_distance_km_sums_legs(self) -> None:
        value = path_distance_km([(0.0, 0.0), (0.0, 1.0), (0.0, 2.0)])
        self.assertAlmostEqual(value, 222.39, delta=0.5)

    def test_path_distance_km_needs_two_points(self) -> None:
        self.assertEqual(path_distance_km([]), 0.0)
        self.assertEqual(path_distance_km([(6.9, 79.8)]), 0.0)


class ReportedLocationProviderTests(unittest.TestCase):
    def test_returns_reported_coordinates(self) -> None:
        location = ReportedLocationProvider(6.9271, 79.8612).get_current_location()
        self.assertEqual(location, Coordinates(latitude=6.9271, longitude=79.8612))

    def test_device_error_is_passed_through(self) -> None:
        provider = ReportedLocationProvider(None, None, error="User denied Geolocation")
        with self.assertRaises(LocationUnavailable) as ctx:
            provider.get_current_location()
        self.assertEqual(ctx.exception.message, "User denied Geolocation")

    def test_missing_coordinates_use_permission_message(self) -> None:
        with self.assertRaises(LocationUnavailable) as ctx:
            ReportedLocationProvider(6.9, None).get_current_location()
        self.assertEqual(ctx.exception.message, "Location permission denied. Please enable GPS.")

    def test_out_of_range_coordinates_rejected(self) -> None:
        with self.assertRaises(LocationUnavailable):
            ReportedLocationProvider(91.0, 79.8).get_current_location()


class BoundedLocationProviderTests(unittest.TestCase):
    def test_passes_through_fast_provider(self) -> None:
        provider = BoundedLocationProvider(ReportedLocationProvider(6.9, 79.8), timeout_seconds=1.0)
        self.assertEqual(provider.get_current_location().latitude, 6.9)

    def test_slow_provider_times_out(self) -> None:
        slow = _SlowProvider()
        provider = BoundedLocationProvider(slow, timeout_seconds=0.05)
        try:
            with self.assertRaises(LocationUnavailable) as ctx:
                provider.get_current_location()
        finally:
            slow.release.set()
        self.assertEqual(ctx.exception.message, "Timed out while acquiring location.")

    def test_inner_failure_is_not_masked(self) -> None:
        provider = BoundedLocationProvider(ReportedLocationProvider(None, None), timeout_seconds=1.0)
        with self.assertRaises(LocationUnavailable) as ctx:
            provider.get_current_location()
        self.assertEqual(ctx.exception.message, "Location permission denied. Please enable GPS.")


if __name__ == "__main__":
    unittest.main()
