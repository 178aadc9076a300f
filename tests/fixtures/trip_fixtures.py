"""
Trip and engine fixtures for testing
"""

from datetime import datetime, timedelta, timezone

import pytest

FIXED_NOW = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)
TRIP_START = datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


def build_trip(**overrides):
    """Raw trip mapping for a normal 120km, 2h daytime trip with fuel recorded"""
    trip = {
        "trip_id": "T-001",
        "vehicle_id": "VH-001",
        "vehicle_registration": "KA-01-1234",
        "trip_serial_number": "S-001",
        "trip_start_date": TRIP_START,
        "trip_end_date": TRIP_START + timedelta(hours=2),
        "start_km": 10000.0,
        "end_km": 10120.0,
        "fuel_quantity": 12.0,
        "calculated_kmpl": 10.0,
        "destinations": ["Depot A", "Client B"],
        "notes": None,
    }
    trip.update(overrides)
    return trip


class TickingClock:
    """Deterministic clock advancing one second per call"""

    def __init__(self, start=FIXED_NOW, step=timedelta(seconds=1)):
        self.current = start
        self.step = step
        self.calls = 0

    def __call__(self):
        value = self.current
        self.current += self.step
        self.calls += 1
        return value


@pytest.fixture
def make_trip():
    """Factory for raw trip mappings"""
    return build_trip


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def ticking_clock():
    return TickingClock()


@pytest.fixture
def breakdown_trip_data():
    """5km, 18 minute trip ending at a garage after a breakdown"""
    return build_trip(
        trip_id="T-BRK",
        trip_start_date=TRIP_START + timedelta(hours=1),
        trip_end_date=TRIP_START + timedelta(hours=1, minutes=18),
        start_km=10120.0,
        end_km=10125.0,
        fuel_quantity=0.0,
        calculated_kmpl=None,
        destinations=["City Garage"],
        notes="Vehicle towed after breakdown",
    )


@pytest.fixture
def impossible_trip_data():
    """Half a kilometre recorded over two hours"""
    return build_trip(trip_id="T-IMP", start_km=10200.0, end_km=10200.5)


@pytest.fixture
def vehicle_history():
    """Clean, time-ordered history of three trips for VH-001"""
    day = timedelta(days=1)
    return [
        build_trip(
            trip_id=f"H-{i}",
            trip_serial_number=f"S-{i}",
            trip_start_date=TRIP_START + i * day,
            trip_end_date=TRIP_START + i * day + timedelta(hours=2),
            start_km=10000.0 + i * 150,
            end_km=10120.0 + i * 150,
        )
        for i in range(3)
    ]
