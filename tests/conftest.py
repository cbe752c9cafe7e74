import pytest

from activity_tracker.geo import offset_meters
from activity_tracker.models import LocationFix

ORIGIN = (47.6062, -122.3321)


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()


def make_fix(north_m=0.0, east_m=0.0, t_s=0.0, accuracy=5.0, speed=None, altitude=None,
             origin=ORIGIN):
    lat, lon = offset_meters(origin[0], origin[1], north_m, east_m)
    return LocationFix(
        latitude=lat,
        longitude=lon,
        accuracy=accuracy,
        timestamp_ms=int(round(t_s * 1000)),
        speed=speed,
        altitude=altitude,
    )
