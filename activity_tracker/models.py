"""
Data models for exercise sessions.

All quantities use SI units (meters, seconds, m/s, s/m, kcal). Conversion to
miles/feet happens in activity_tracker.units, never in the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Tuple


class InputMode(IntEnum):
    MANUAL = 0
    GPS = 1
    AUTOMATIC = 2

    @property
    def uses_location(self) -> bool:
        return self in (InputMode.GPS, InputMode.AUTOMATIC)

    @property
    def uses_accelerometer(self) -> bool:
        return self is InputMode.AUTOMATIC


class Activity(IntEnum):
    """Classifier output ids (0=Standing, 1=Walking, 2=Running)."""

    STANDING = 0
    WALKING = 1
    RUNNING = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True, slots=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class LocationFix:
    """A single location sample as delivered by the location source.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        accuracy: Horizontal accuracy in meters.
        timestamp_ms: Unix epoch milliseconds of the fix.
        speed: Device-reported speed in m/s, if the provider has one.
        altitude: Altitude in meters, if the provider has one.
    """

    latitude: float
    longitude: float
    accuracy: float
    timestamp_ms: int
    speed: Optional[float] = None
    altitude: Optional[float] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)

    @classmethod
    def from_dict(cls, data: dict) -> "LocationFix":
        """Build a fix from a termux-location style dict.

        Accepts either ``timestamp_ms`` or a float ``timestamp`` in seconds.
        """
        if data.get("timestamp_ms") is not None:
            timestamp_ms = int(data["timestamp_ms"])
        else:
            timestamp_ms = int(round(float(data["timestamp"]) * 1000))
        speed = data.get("speed")
        altitude = data.get("altitude")
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            accuracy=float(data.get("accuracy", 999.0)),
            timestamp_ms=timestamp_ms,
            speed=float(speed) if speed is not None else None,
            altitude=float(altitude) if altitude is not None else None,
        )


@dataclass
class Session:
    """Mutable session aggregate.

    ``route_payload`` stays None until the route has been serialized at stop.
    A MANUAL session never gets one, which is how "never tracked" is told
    apart from "tracked, zero points" (a 4-byte payload).
    """

    mode: InputMode
    activity: int
    start_time_ms: int
    duration_s: float = 0.0
    distance_m: float = 0.0
    avg_speed_mps: float = 0.0
    avg_pace_s_per_m: float = 0.0
    current_speed_mps: float = 0.0
    climb_m: float = 0.0
    calories_kcal: float = 0.0
    route: List[GeoPoint] = field(default_factory=list)
    route_payload: Optional[bytes] = None
    id: Optional[int] = None

    def snapshot(self) -> "SessionSnapshot":
        return SessionSnapshot(
            mode=self.mode,
            activity=self.activity,
            start_time_ms=self.start_time_ms,
            duration_s=self.duration_s,
            distance_m=self.distance_m,
            avg_speed_mps=self.avg_speed_mps,
            avg_pace_s_per_m=self.avg_pace_s_per_m,
            current_speed_mps=self.current_speed_mps,
            climb_m=self.climb_m,
            calories_kcal=self.calories_kcal,
            route=tuple(self.route),
        )


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Immutable copy of a Session published to observers."""

    mode: InputMode
    activity: int
    start_time_ms: int
    duration_s: float
    distance_m: float
    avg_speed_mps: float
    avg_pace_s_per_m: float
    current_speed_mps: float
    climb_m: float
    calories_kcal: float
    route: Tuple[GeoPoint, ...]
