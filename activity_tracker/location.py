"""
GPS fix filtering and accumulation.

Turns a stream of LocationFix objects into cumulative distance, current
speed, climb and the recorded route. Three filters sit in front of the
accumulators:

- accuracy gate: fixes reporting worse than accuracy_threshold_m are ignored
- jitter suppression: moves shorter than min_movement_m refresh the speed
  reference but never reach the route or the distance total
- teleport rejection: a fix implying a speed at or above
  max_plausible_speed_mps is dropped outright
"""

import enum
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import DEFAULT_CONFIG
from .geo import haversine_distance
from .models import GeoPoint

logger = logging.getLogger(__name__)


class FixOutcome(enum.Enum):
    REJECTED_ACCURACY = "rejected_accuracy"
    REJECTED_SPEED = "rejected_speed"
    FIRST = "first"
    MOVED = "moved"
    JITTER = "jitter"

    @property
    def accepted(self):
        return self in (FixOutcome.FIRST, FixOutcome.MOVED, FixOutcome.JITTER)


@dataclass(frozen=True)
class LocationState:
    total_distance_m: float
    current_speed_mps: float
    climb_m: float
    route: Tuple[GeoPoint, ...]
    last_fix_time_ms: Optional[int]


class LocationStreamProcessor:
    """
    Filters and accumulates GPS fixes for one session.

    Not tied to a clock: every time delta comes from the fixes' own
    timestamps, so replays and live streams behave the same.
    """

    def __init__(self, config=DEFAULT_CONFIG):
        self.accuracy_threshold_m = config.accuracy_threshold_m
        self.min_movement_m = config.min_movement_m
        self.max_plausible_speed_mps = config.max_plausible_speed_mps

        self.total_distance_m = 0.0
        self.current_speed_mps = 0.0
        self.climb_m = 0.0
        self.route: List[GeoPoint] = []

        # Reference fix for distance/speed (moves on MOVED and JITTER)
        self.last_accepted = None
        # Last fix appended to the route, and the last altitude seen on it
        self.route_tail = None
        self.last_route_altitude = None

        # Counters for diagnostics
        self.accuracy_rejections = 0
        self.speed_rejections = 0
        self.jitter_updates = 0

        self.lock = threading.Lock()

    def accept(self, fix):
        """Feed one fix. Returns the FixOutcome; state only changes when accepted."""
        with self.lock:
            if not fix.accuracy <= self.accuracy_threshold_m:
                self.accuracy_rejections += 1
                logger.debug(f"Fix rejected: accuracy {fix.accuracy:.1f}m > {self.accuracy_threshold_m}m")
                return FixOutcome.REJECTED_ACCURACY

            if self.last_accepted is None:
                self.last_accepted = fix
                self.current_speed_mps = self._reported_speed(fix, 0.0)
                self._append(fix)
                return FixOutcome.FIRST

            prev = self.last_accepted
            distance = haversine_distance(prev.latitude, prev.longitude, fix.latitude, fix.longitude)
            dt = (fix.timestamp_ms - prev.timestamp_ms) / 1000.0
            implied_speed = distance / dt if dt > 0 else None

            if distance < self.min_movement_m:
                # Jitter: keep the reference fresh for speed, leave the route alone
                self.last_accepted = fix
                self.current_speed_mps = self._reported_speed(fix, implied_speed or 0.0)
                self.jitter_updates += 1
                return FixOutcome.JITTER

            if implied_speed is None or implied_speed >= self.max_plausible_speed_mps:
                self.speed_rejections += 1
                logger.debug(f"Fix rejected: {distance:.1f}m jump in {dt:.3f}s")
                return FixOutcome.REJECTED_SPEED

            tail = self.route_tail
            tail_distance = haversine_distance(tail.latitude, tail.longitude,
                                               fix.latitude, fix.longitude)
            if tail_distance < self.min_movement_m:
                # Drifted back next to the last route point
                self.last_accepted = fix
                self.current_speed_mps = self._reported_speed(fix, implied_speed)
                self.jitter_updates += 1
                return FixOutcome.JITTER

            # Jitter can walk the reference away from the route; the jump from the tail must be plausible too
            tail_dt = (fix.timestamp_ms - tail.timestamp_ms) / 1000.0
            if tail_dt <= 0 or tail_distance / tail_dt >= self.max_plausible_speed_mps:
                self.speed_rejections += 1
                logger.debug(f"Fix rejected: {tail_distance:.1f}m from route tail in {tail_dt:.3f}s")
                return FixOutcome.REJECTED_SPEED

            self.total_distance_m += distance
            self.last_accepted = fix
            self.current_speed_mps = self._reported_speed(fix, implied_speed)
            self._append(fix)
            return FixOutcome.MOVED

    def _reported_speed(self, fix, derived):
        if fix.speed is not None and fix.speed >= 0:
            return float(fix.speed)
        return max(0.0, derived)

    def _append(self, fix):
        self.route.append(fix.point)
        self.route_tail = fix
        if fix.altitude is None:
            return
        # Ascent only: descents are ignored, never subtracted
        if self.last_route_altitude is not None and fix.altitude > self.last_route_altitude:
            self.climb_m += fix.altitude - self.last_route_altitude
        self.last_route_altitude = fix.altitude

    def get_state(self):
        with self.lock:
            return LocationState(
                total_distance_m=self.total_distance_m,
                current_speed_mps=self.current_speed_mps,
                climb_m=self.climb_m,
                route=tuple(self.route),
                last_fix_time_ms=self.last_accepted.timestamp_ms if self.last_accepted else None,
            )


def average_speed(distance_m, duration_s):
    return distance_m / duration_s if duration_s > 0 else 0.0


def average_pace(distance_m, duration_s):
    """Seconds per meter; 0.0 until some distance has been covered."""
    return duration_s / distance_m if distance_m > 0 else 0.0


def estimate_calories(distance_m, activity, config=DEFAULT_CONFIG):
    return distance_m * config.calorie_coefficient(activity)
