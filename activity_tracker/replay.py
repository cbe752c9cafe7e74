"""
Replay a recorded sensor session through the tracking pipeline.

Refeeds recorded GPS fixes and raw accelerometer readings in timestamp
order with a ReplayClock, so durations, averages and the activity tally
come out exactly as if the session had been tracked live.

Accepted file layout (JSON, optionally .gz):

    {
      "gps_samples":   [{"latitude": .., "longitude": .., "accuracy": ..,
                         "timestamp": <epoch s>, "speed": .., "altitude": ..}, ...],
      "accel_samples": [{"x": .., "y": .., "z": .., "timestamp": <epoch s>}, ...]
    }

GPS samples may also be nested as {"gps": {...}} the way the live logger
wrote them.
"""

from __future__ import annotations

import gzip
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import orjson

from .aggregator import SessionAggregator
from .config import DEFAULT_CONFIG, TrackerConfig
from .models import Activity, InputMode, LocationFix, Session

logger = logging.getLogger(__name__)


@dataclass
class ReplayEvent:
    timestamp: float
    kind: str
    payload: Dict


class ReplayClock:
    """Clock driven by recorded timestamps instead of wall time."""

    def __init__(self, value: float = 0.0) -> None:
        self._value = value

    def set(self, value: float) -> None:
        self._value = value

    def advance(self, seconds: float) -> None:
        self._value += seconds

    def now(self) -> float:
        return self._value

    __call__ = now


def load_session(path: Path) -> Dict:
    path = Path(path)
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rb") as handle:
        return orjson.loads(handle.read())


def _gps_payload(sample: Dict) -> Dict:
    return sample["gps"] if isinstance(sample.get("gps"), dict) else sample


def build_events(data: Dict) -> Tuple[List[ReplayEvent], float]:
    events: List[ReplayEvent] = []

    for sample in data.get("gps_samples") or []:
        gps = _gps_payload(sample)
        ts = gps.get("timestamp")
        if ts is None or gps.get("latitude") is None:
            continue
        events.append(ReplayEvent(float(ts), "gps", gps))

    for sample in data.get("accel_samples") or []:
        ts = sample.get("timestamp")
        if ts is None:
            continue
        events.append(ReplayEvent(float(ts), "accel", sample))

    if not events:
        raise RuntimeError("Session has no samples to replay")

    # Stable sort keeps recording order for equal timestamps
    events.sort(key=lambda ev: ev.timestamp)
    return events, events[0].timestamp


def replay_session(
    data: Dict,
    mode: InputMode = InputMode.AUTOMATIC,
    activity_hint: int = Activity.STANDING,
    config: TrackerConfig = DEFAULT_CONFIG,
    observer=None,
    store=None,
    end_timestamp: Optional[float] = None,
) -> Session:
    """Run one recorded session through a fresh SessionAggregator and return the finalized Session."""
    events, start_ts = build_events(data)
    clock = ReplayClock(start_ts)
    tracker = SessionAggregator(
        config=config,
        observer=observer,
        store=store,
        clock=clock,
        threaded_recognition=False,
    )

    tracker.start(mode, activity_hint)
    skipped = 0
    for event in events:
        clock.set(event.timestamp)
        if event.kind == "gps":
            try:
                fix = LocationFix.from_dict(event.payload)
            except (KeyError, TypeError, ValueError) as e:
                skipped += 1
                logger.debug(f"Skipping unreadable GPS sample: {e}")
                continue
            tracker.on_location(fix)
        else:
            payload = event.payload
            tracker.on_accelerometer(payload.get("x"), payload.get("y"), payload.get("z"))

    if skipped:
        logger.warning(f"⚠ Skipped {skipped} unreadable GPS samples")
    if end_timestamp is not None:
        clock.set(max(end_timestamp, clock.now()))
    return tracker.stop()


def replay_file(path, **kwargs) -> Session:
    return replay_session(load_session(Path(path)), **kwargs)
