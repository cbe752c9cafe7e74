"""
Static tracker configuration.

Defaults match the values the pipeline was tuned with on device:
accelerometer read through a 50ms sensor delay (~20 Hz), GPS polled at 1 Hz.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, Union

import orjson

from .errors import ConfigError
from .models import Activity

METERS_PER_MILE = 1609.344

# Calories per mile used by the tracking service, converted to kcal/m.
DEFAULT_CALORIES_PER_METER = {
    int(Activity.STANDING): 100.0 / METERS_PER_MILE,
    int(Activity.WALKING): 80.0 / METERS_PER_MILE,
    int(Activity.RUNNING): 100.0 / METERS_PER_MILE,
}


@dataclass(frozen=True)
class TrackerConfig:
    # Location filtering
    accuracy_threshold_m: float = 20.0
    min_movement_m: float = 2.0
    max_plausible_speed_mps: float = 44.704  # 100 mph

    # Accelerometer ingest
    gravity_alpha: float = 0.99
    noise_floor: float = 0.2  # m/s², below this a magnitude is sensor drift
    queue_capacity: int = 1024

    # Recognition
    block_size: int = 16
    smoothing_window: int = 10

    # Calories (heuristic, kcal per meter)
    calories_per_meter: Dict[int, float] = field(
        default_factory=lambda: dict(DEFAULT_CALORIES_PER_METER)
    )
    default_calories_per_meter: float = 80.0 / METERS_PER_MILE

    # Sampling cadence
    accel_sample_delay_ms: int = 50
    location_poll_interval_s: float = 1.0

    unit_system: str = "metric"

    def calorie_coefficient(self, activity: int) -> float:
        return self.calories_per_meter.get(int(activity), self.default_calories_per_meter)

    def validate(self) -> "TrackerConfig":
        """Check invariants, raising ConfigError on the first violation."""
        from .recognition.tree import FEATURE_COUNT

        if self.accuracy_threshold_m <= 0:
            raise ConfigError(f"accuracy_threshold_m must be > 0, got {self.accuracy_threshold_m}")
        if self.min_movement_m < 0:
            raise ConfigError(f"min_movement_m must be >= 0, got {self.min_movement_m}")
        if self.max_plausible_speed_mps <= 0:
            raise ConfigError(f"max_plausible_speed_mps must be > 0, got {self.max_plausible_speed_mps}")
        if not 0.0 <= self.gravity_alpha < 1.0:
            raise ConfigError(f"gravity_alpha must be in [0, 1), got {self.gravity_alpha}")
        if self.noise_floor < 0:
            raise ConfigError(f"noise_floor must be >= 0, got {self.noise_floor}")
        if self.queue_capacity < 1:
            raise ConfigError(f"queue_capacity must be >= 1, got {self.queue_capacity}")
        if self.block_size < 2 or self.block_size & (self.block_size - 1):
            raise ConfigError(f"block_size must be a power of 2, got {self.block_size}")
        if self.block_size + 1 != FEATURE_COUNT:
            raise ConfigError(
                f"block_size {self.block_size} does not match the decision tree "
                f"({FEATURE_COUNT - 1} samples per block)"
            )
        if self.smoothing_window < 1:
            raise ConfigError(f"smoothing_window must be >= 1, got {self.smoothing_window}")
        if self.unit_system != "metric":
            raise ConfigError(f"unit_system must be 'metric', got {self.unit_system!r}")
        return self


DEFAULT_CONFIG = TrackerConfig()


def config_from_mapping(data: dict, base: TrackerConfig = DEFAULT_CONFIG) -> TrackerConfig:
    """Overlay a plain mapping on ``base`` and validate the result."""
    known = {f.name for f in fields(TrackerConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    overrides = dict(data)
    if "calories_per_meter" in overrides:
        try:
            overrides["calories_per_meter"] = {
                int(k): float(v) for k, v in overrides["calories_per_meter"].items()
            }
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid calories_per_meter: {e}") from e
    config = replace(base, **overrides)
    try:
        return config.validate()
    except TypeError as e:
        # e.g. {"block_size": "16"} from a hand-edited file
        raise ConfigError(f"Config value has the wrong type: {e}") from e


def load_config(path: Union[str, Path]) -> TrackerConfig:
    """Load a JSON config file on top of the defaults."""
    path = Path(path)
    try:
        data = orjson.loads(path.read_bytes())
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except orjson.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a JSON object")
    return config_from_mapping(data)
