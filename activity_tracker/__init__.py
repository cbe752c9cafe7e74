"""
Exercise session tracking: GPS distance/speed/climb, accelerometer-based
activity recognition, and a session aggregator that ties both together.

Example usage:
    from activity_tracker import SessionAggregator, InputMode, LocationFix

    tracker = SessionAggregator(observer=print)
    tracker.start(InputMode.GPS)
    tracker.on_location(LocationFix(47.6, -122.3, accuracy=5.0, timestamp_ms=0))
    session = tracker.stop()
"""

from .aggregator import SessionAggregator, TrackerState
from .config import DEFAULT_CONFIG, TrackerConfig, load_config
from .errors import ConfigError, RouteDecodeError, StorageError, TrackerError
from .location import FixOutcome, LocationStreamProcessor
from .models import Activity, GeoPoint, InputMode, LocationFix, Session, SessionSnapshot

__version__ = "0.1.0"

__all__ = [
    'Activity',
    'ConfigError',
    'DEFAULT_CONFIG',
    'FixOutcome',
    'GeoPoint',
    'InputMode',
    'LocationFix',
    'LocationStreamProcessor',
    'RouteDecodeError',
    'Session',
    'SessionAggregator',
    'SessionSnapshot',
    'StorageError',
    'TrackerConfig',
    'TrackerError',
    'TrackerState',
    'load_config',
]
