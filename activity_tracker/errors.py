"""Exception types raised by activity_tracker."""


class TrackerError(Exception):
    """Base class for activity_tracker errors."""


class ConfigError(TrackerError, ValueError):
    """Invalid or inconsistent tracker configuration."""


class RouteDecodeError(TrackerError, ValueError):
    """A serialized route payload is truncated or inconsistent."""


class StorageError(TrackerError):
    """A session store could not complete an operation."""
