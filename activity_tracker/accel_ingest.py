"""
Accelerometer ingest: sensor callback → bounded queue → recognition worker.

The sensor callback (AccelerometerIngest.on_raw_reading) runs on the
source's own thread and must never block or raise. It removes gravity,
computes the magnitude, clamps drift below the noise floor to zero and
pushes into a DropOldestQueue. One ClassificationWorker per session drains
that queue into an ActivityRecognizer.
"""

import logging
import math
import threading
import time
from collections import deque

from .config import DEFAULT_CONFIG
from .recognition import ActivityRecognizer
from .recognition.features import calculate_magnitude

logger = logging.getLogger(__name__)


class DropOldestQueue:
    """
    Fixed-capacity FIFO whose put() never blocks.

    When full, the oldest value is discarded to make room; consumers care
    about recent motion, not completeness.
    """

    def __init__(self, capacity=1024):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._items = deque(maxlen=capacity)
        self._not_empty = threading.Condition(threading.Lock())
        self.dropped = 0

    def put(self, value):
        with self._not_empty:
            if len(self._items) == self.capacity:
                self.dropped += 1
            self._items.append(value)
            self._not_empty.notify()

    def take(self, timeout=None):
        """Block until a value is available; returns None on timeout."""
        with self._not_empty:
            if not self._not_empty.wait_for(lambda: self._items, timeout=timeout):
                return None
            return self._items.popleft()

    def clear(self):
        with self._not_empty:
            self._items.clear()

    def __len__(self):
        with self._not_empty:
            return len(self._items)


class GravityFilter:
    """
    Exponential low-pass estimate of gravity for sources that only report
    total acceleration: g = alpha*g + (1-alpha)*raw, linear = raw - g.

    The estimate is seeded with the first reading so the first seconds of a
    session do not see the full 9.8 m/s² as motion.
    """

    def __init__(self, alpha=0.99):
        self.alpha = alpha
        self.gravity = None

    def apply(self, x, y, z):
        if self.gravity is None:
            self.gravity = [x, y, z]
        else:
            a = self.alpha
            g = self.gravity
            g[0] = a * g[0] + (1 - a) * x
            g[1] = a * g[1] + (1 - a) * y
            g[2] = a * g[2] + (1 - a) * z
        return x - self.gravity[0], y - self.gravity[1], z - self.gravity[2]

    @property
    def magnitude(self):
        if self.gravity is None:
            return 0.0
        return math.sqrt(sum(v * v for v in self.gravity))


class AccelerometerIngest:
    """
    Producer side of the accelerometer path.

    Args:
        queue (DropOldestQueue): hand-off to the worker
        config (TrackerConfig): gravity alpha and noise floor
        linear_acceleration (bool): True if the source already removes gravity
    """

    LOG_EVERY = 50

    def __init__(self, queue, config=DEFAULT_CONFIG, linear_acceleration=False):
        self.queue = queue
        self.noise_floor = config.noise_floor
        self.gravity_filter = None if linear_acceleration else GravityFilter(config.gravity_alpha)
        self.readings = 0
        self.invalid_readings = 0

    def on_raw_reading(self, x, y, z):
        """Sensor callback. Never blocks, never raises."""
        try:
            x, y, z = float(x), float(y), float(z)
            if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
                raise ValueError("non-finite axis value")

            if self.gravity_filter is not None:
                x, y, z = self.gravity_filter.apply(x, y, z)

            magnitude = calculate_magnitude(x, y, z)
            if magnitude < self.noise_floor:
                magnitude = 0.0

            self.queue.put(magnitude)
            self.readings += 1

            if self.readings % self.LOG_EVERY == 0:
                gravity = f" grav={self.gravity_filter.magnitude:.2f}" if self.gravity_filter else ""
                logger.debug(f"[Accel] filtered={magnitude:.3f}{gravity} "
                             f"queue={len(self.queue)} count={self.readings} dropped={self.queue.dropped}")
        except (TypeError, ValueError) as e:
            self.invalid_readings += 1
            if self.invalid_readings <= 3:
                logger.warning(f"Ignoring bad accelerometer reading ({x!r}, {y!r}, {z!r}): {e}")


class ClassificationWorker(threading.Thread):
    """
    Consumer side: drains the queue into an ActivityRecognizer and reports
    every smoothed label through on_label.

    Cancellation is cooperative: stop() sets stop_event, which the loop
    checks before each take().
    """

    def __init__(self, queue, recognizer, on_label, poll_timeout=0.1):
        super().__init__(daemon=True, name="activity-classifier")
        self.queue = queue
        self.recognizer = recognizer
        self.on_label = on_label
        self.poll_timeout = poll_timeout
        self.stop_event = threading.Event()
        self.errors = 0

    def run(self):
        logger.info("Classification worker started")
        while not self.stop_event.is_set():
            magnitude = self.queue.take(timeout=self.poll_timeout)
            if magnitude is not None:
                self._process(magnitude)
        logger.info(f"Classification worker stopped "
                    f"({self.recognizer.blocks_classified} blocks, {self.queue.dropped} samples dropped)")

    def drain(self):
        """Process everything queued on the calling thread (replays, no thread started)."""
        while True:
            magnitude = self.queue.take(timeout=0)
            if magnitude is None:
                return
            self._process(magnitude)

    def _process(self, magnitude):
        try:
            label = self.recognizer.feed(magnitude)
            if label is not None:
                self.on_label(label)
        except Exception as e:
            # Keep the worker alive; a bad block or observer must not end recognition
            self.errors += 1
            logger.warning(f"Classification error (continuing): {e}", exc_info=self.errors <= 3)

    def stop(self, timeout=2.0):
        self.stop_event.set()
        if self.is_alive() and threading.current_thread() is not self:
            self.join(timeout=timeout)
            if self.is_alive():
                logger.warning("Classification worker did not exit cleanly (still running)")


def build_accelerometer_path(config, on_label, clock=time.time, initial=None,
                             linear_acceleration=False):
    """Wire queue, ingest, recognizer and worker for one session. Worker is not started."""
    queue = DropOldestQueue(config.queue_capacity)
    ingest = AccelerometerIngest(queue, config, linear_acceleration=linear_acceleration)
    kwargs = {} if initial is None else {'initial': initial}
    recognizer = ActivityRecognizer(config, clock=clock, **kwargs)
    worker = ClassificationWorker(queue, recognizer, on_label)
    return ingest, worker
