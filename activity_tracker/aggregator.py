"""
Session aggregation: two input channels in, session snapshots out.

    location source ──> on_location() ──> LocationStreamProcessor ──┐
                                                                    ├─> Session ─> observer(snapshot)
    accel source ──> AccelerometerIngest ─> queue ─> worker ────────┘

All mutable state of a running session lives in a _SessionContext built by
start() and dropped by stop(); the aggregator itself only holds the state
machine (IDLE → TRACKING → IDLE). Updates from the two channels are
serialized by the context lock, and observers only ever receive frozen
SessionSnapshot copies.
"""

import enum
import logging
import threading
import time

from . import route_codec
from .accel_ingest import build_accelerometer_path
from .config import DEFAULT_CONFIG
from .location import LocationStreamProcessor, average_pace, average_speed, estimate_calories
from .models import Activity, InputMode, Session

logger = logging.getLogger(__name__)


class TrackerState(enum.Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class _SessionContext:
    """Everything one tracking session owns, from start() to stop()."""

    def __init__(self, mode, activity_hint, config, clock):
        self.mode = mode
        self.config = config
        self.clock = clock
        self.lock = threading.Lock()
        self.accepting = True

        self.session = Session(
            mode=mode,
            activity=int(activity_hint),
            start_time_ms=int(round(clock() * 1000)),
        )
        self.location = LocationStreamProcessor(config)

        self.ingest = None
        self.worker = None

    def elapsed_s(self):
        return max(0.0, self.clock() - self.session.start_time_ms / 1000.0)

    def recompute(self):
        """Refresh derived fields from the processor state. Caller holds the lock."""
        session = self.session
        loc = self.location
        session.duration_s = self.elapsed_s()
        session.distance_m = loc.total_distance_m
        session.current_speed_mps = loc.current_speed_mps
        session.climb_m = loc.climb_m
        session.route = list(loc.route)
        session.avg_speed_mps = average_speed(session.distance_m, session.duration_s)
        session.avg_pace_s_per_m = average_pace(session.distance_m, session.duration_s)
        session.calories_kcal = estimate_calories(session.distance_m, session.activity, self.config)


class SessionAggregator:
    """
    Owns the session state machine and merges both input channels.

    Args:
        config (TrackerConfig): thresholds and pipeline sizes
        observer (callable): receives a SessionSnapshot after every update
        on_finished (callable): receives the finalized Session after stop()
        location_source (SensorSource): optional live location channel
        accel_source (SensorSource): optional live accelerometer channel
        store (SessionStore): optional persistence; stop() inserts into it
        clock (callable): wall-clock seconds, time.time by default
        threaded_recognition (bool): run recognition on a worker thread (live use);
            False processes each reading on the caller's thread, for replays
    """

    def __init__(self, config=DEFAULT_CONFIG, observer=None, on_finished=None,
                 location_source=None, accel_source=None, store=None, clock=time.time,
                 threaded_recognition=True):
        self.config = config.validate()
        self.observer = observer
        self.on_finished = on_finished
        self.location_source = location_source
        self.accel_source = accel_source
        self.store = store
        self.clock = clock
        self.threaded_recognition = threaded_recognition

        self.state = TrackerState.IDLE
        self._state_lock = threading.Lock()
        self._context = None

    @property
    def is_tracking(self):
        return self.state is TrackerState.TRACKING

    # ------------------------------------------------------------------ start

    def start(self, mode, activity_hint=Activity.STANDING):
        """Begin a session. No-op (returns False) if one is already running."""
        with self._state_lock:
            if self.state is TrackerState.TRACKING:
                logger.debug("start() ignored: already tracking")
                return False

            mode = InputMode(mode)
            ctx = _SessionContext(mode, activity_hint, self.config, self.clock)
            self._context = ctx
            self.state = TrackerState.TRACKING
            logger.info(f"Session started: mode={mode.name} activity={int(activity_hint)}")

            if mode.uses_accelerometer:
                self._start_recognition(ctx)
            if mode.uses_location:
                self._start_source(self.location_source, self.on_location, "location")

        self._publish(ctx)
        return True

    def _start_recognition(self, ctx):
        linear = bool(getattr(self.accel_source, 'linear_acceleration', False))
        ctx.ingest, ctx.worker = build_accelerometer_path(
            self.config,
            on_label=lambda label: self._on_smoothed_label(ctx, label),
            clock=self.clock,
            linear_acceleration=linear,
        )
        if self.threaded_recognition:
            ctx.worker.start()
        if self.accel_source is not None and not self._start_source(
                self.accel_source, self.on_accelerometer, "accelerometer"):
            logger.warning("⚠ Continuing without activity recognition updates")

    def _start_source(self, source, callback, name):
        if source is None:
            # Readings are pushed straight into the on_* entry points
            return False
        try:
            started = source.start(callback)
        except Exception as e:
            logger.warning(f"⚠ Failed to start {name} source: {e}")
            return False
        if not started:
            logger.warning(f"⚠ {name.capitalize()} source unavailable, sub-pipeline disabled")
        return bool(started)

    # --------------------------------------------------------------- channels

    def on_location(self, fix):
        """Location channel entry point. Rejected fixes are dropped silently."""
        ctx = self._context
        if ctx is None or not ctx.mode.uses_location:
            return None
        with ctx.lock:
            if not ctx.accepting:
                return None
            outcome = ctx.location.accept(fix)
            if not outcome.accepted:
                return outcome
            ctx.recompute()
            snapshot = ctx.session.snapshot()
        self._notify(snapshot)
        return outcome

    def on_accelerometer(self, x, y, z):
        """Accelerometer channel entry point; never blocks."""
        ctx = self._context
        if ctx is None or ctx.ingest is None or not ctx.accepting:
            return
        ctx.ingest.on_raw_reading(x, y, z)
        if not self.threaded_recognition:
            ctx.worker.drain()

    def _on_smoothed_label(self, ctx, label):
        with ctx.lock:
            if not ctx.accepting:
                return
            ctx.session.activity = int(label)
            ctx.recompute()
            snapshot = ctx.session.snapshot()
        self._notify(snapshot)

    # ---------------------------------------------------------------- publish

    def _publish(self, ctx):
        with ctx.lock:
            ctx.recompute()
            snapshot = ctx.session.snapshot()
        self._notify(snapshot)

    def _notify(self, snapshot):
        # Called without any lock held: observers may call back into stop()
        if self.observer is None:
            return
        try:
            self.observer(snapshot)
        except Exception as e:
            logger.warning(f"⚠ Observer error (continuing): {e}")

    def snapshot(self):
        """Current SessionSnapshot, or None when idle."""
        ctx = self._context
        if ctx is None:
            return None
        with ctx.lock:
            ctx.recompute()
            return ctx.session.snapshot()

    # ------------------------------------------------------------------- stop

    def stop(self):
        """
        End the session and return the finalized Session (None if idle).

        Order: unregister inputs, finalize the activity tally, compute the
        final statistics, serialize the route, then notify. A store failure
        propagates to the caller after the tracker is back to IDLE.
        """
        with self._state_lock:
            if self.state is TrackerState.IDLE:
                logger.debug("stop() ignored: not tracking")
                return None
            ctx = self._context

            # 1. unregister inputs
            self._stop_source(self.location_source, "location")
            self._stop_source(self.accel_source, "accelerometer")
            with ctx.lock:
                ctx.accepting = False
            if ctx.worker is not None:
                ctx.worker.stop()

            with ctx.lock:
                session = ctx.session

                # 2. finalize classification
                if ctx.mode.uses_accelerometer and ctx.worker is not None:
                    session.activity = int(ctx.worker.recognizer.finalize())

                # 3. final statistics
                ctx.recompute()

                # 4. route serialization (MANUAL sessions have no route at all)
                if ctx.mode.uses_location:
                    session.route_payload = route_codec.encode(session.route)

            self._context = None
            self.state = TrackerState.IDLE
            logger.info(f"Session stopped: {session.distance_m:.1f}m in {session.duration_s:.0f}s, "
                        f"activity={session.activity}, {len(session.route)} route points")

        # 5. notify completion
        if self.on_finished is not None:
            try:
                self.on_finished(session)
            except Exception as e:
                logger.warning(f"⚠ Completion callback error: {e}")

        if self.store is not None:
            session.id = self.store.insert(session)
        return session

    def _stop_source(self, source, name):
        if source is None:
            return
        try:
            source.stop()
        except Exception as e:
            logger.warning(f"⚠ Error stopping {name} source: {e}")
