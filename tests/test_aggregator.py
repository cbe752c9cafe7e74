import dataclasses
import threading

import pytest

from activity_tracker import route_codec
from activity_tracker.aggregator import SessionAggregator, TrackerState
from activity_tracker.errors import StorageError
from activity_tracker.location import FixOutcome
from activity_tracker.models import Activity, InputMode
from activity_tracker.sources import SensorSource
from activity_tracker.storage import get_store

from .conftest import make_fix


class FakeSource(SensorSource):
    def __init__(self, available=True, linear_acceleration=False):
        self.available = available
        self.linear_acceleration = linear_acceleration
        self.callback = None
        self.stopped = False

    def start(self, callback):
        self.callback = callback
        return self.available

    def stop(self):
        self.stopped = True

    def is_alive(self):
        return self.callback is not None and not self.stopped


class FailingStore:
    def insert(self, session):
        raise StorageError("disk full")


def make_tracker(clock, **kwargs):
    kwargs.setdefault("threaded_recognition", False)
    return SessionAggregator(clock=clock, **kwargs)


def test_start_twice_is_noop(clock):
    snapshots = []
    tracker = make_tracker(clock, observer=snapshots.append)
    assert tracker.start(InputMode.GPS) is True
    started_at = tracker.snapshot().start_time_ms

    clock.advance(10)
    assert tracker.start(InputMode.MANUAL, Activity.RUNNING) is False
    snapshot = tracker.snapshot()
    assert snapshot.mode is InputMode.GPS
    assert snapshot.start_time_ms == started_at
    assert len(snapshots) == 1


def test_stop_when_idle_returns_none(clock):
    tracker = make_tracker(clock)
    assert tracker.stop() is None
    assert tracker.snapshot() is None
    assert tracker.state is TrackerState.IDLE


def test_manual_session_has_no_route(clock):
    tracker = make_tracker(clock)
    tracker.start(InputMode.MANUAL, Activity.RUNNING)
    assert tracker.on_location(make_fix()) is None
    clock.advance(600)
    session = tracker.stop()

    assert session.activity == Activity.RUNNING
    assert session.duration_s == pytest.approx(600)
    assert session.route == []
    assert session.route_payload is None
    assert session.distance_m == 0.0


def test_gps_session_accumulates_and_encodes_route(clock):
    finished = []
    tracker = make_tracker(clock, on_finished=finished.append)
    tracker.start(InputMode.GPS, Activity.WALKING)
    for i in range(3):
        clock.advance(1)
        assert tracker.on_location(make_fix(north_m=10 * i, t_s=i)).accepted
    clock.advance(7)
    session = tracker.stop()

    assert finished == [session]
    assert session.distance_m == pytest.approx(20.0, abs=0.01)
    assert session.duration_s == pytest.approx(10.0)
    assert session.avg_speed_mps == pytest.approx(2.0, abs=0.01)
    assert session.avg_pace_s_per_m == pytest.approx(0.5, abs=0.01)
    assert session.calories_kcal == pytest.approx(20.0 * 80 / 1609.344, rel=1e-3)
    assert len(session.route) == 3
    assert route_codec.decode(session.route_payload) == session.route
    assert tracker.state is TrackerState.IDLE


def test_gps_session_without_fixes_gets_empty_payload(clock):
    tracker = make_tracker(clock)
    tracker.start(InputMode.GPS)
    session = tracker.stop()
    assert session.route_payload == route_codec.encode([])


def test_rejected_fix_does_not_publish(clock):
    snapshots = []
    tracker = make_tracker(clock, observer=snapshots.append)
    tracker.start(InputMode.GPS)
    assert tracker.on_location(make_fix(accuracy=80.0)) is FixOutcome.REJECTED_ACCURACY
    assert len(snapshots) == 1


def test_snapshots_are_immutable(clock):
    snapshots = []
    tracker = make_tracker(clock, observer=snapshots.append)
    tracker.start(InputMode.GPS)
    tracker.on_location(make_fix())
    snapshot = snapshots[-1]

    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.distance_m = 99.0
    assert isinstance(snapshot.route, tuple)

    tracker.on_location(make_fix(north_m=10, t_s=1))
    assert len(snapshot.route) == 1
    assert len(snapshots[-1].route) == 2


def test_observer_errors_are_absorbed(clock):
    def observer(snapshot):
        raise RuntimeError("ui gone")

    tracker = make_tracker(clock, observer=observer)
    assert tracker.start(InputMode.GPS)
    assert tracker.on_location(make_fix()) is FixOutcome.FIRST
    assert tracker.stop() is not None


def run_with_timeout(target, timeout=3):
    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    thread.join(timeout=timeout)
    return not thread.is_alive()


def test_observer_can_stop_the_session_on_a_goal(clock):
    finished = []
    tracker = None

    def stop_at_first_distance(snapshot):
        if snapshot.distance_m > 0:
            tracker.stop()

    tracker = make_tracker(clock, observer=stop_at_first_distance, on_finished=finished.append)
    tracker.start(InputMode.GPS)
    tracker.on_location(make_fix(t_s=0))

    assert run_with_timeout(lambda: tracker.on_location(make_fix(north_m=10, t_s=1)))
    assert tracker.state is TrackerState.IDLE
    assert len(finished) == 1
    assert finished[0].distance_m == pytest.approx(10.0, abs=0.01)


def test_observer_can_stop_the_session_from_start(clock):
    tracker = None

    def stop_immediately(snapshot):
        tracker.stop()

    tracker = make_tracker(clock, observer=stop_immediately)
    assert run_with_timeout(lambda: tracker.start(InputMode.MANUAL))
    assert tracker.state is TrackerState.IDLE


def test_observer_can_stop_the_session_from_recognition(clock):
    tracker = None

    def stop_on_walking(snapshot):
        if snapshot.activity == Activity.WALKING:
            tracker.stop()

    tracker = make_tracker(clock, observer=stop_on_walking,
                           accel_source=FakeSource(linear_acceleration=True))
    tracker.start(InputMode.AUTOMATIC)

    def feed():
        for _ in range(32):
            tracker.on_accelerometer(1.0, 0.0, 0.0)

    assert run_with_timeout(feed)
    assert tracker.state is TrackerState.IDLE


def test_completion_callback_errors_are_absorbed(clock):
    def on_finished(session):
        raise RuntimeError("boom")

    store = get_store("memory")
    tracker = make_tracker(clock, on_finished=on_finished, store=store)
    tracker.start(InputMode.MANUAL)
    session = tracker.stop()
    assert session.id == 1
    assert len(store) == 1


def test_store_failure_propagates(clock):
    tracker = make_tracker(clock, store=FailingStore())
    tracker.start(InputMode.GPS)
    with pytest.raises(StorageError):
        tracker.stop()
    assert tracker.state is TrackerState.IDLE


def test_sources_started_and_stopped(clock):
    location = FakeSource()
    accel = FakeSource(linear_acceleration=True)
    tracker = make_tracker(clock, location_source=location, accel_source=accel)
    tracker.start(InputMode.AUTOMATIC)

    assert location.callback == tracker.on_location
    assert accel.callback == tracker.on_accelerometer
    tracker.stop()
    assert location.stopped and accel.stopped


def test_gps_mode_leaves_accelerometer_off(clock):
    accel = FakeSource()
    tracker = make_tracker(clock, accel_source=accel)
    tracker.start(InputMode.GPS)
    assert accel.callback is None
    tracker.on_accelerometer(1.0, 0.0, 0.0)
    tracker.stop()


def test_unavailable_source_does_not_end_session(clock):
    tracker = make_tracker(clock, location_source=FakeSource(available=False),
                           accel_source=FakeSource(available=False))
    assert tracker.start(InputMode.AUTOMATIC)
    assert tracker.is_tracking
    assert tracker.on_location(make_fix()) is FixOutcome.FIRST
    assert tracker.stop() is not None


def test_automatic_mode_classifies_and_finalizes(clock):
    snapshots = []
    tracker = make_tracker(clock, observer=snapshots.append,
                           accel_source=FakeSource(linear_acceleration=True))
    tracker.start(InputMode.AUTOMATIC)

    clock.advance(1)
    for _ in range(16):
        tracker.on_accelerometer(1.0, 0.0, 0.0)
    assert snapshots[-1].activity == Activity.WALKING

    clock.advance(30)
    session = tracker.stop()
    assert session.activity == Activity.WALKING
    assert session.route_payload == route_codec.encode([])


def test_automatic_finalize_overrides_live_label(clock):
    tracker = make_tracker(clock, accel_source=FakeSource(linear_acceleration=True))
    tracker.start(InputMode.AUTOMATIC)

    clock.advance(1)
    for _ in range(16):
        tracker.on_accelerometer(1.0, 0.0, 0.0)
    clock.advance(60)
    # Brief stop at the very end: live label flips but Walking held longest
    for _ in range(16 * 10):
        tracker.on_accelerometer(0.0, 0.0, 0.0)
    assert tracker.snapshot().activity == Activity.STANDING

    clock.advance(1)
    assert tracker.stop().activity == Activity.WALKING


def test_readings_after_stop_are_ignored(clock):
    tracker = make_tracker(clock, accel_source=FakeSource(linear_acceleration=True))
    tracker.start(InputMode.AUTOMATIC)
    tracker.stop()
    tracker.on_accelerometer(1.0, 0.0, 0.0)
    assert tracker.on_location(make_fix()) is None


def test_threaded_recognition_publishes_labels(clock):
    walking = threading.Event()

    def observer(snapshot):
        if snapshot.activity == Activity.WALKING:
            walking.set()

    tracker = make_tracker(clock, observer=observer, threaded_recognition=True,
                           accel_source=FakeSource(linear_acceleration=True))
    tracker.start(InputMode.AUTOMATIC)
    for _ in range(16):
        tracker.on_accelerometer(1.0, 0.0, 0.0)

    assert walking.wait(timeout=2)
    session = tracker.stop()
    assert session.activity in (Activity.STANDING, Activity.WALKING)
    assert tracker.state is TrackerState.IDLE
