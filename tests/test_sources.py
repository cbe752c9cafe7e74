import shutil

from activity_tracker.sources import TermuxAccelerometerSource, TermuxLocationSource


def test_missing_termux_tools_fail_soft(monkeypatch):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    location = TermuxLocationSource()
    accel = TermuxAccelerometerSource()

    assert location.start(lambda fix: None) is False
    assert accel.start(lambda x, y, z: None) is False
    assert not location.is_alive()
    assert not accel.is_alive()
    # stop() on a source that never started is harmless
    location.stop()
    accel.stop()


def test_accelerometer_dispatch_unpacks_values():
    readings = []
    source = TermuxAccelerometerSource()
    source.callback = lambda x, y, z: readings.append((x, y, z))

    source._dispatch({"lsm6dso Accelerometer": {"values": [0.1, 0.2, 9.8]}})
    source._dispatch({"lsm6dso Accelerometer": {"values": [1.0]}})
    source._dispatch({"meta": "not a sensor"})

    assert readings == [(0.1, 0.2, 9.8)]
    assert source.samples_delivered == 1


def test_accelerometer_callback_errors_are_absorbed():
    source = TermuxAccelerometerSource()

    def explode(x, y, z):
        raise RuntimeError("consumer gone")

    source.callback = explode
    source._dispatch({"accel": {"values": [1.0, 2.0, 3.0]}})
    assert source.samples_delivered == 0


def test_location_health_before_any_request():
    health = TermuxLocationSource().get_health_status()
    assert health == {
        'alive': False,
        'requests_sent': 0,
        'requests_completed': 0,
        'requests_timeout': 0,
        'success_rate': 0,
    }
