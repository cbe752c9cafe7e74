"""
Live input channels.

Each source owns its own thread and delivers readings through a callback
handed to start(). The aggregator only consumes: how a source talks to the
device (here, the Termux:API command-line tools) stays in this module.

    SensorSource.start(callback) -> bool   False if the sensor is unavailable
    SensorSource.stop()                    idempotent; no callbacks after it returns
"""

import logging
import shutil
import subprocess
import threading
import time
from abc import ABC, abstractmethod

import orjson

from .models import LocationFix

logger = logging.getLogger(__name__)


class SensorSource(ABC):
    """Abstract base class for a live input channel."""

    @abstractmethod
    def start(self, callback):
        """
        Begin delivering readings to callback.

        Returns:
            bool: True if the source is running, False if unavailable
        """

    @abstractmethod
    def stop(self):
        """Stop delivering readings."""

    @abstractmethod
    def is_alive(self):
        """True while the source is producing data."""


class TermuxLocationSource(SensorSource):
    """
    Non-blocking termux-location poller.

    Starts one termux-location request at a time, polls it every 100ms, and
    kills requests that hang longer than max_request_duration. Delivers
    LocationFix objects; accuracy filtering is the processor's job.
    """

    def __init__(self, poll_interval=1.0, provider='gps', max_request_duration=5.0):
        self.poll_interval = poll_interval
        self.provider = provider
        self.max_request_duration = max_request_duration

        self.callback = None
        self.thread = None
        self.stop_event = threading.Event()
        self.current_process = None
        self.request_start_time = None

        # Statistics
        self.requests_sent = 0
        self.requests_completed = 0
        self.requests_timeout = 0

    def start(self, callback):
        if shutil.which('termux-location') is None:
            logger.warning("⚠ termux-location not found, location tracking disabled")
            return False
        self.callback = callback
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._run, daemon=True, name="location-source")
        self.thread.start()
        logger.info(f"✓ Location source started ({1 / self.poll_interval:.1f} Hz, provider={self.provider})")
        return True

    def _start_request(self):
        try:
            self.current_process = subprocess.Popen(
                ['termux-location', '-p', self.provider],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True
            )
            self.request_start_time = time.time()
            self.requests_sent += 1
            return True
        except OSError as e:
            logger.warning(f"⚠ GPS: Failed to start request: {e}")
            self.current_process = None
            return False

    def _check_request(self):
        """Returns a LocationFix when the running request finished with data."""
        if self.current_process is None:
            return None

        returncode = self.current_process.poll()
        if returncode is None:
            if time.time() - self.request_start_time > self.max_request_duration:
                logger.warning(f"⚠ GPS: Request exceeded {self.max_request_duration}s, killing...")
                self._kill_request()
                self.requests_timeout += 1
            return None

        process, self.current_process = self.current_process, None
        stdout, _ = process.communicate()
        if returncode != 0 or not stdout:
            return None
        try:
            data = orjson.loads(stdout)
            data.setdefault('timestamp', time.time())
            fix = LocationFix.from_dict(data)
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"⚠ GPS: Error parsing result: {e}")
            return None
        self.requests_completed += 1
        return fix

    def _kill_request(self):
        process, self.current_process = self.current_process, None
        if process is None:
            return
        try:
            process.kill()
            process.wait(timeout=1)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"GPS request cleanup failed: {e}")

    def _run(self):
        next_poll_time = time.time()
        while not self.stop_event.is_set():
            now = time.time()

            fix = self._check_request()
            if fix is not None and not self.stop_event.is_set():
                try:
                    self.callback(fix)
                except Exception as e:
                    logger.warning(f"⚠ Location callback error (continuing): {e}")

            if now >= next_poll_time and self.current_process is None:
                if self._start_request():
                    next_poll_time = now + self.poll_interval
                else:
                    next_poll_time = now + 0.5

            self.stop_event.wait(0.1)
        self._kill_request()

    def stop(self):
        self.stop_event.set()
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=2)
        self.thread = None

    def is_alive(self):
        return self.thread is not None and self.thread.is_alive()

    def get_health_status(self):
        success_rate = self.requests_completed / self.requests_sent if self.requests_sent > 0 else 0
        return {
            'alive': self.is_alive(),
            'requests_sent': self.requests_sent,
            'requests_completed': self.requests_completed,
            'requests_timeout': self.requests_timeout,
            'success_rate': success_rate,
        }


class TermuxAccelerometerSource(SensorSource):
    """
    Persistent termux-sensor reader.

    Starts termux-sensor once and parses its continuous multi-line JSON
    stream (one object per sample, grouped by sensor name), instead of
    paying the ~1.5s sensor start-up for every reading.
    """

    def __init__(self, sensor='ACCELEROMETER', delay_ms=50, linear_acceleration=False):
        self.sensor = sensor
        self.delay_ms = delay_ms
        # Set when the named sensor already has gravity removed
        self.linear_acceleration = linear_acceleration

        self.callback = None
        self.sensor_process = None
        self.reader_thread = None
        self.stop_event = threading.Event()
        self.samples_delivered = 0

    def start(self, callback):
        if shutil.which('termux-sensor') is None:
            logger.warning("⚠ termux-sensor not found, activity recognition disabled")
            return False

        self.callback = callback
        self.stop_event.clear()
        try:
            self.sensor_process = subprocess.Popen(
                ['termux-sensor', '-s', self.sensor, '-d', str(self.delay_ms)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                universal_newlines=True,
                bufsize=1,
                close_fds=True
            )
        except OSError as e:
            logger.warning(f"⚠ Failed to start accelerometer daemon: {e}")
            return False

        if self.sensor_process.poll() is not None:
            logger.warning("⚠ termux-sensor exited immediately")
            self.sensor_process = None
            return False

        self.reader_thread = threading.Thread(target=self._read_loop, daemon=True, name="accel-source")
        self.reader_thread.start()
        logger.info(f"✓ Accelerometer source started ({1000 // self.delay_ms}Hz, PID {self.sensor_process.pid})")
        return True

    def _read_loop(self):
        json_buffer = ""
        brace_depth = 0
        try:
            for line in self.sensor_process.stdout:
                if self.stop_event.is_set():
                    break
                if not line.strip():
                    continue

                json_buffer += line
                brace_depth += line.count('{') - line.count('}')

                if brace_depth == 0 and '{' in json_buffer:
                    buffer, json_buffer = json_buffer, ""
                    try:
                        data = orjson.loads(buffer)
                    except orjson.JSONDecodeError:
                        continue
                    self._dispatch(data)
        except (OSError, ValueError) as e:
            # Stream closed underneath us during stop()
            if not self.stop_event.is_set():
                logger.warning(f"⚠ Accelerometer reader error: {e}")

    def _dispatch(self, data):
        for sensor_data in data.values():
            if not isinstance(sensor_data, dict):
                continue
            values = sensor_data.get('values') or []
            if len(values) < 3 or self.stop_event.is_set():
                continue
            try:
                self.callback(values[0], values[1], values[2])
                self.samples_delivered += 1
            except Exception as e:
                logger.warning(f"⚠ Accelerometer callback error (continuing): {e}")

    def stop(self):
        self.stop_event.set()
        process, self.sensor_process = self.sensor_process, None
        if process is not None:
            try:
                process.terminate()
                process.wait(timeout=1)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait(timeout=1)
            finally:
                if process.stdout:
                    process.stdout.close()
        if self.reader_thread and self.reader_thread is not threading.current_thread():
            self.reader_thread.join(timeout=2)
        self.reader_thread = None

    def is_alive(self):
        return self.sensor_process is not None and self.sensor_process.poll() is None
