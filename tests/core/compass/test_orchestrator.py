"""Tests for the QiblaCompass lifecycle using stub providers."""

from __future__ import annotations

import math
import threading

import pytest

from qibla_compass.core.compass import orchestrator as orchestrator_module
from qibla_compass.core.compass.orchestrator import SENSOR_UPDATE_INTERVAL_MS, QiblaCompass
from qibla_compass.core.geo.bearing_calculator import GeoPoint, calculate_bearing
from qibla_compass.core.hardware.providers import LocationUnavailableError
from qibla_compass.core.imu.heading_normalizer import MagneticSample
from qibla_compass.core.imu.orientation_state import ErrorReason, Lifecycle, LocationStatus


class StubSubscription:
    def __init__(self) -> None:
        self.release_calls = 0

    def release(self):
        self.release_calls += 1


class StubSensor:
    def __init__(self, available=True) -> None:
        self.available = available
        self.subscriptions = []
        self.callbacks = []
        self.intervals = []

    def is_available(self):
        return self.available

    def subscribe(self, interval_ms, callback):
        subscription = StubSubscription()
        self.subscriptions.append(subscription)
        self.callbacks.append(callback)
        self.intervals.append(interval_ms)
        return subscription


class StubLocation:
    def __init__(self, granted=True, position=GeoPoint(40.7128, -74.0060), error=None) -> None:
        self.granted = granted
        self.position = position
        self.error = error
        self.permission_requests = 0
        self.on_position = None

    def is_permission_granted(self):
        return False

    def request_permission(self):
        self.permission_requests += 1
        return self.granted

    def get_current_position(self):
        if self.on_position:
            self.on_position()
        if self.error:
            raise self.error
        return self.position


@pytest.fixture()
def sensor():
    return StubSensor()


@pytest.fixture()
def location():
    return StubLocation()


@pytest.fixture()
def compass(location, sensor):
    return QiblaCompass(location, sensor)


def test_compass_starts_idle_and_loading(compass):
    snapshot = compass.get_snapshot()
    assert compass.lifecycle is Lifecycle.IDLE
    assert snapshot.is_loading is True
    assert snapshot.error_reason is None


def test_initialize_reaches_ready(compass, sensor):
    assert compass.initialize() is True

    state = compass.state
    assert state.lifecycle is Lifecycle.READY
    assert state.location_status is LocationStatus.FIXED
    assert state.bearing_to_target == pytest.approx(calculate_bearing(GeoPoint(40.7128, -74.0060)))
    assert sensor.intervals == [SENSOR_UPDATE_INTERVAL_MS] == [100]
    assert compass.has_subscription
    assert compass.get_snapshot().is_loading is False


def test_sensor_unavailable_fails_without_subscription(location):
    sensor = StubSensor(available=False)
    compass = QiblaCompass(location, sensor)

    compass.initialize()

    snapshot = compass.get_snapshot()
    assert snapshot.lifecycle is Lifecycle.FAILED
    assert snapshot.error_reason == "sensor unavailable"
    assert sensor.subscriptions == []
    assert location.permission_requests == 0


def test_permission_denied_fails_without_subscription(sensor):
    compass = QiblaCompass(StubLocation(granted=False), sensor)

    compass.initialize()

    state = compass.state
    assert state.lifecycle is Lifecycle.FAILED
    assert state.error_reason is ErrorReason.LOCATION_PERMISSION_DENIED
    assert compass.get_snapshot().error_reason == "permission not granted"
    assert sensor.subscriptions == []


def test_location_failure_is_swallowed_and_still_subscribes(sensor):
    location = StubLocation(error=LocationUnavailableError("no fix"))
    compass = QiblaCompass(location, sensor)

    compass.initialize()

    state = compass.state
    assert state.lifecycle is Lifecycle.READY
    assert state.error_reason is None
    assert state.bearing_to_target == 0.0
    assert state.location_status is LocationStatus.FAILED
    assert len(sensor.subscriptions) == 1

    compass.on_sample(MagneticSample(x=-1.0, y=0.0))
    snapshot = compass.get_snapshot()
    assert snapshot.heading_degrees == 90.0
    assert snapshot.direction_label == "E"
    assert snapshot.target_rotation_degrees == 270.0


def test_location_returning_none_counts_as_failure(sensor):
    compass = QiblaCompass(StubLocation(position=None), sensor)
    compass.initialize()

    assert compass.lifecycle is Lifecycle.READY
    assert compass.state.location_status is LocationStatus.FAILED


def test_on_sample_updates_all_fields(compass, sensor):
    compass.initialize()
    bearing = compass.state.bearing_to_target

    sensor.callbacks[0](MagneticSample(x=0.0, y=1.0))

    snapshot = compass.get_snapshot()
    assert snapshot.heading_degrees == 0.0
    assert snapshot.direction_label == "N"
    assert snapshot.face_rotation_degrees == 0.0
    assert snapshot.target_rotation_degrees == pytest.approx(bearing)
    assert snapshot.has_heading is True
    assert compass.samples_accepted == 1


def test_on_sample_ignored_unless_ready(compass):
    compass.on_sample(MagneticSample(x=0.0, y=1.0))

    assert compass.samples_ignored == 1
    assert compass.state.has_sample is False
    assert compass.state.device_heading == 271.0


def test_target_rotation_not_wrapped(sensor):
    compass = QiblaCompass(StubLocation(position=GeoPoint(51.5074, -0.1278)), sensor)
    compass.initialize()

    # raw 91 -> heading 1 -> face 359; 359 + ~119 > 360
    angle = math.radians(91)
    compass.on_sample(MagneticSample(x=math.cos(angle), y=math.sin(angle)))

    snapshot = compass.get_snapshot()
    assert snapshot.face_rotation_degrees == 359.0
    assert snapshot.target_rotation_degrees > 360


def test_teardown_releases_and_is_idempotent(compass, sensor):
    compass.initialize()
    compass.teardown()
    compass.teardown()

    assert compass.lifecycle is Lifecycle.IDLE
    assert sensor.subscriptions[0].release_calls == 1
    assert not compass.has_subscription


def test_teardown_on_fresh_compass(compass):
    compass.teardown()
    compass.teardown()
    assert compass.lifecycle is Lifecycle.IDLE


def test_reinitialize_releases_previous_subscription(compass, sensor):
    compass.initialize()
    compass.on_sample(MagneticSample(x=0.0, y=1.0))

    assert compass.reinitialize() is True

    assert sensor.subscriptions[0].release_calls == 1
    assert sensor.subscriptions[1].release_calls == 0
    assert compass.lifecycle is Lifecycle.READY
    # fresh cycle: heading back to "not yet known"
    assert compass.state.has_sample is False


def test_initialize_while_ready_releases_previous_subscription(compass, sensor):
    compass.initialize()
    compass.initialize()

    assert sensor.subscriptions[0].release_calls == 1
    assert len(sensor.subscriptions) == 2


def test_reinitialize_recovers_from_failure(location):
    sensor = StubSensor(available=False)
    compass = QiblaCompass(location, sensor)
    compass.initialize()
    assert compass.lifecycle is Lifecycle.FAILED

    sensor.available = True
    compass.reinitialize()

    assert compass.lifecycle is Lifecycle.READY
    assert compass.get_snapshot().error_reason is None


def test_reinitialize_rejected_while_initializing(compass, location, sensor):
    results = []
    location.on_position = lambda: results.append(
        (compass.lifecycle, compass.reinitialize(), compass.initialize())
    )

    compass.initialize()

    assert results == [(Lifecycle.INITIALIZING, False, False)]
    assert compass.lifecycle is Lifecycle.READY
    assert len(sensor.subscriptions) == 1


def test_teardown_during_initialize_aborts_sequence(compass, location, sensor):
    location.on_position = compass.teardown

    compass.initialize()

    assert compass.lifecycle is Lifecycle.IDLE
    assert sensor.subscriptions == []


def test_provider_exceptions_are_reported_as_data(location):
    class BrokenSensor(StubSensor):
        def is_available(self):
            raise RuntimeError("driver crashed")

    compass = QiblaCompass(location, BrokenSensor())
    compass.initialize()

    assert compass.get_snapshot().error_reason == "sensor unavailable"


def test_subscribe_failure_fails_initialization(location):
    class RefusingSensor(StubSensor):
        def subscribe(self, interval_ms, callback):
            raise RuntimeError("busy")

    compass = QiblaCompass(location, RefusingSensor())
    compass.initialize()

    assert compass.lifecycle is Lifecycle.FAILED
    assert not compass.has_subscription


def test_release_failure_is_logged(compass, sensor, caplog):
    compass.initialize()

    def broken_release():
        raise RuntimeError("already gone")

    sensor.subscriptions[0].release = broken_release
    with caplog.at_level("ERROR", logger="QiblaCompass"):
        compass.teardown()

    assert compass.lifecycle is Lifecycle.IDLE
    assert "Releasing magnetometer subscription failed" in caplog.text


def test_listeners_receive_lifecycle_and_samples(compass):
    snapshots = []
    compass.add_listener(snapshots.append)

    compass.initialize()
    compass.on_sample(MagneticSample(x=0.0, y=1.0))

    assert [s.lifecycle for s in snapshots] == [Lifecycle.INITIALIZING, Lifecycle.READY, Lifecycle.READY]
    assert snapshots[-1].direction_label == "N"

    compass.remove_listener(snapshots.append)
    compass.teardown()
    assert len(snapshots) == 3


def test_failing_listener_does_not_break_updates(compass):
    def bad_listener(snapshot):
        raise ValueError("consumer bug")

    compass.add_listener(bad_listener)
    compass.initialize()
    compass.on_sample(MagneticSample(x=0.0, y=1.0))

    assert compass.samples_accepted == 1


def test_context_manager_tears_down(location, sensor):
    with QiblaCompass(location, sensor) as compass:
        assert compass.lifecycle is Lifecycle.READY

    assert compass.lifecycle is Lifecycle.IDLE
    assert sensor.subscriptions[0].release_calls == 1


def test_location_failure_logs_warning(sensor, caplog):
    compass = QiblaCompass(StubLocation(error=LocationUnavailableError("timeout")), sensor)

    with caplog.at_level("WARNING", logger=orchestrator_module.log.name):
        compass.initialize()

    assert "Location fix failed" in caplog.text


def test_telemetry_receives_events(location, sensor):
    class StubTelemetry:
        def __init__(self):
            self.lifecycle = []
            self.headings = []
            self.errors = []

        def log_lifecycle(self, lifecycle, reason=None):
            self.lifecycle.append((lifecycle, reason))

        def log_heading(self, snapshot):
            self.headings.append(snapshot)

        def log_error(self, error_type, message, **kwargs):
            self.errors.append(error_type)

    telemetry = StubTelemetry()
    compass = QiblaCompass(location, sensor, telemetry=telemetry)
    compass.initialize()
    compass.on_sample(MagneticSample(x=1.0, y=0.0))

    assert telemetry.lifecycle == [("initializing", None), ("ready", None)]
    assert len(telemetry.headings) == 1
    assert telemetry.errors == []


def test_sample_from_released_subscription_is_dropped(compass, sensor):
    compass.initialize()
    old_callback = sensor.callbacks[0]

    compass.reinitialize()
    assert sensor.subscriptions[0].release_calls == 1

    old_callback(MagneticSample(x=-1.0, y=0.0))

    assert compass.samples_accepted == 0
    assert compass.samples_ignored == 1
    assert compass.state.has_sample is False

    sensor.callbacks[1](MagneticSample(x=-1.0, y=0.0))
    assert compass.samples_accepted == 1
    assert compass.get_snapshot().direction_label == "E"


def test_sample_after_teardown_on_old_callback_is_dropped(compass, sensor):
    compass.initialize()
    old_callback = sensor.callbacks[0]
    compass.teardown()
    compass.initialize()

    old_callback(MagneticSample(x=0.0, y=1.0))

    assert compass.samples_accepted == 0


class GrantedLocation(StubLocation):
    def is_permission_granted(self):
        return True


def test_already_granted_permission_skips_request(sensor):
    location = GrantedLocation()
    compass = QiblaCompass(location, sensor)

    compass.initialize()

    assert location.permission_requests == 0
    assert compass.lifecycle is Lifecycle.READY
    assert compass.state.location_status is LocationStatus.FIXED


def test_permission_request_exception_reports_denied(sensor):
    class BrokenLocation(StubLocation):
        def request_permission(self):
            raise RuntimeError("permission dialog crashed")

    compass = QiblaCompass(BrokenLocation(), sensor)
    compass.initialize()

    snapshot = compass.get_snapshot()
    assert snapshot.lifecycle is Lifecycle.FAILED
    assert snapshot.error_reason == "permission not granted"
    assert sensor.subscriptions == []


def test_ready_notification_survives_teardown_race(location, sensor):
    compass = QiblaCompass(location, sensor)
    real_lock = threading.Lock()

    class HookedLock:
        """Runs teardown right after the lock that committed READY is released."""
        fired = False

        def __enter__(self):
            real_lock.acquire()

        def __exit__(self, exc_type, exc, tb):
            ready = compass._state.lifecycle is Lifecycle.READY
            real_lock.release()
            if ready and not HookedLock.fired:
                HookedLock.fired = True
                compass.teardown()

    compass._lock = HookedLock()
    seen = []
    compass.add_listener(lambda snapshot: seen.append(snapshot.lifecycle))

    compass.initialize()

    assert seen == [Lifecycle.INITIALIZING, Lifecycle.IDLE, Lifecycle.READY]
    assert compass.lifecycle is Lifecycle.IDLE
    assert sensor.subscriptions[0].release_calls == 1
