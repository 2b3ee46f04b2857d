"""
Mock location and magnetometer providers for testing without hardware.

This module provides drop-in replacements for the platform location service
and magnetometer so the compass can be developed and tested on any machine:
1. ``MockLocationProvider``: fixed position, configurable permission outcome
   and an optional failing fix
2. ``MockMagnetometer``: synthetic horizontal field delivered on a background
   thread at the requested interval

Operating modes (MockMagnetometer):
- 'static': field points at a fixed angle (plus noise)
- 'rotating': field turns at a constant angular speed, as if the user spins

Usage:
    location = MockLocationProvider()
    sensor = MockMagnetometer(MockSensorConfig(mode='static', heading_deg=90.0))
    handle = sensor.subscribe(100, compass.on_sample)
    ...
    handle.release()
"""

import logging
import threading
import time
from typing import List, Optional

import numpy as np

from qibla_compass.core.geo.bearing_calculator import GeoPoint
from qibla_compass.core.hardware.providers import LocationUnavailableError, SampleCallback
from qibla_compass.core.imu.heading_normalizer import MagneticSample
from qibla_compass.utils.config_sections import (
    MockLocationConfig,
    MockSensorConfig,
    load_mock_location_config,
    load_mock_sensor_config,
)

log = logging.getLogger("MockProviders")

VALID_MODES = ("static", "rotating")


class MockLocationProvider:
    """Location provider returning a configured position."""

    def __init__(self, config: Optional[MockLocationConfig] = None) -> None:
        self.config = config or load_mock_location_config()
        self._permission_granted = False
        self.permission_requests = 0
        self.position_requests = 0

    def is_permission_granted(self) -> bool:
        return self._permission_granted

    def request_permission(self) -> bool:
        self.permission_requests += 1
        self._permission_granted = self.config.permission_granted
        return self._permission_granted

    def get_current_position(self) -> GeoPoint:
        self.position_requests += 1
        if self.config.fail_fix:
            raise LocationUnavailableError("Mock location fix unavailable")
        return GeoPoint(latitude=self.config.latitude, longitude=self.config.longitude)


class MockSubscription:
    """Handle for one magnetometer listener; owns its delivery thread."""

    def __init__(self, sensor: "MockMagnetometer", callback: SampleCallback, interval_ms: int) -> None:
        self._sensor = sensor
        self._callback = callback
        self.interval_ms = interval_ms
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.samples_delivered = 0

    @property
    def active(self) -> bool:
        return not self._stop_event.is_set()

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="MockMagnetometer", daemon=True)
        self._thread.start()

    def deliver(self, sample: MagneticSample) -> None:
        if not self.active:
            return
        self.samples_delivered += 1
        self._callback(sample)

    def release(self) -> None:
        """Stop delivery. Idempotent."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        self._sensor._detach(self)

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _run(self) -> None:
        interval_s = self.interval_ms / 1000.0
        start = time.time()
        while not self._stop_event.wait(interval_s):
            try:
                self.deliver(self._sensor.sample_at(time.time() - start))
            except Exception:
                log.exception("[MOCK] Sample callback failed")


class MockMagnetometer:
    """
    Synthetic magnetometer.

    See module docstring for operating modes. ``emit`` pushes a sample to every
    live subscriber synchronously, which tests use instead of the timer thread
    (pass ``autostart=False``).
    """

    def __init__(self, config: Optional[MockSensorConfig] = None, autostart: bool = True) -> None:
        self.config = config or load_mock_sensor_config()
        if self.config.mode not in VALID_MODES:
            raise ValueError(f"Unknown mode: {self.config.mode}")

        self.autostart = autostart
        self._rng = np.random.default_rng(self.config.seed)
        self._lock = threading.Lock()
        self._subscriptions: List[MockSubscription] = []
        self.subscribe_calls = 0

        print(f"[MOCK] Magnetometer ready in '{self.config.mode}' mode "
              f"(available={self.config.available})")

    def is_available(self) -> bool:
        return self.config.available

    def subscribe(self, interval_ms: int, callback: SampleCallback) -> MockSubscription:
        if not self.config.available:
            raise RuntimeError("Mock magnetometer is not available")

        subscription = MockSubscription(self, callback, interval_ms)
        with self._lock:
            self._subscriptions.append(subscription)
            self.subscribe_calls += 1

        if self.autostart:
            subscription.start()
        log.debug(f"[MOCK] Subscribed at {interval_ms} ms")
        return subscription

    @property
    def active_subscriptions(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def emit(self, sample: MagneticSample) -> None:
        """Deliver ``sample`` to all live subscribers on the calling thread."""
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.deliver(sample)

    def sample_at(self, elapsed_sec: float) -> MagneticSample:
        """Field vector ``elapsed_sec`` seconds after subscription."""
        angle_deg = self.config.heading_deg
        if self.config.mode == "rotating":
            angle_deg += self.config.rotation_deg_per_sec * elapsed_sec

        angle_rad = np.radians(angle_deg % 360.0)
        x = self.config.field_strength_ut * np.cos(angle_rad)
        y = self.config.field_strength_ut * np.sin(angle_rad)

        if self.config.noise_ut > 0:
            noise_x, noise_y = self._rng.normal(0.0, self.config.noise_ut, size=2)
            x += noise_x
            y += noise_y

        return MagneticSample(x=float(x), y=float(y))

    def _detach(self, subscription: MockSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
