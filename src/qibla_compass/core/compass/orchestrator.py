"""
Qibla compass orchestrator.

Owns the compass lifecycle and turns provider input into consumer snapshots.

Lifecycle:
    IDLE -> INITIALIZING -> READY | FAILED
    teardown() returns to IDLE from any state.

Initialization sequence:
    1. Magnetometer availability      (unavailable -> FAILED "sensor unavailable")
    2. Location permission            (denied -> FAILED "permission not granted")
    3. One-shot location fix          (failure is logged and swallowed, bearing stays 0)
    4. Magnetometer subscription at 100 ms -> READY

Step 3 failing does not stop step 4: once the sensor and permission checks
pass, the compass always reaches READY. ``location_status`` on the state
records whether the bearing came from a real fix.

Usage:
    compass = QiblaCompass(location_provider, sensor_provider)
    compass.add_listener(lambda snapshot: print(snapshot.direction_label))
    compass.initialize()
    ...
    compass.teardown()
"""

import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional

from qibla_compass.core.geo.bearing_calculator import calculate_bearing
from qibla_compass.core.hardware.providers import (
    LocationProvider,
    SensorProvider,
    SubscriptionHandle,
)
from qibla_compass.core.imu.heading_normalizer import MagneticSample, raw_heading
from qibla_compass.core.imu.orientation_state import (
    CompassSnapshot,
    ErrorReason,
    Lifecycle,
    LocationStatus,
    OrientationState,
)

log = logging.getLogger("QiblaCompass")

SENSOR_UPDATE_INTERVAL_MS = 100

SnapshotListener = Callable[[CompassSnapshot], None]


class QiblaCompass:
    """
    Orchestrates location, magnetometer and the heading computations.

    Providers are injected; the compass does not create them. All state lives
    in one frozen ``OrientationState`` that is swapped under ``_lock``, so a
    reader never sees a heading from one sample and a label from another.

    Attributes:
        location_provider: One-shot position source
        sensor_provider: Magnetometer sample source
        telemetry: Optional TelemetryLogger
        samples_accepted: Samples applied while READY
        samples_ignored: Samples received in any other state
    """

    def __init__(
        self,
        location_provider: LocationProvider,
        sensor_provider: SensorProvider,
        telemetry=None,
    ) -> None:
        self.location_provider = location_provider
        self.sensor_provider = sensor_provider
        self.telemetry = telemetry

        self._lock = threading.Lock()
        self._state = OrientationState()
        self._subscription: Optional[SubscriptionHandle] = None
        # Bumped by initialize()/teardown(); stale initialization steps are dropped
        self._cycle = 0
        self._listeners: List[SnapshotListener] = []

        self.samples_accepted = 0
        self.samples_ignored = 0

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrientationState:
        with self._lock:
            return self._state

    @property
    def lifecycle(self) -> Lifecycle:
        return self.state.lifecycle

    @property
    def has_subscription(self) -> bool:
        with self._lock:
            return self._subscription is not None

    def get_snapshot(self) -> CompassSnapshot:
        return CompassSnapshot.from_state(self.state)

    def add_listener(self, listener: SnapshotListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def initialize(self) -> bool:
        """
        Run the initialization sequence.

        Returns:
            False if rejected because another initialization is in progress,
            True otherwise. The outcome itself is in ``state``.
        """
        with self._lock:
            if self._state.lifecycle is Lifecycle.INITIALIZING:
                log.warning("[COMPASS] initialize() rejected: initialization already in progress")
                return False
            self._cycle += 1
            cycle = self._cycle
            previous = self._subscription
            self._subscription = None
            self._state = OrientationState(lifecycle=Lifecycle.INITIALIZING)
            initializing = CompassSnapshot.from_state(self._state)

        self._release(previous)
        self._lifecycle_changed(initializing)

        if not self._sensor_available():
            self._fail(cycle, ErrorReason.SENSOR_UNAVAILABLE)
            return True

        if not self._permission_granted():
            self._fail(cycle, ErrorReason.LOCATION_PERMISSION_DENIED)
            return True

        self._fetch_bearing(cycle)
        if not self._is_current(cycle):
            return True

        try:
            subscription = self.sensor_provider.subscribe(
                SENSOR_UPDATE_INTERVAL_MS,
                lambda sample: self._apply_sample(cycle, sample),
            )
        except Exception:
            log.exception("[COMPASS] Magnetometer subscription failed")
            self._fail(cycle, ErrorReason.SENSOR_UNAVAILABLE)
            return True

        with self._lock:
            current = cycle == self._cycle
            if current:
                self._subscription = subscription
                self._state = replace(self._state, lifecycle=Lifecycle.READY)
                ready = CompassSnapshot.from_state(self._state)

        if not current:
            # torn down while subscribing
            self._release(subscription)
            return True

        self._lifecycle_changed(ready)
        return True

    def reinitialize(self) -> bool:
        """teardown() followed by initialize(); rejected while initializing."""
        with self._lock:
            if self._state.lifecycle is Lifecycle.INITIALIZING:
                log.warning("[COMPASS] reinitialize() rejected: initialization already in progress")
                return False

        self.teardown()
        return self.initialize()

    def teardown(self) -> None:
        """Release the magnetometer subscription and return to IDLE. Idempotent."""
        with self._lock:
            self._cycle += 1
            subscription = self._subscription
            self._subscription = None
            changed = self._state.lifecycle is not Lifecycle.IDLE
            self._state = OrientationState()
            idle = CompassSnapshot.from_state(self._state)

        self._release(subscription)
        if changed:
            self._lifecycle_changed(idle)

    def __enter__(self) -> "QiblaCompass":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()

    # ------------------------------------------------------------------
    # Sensor updates
    # ------------------------------------------------------------------

    def on_sample(self, sample: MagneticSample) -> None:
        """Apply one magnetometer sample to the current cycle. Ignored unless READY."""
        self._apply_sample(None, sample)

    def _apply_sample(self, cycle: Optional[int], sample: MagneticSample) -> None:
        """
        Apply ``sample`` if it belongs to ``cycle``.

        Subscriptions deliver through a callback bound to the cycle that
        opened them, so a sample queued on a released handle is dropped.
        ``cycle=None`` means "whatever cycle is current".
        """
        raw_deg = raw_heading(sample)

        with self._lock:
            stale = cycle is not None and cycle != self._cycle
            if stale or self._state.lifecycle is not Lifecycle.READY:
                self.samples_ignored += 1
                return
            self._state = self._state.with_heading(raw_deg)
            self.samples_accepted += 1
            snapshot = CompassSnapshot.from_state(self._state)

        log.debug(
            f"[COMPASS] raw={raw_deg:.0f} heading={snapshot.heading_degrees:.0f} "
            f"{snapshot.direction_label} target={snapshot.target_rotation_degrees:.2f}"
        )
        if self.telemetry:
            self.telemetry.log_heading(snapshot)
        self._notify(snapshot)

    # ------------------------------------------------------------------
    # Initialization steps
    # ------------------------------------------------------------------

    def _sensor_available(self) -> bool:
        try:
            return bool(self.sensor_provider.is_available())
        except Exception:
            log.exception("[COMPASS] Magnetometer availability check failed")
            return False

    def _permission_granted(self) -> bool:
        try:
            if self.location_provider.is_permission_granted():
                return True
            return bool(self.location_provider.request_permission())
        except Exception:
            log.exception("[COMPASS] Location permission request failed")
            return False

    def _fetch_bearing(self, cycle: int) -> None:
        try:
            position = self.location_provider.get_current_position()
        except Exception as err:
            log.warning(f"[COMPASS] Location fix failed, bearing stays 0: {err}")
            position = None

        if position is None:
            self._commit(cycle, lambda state: replace(state, location_status=LocationStatus.FAILED))
            if self.telemetry:
                self.telemetry.log_error("location_fix", "Location fix failed, bearing stays 0")
            return

        bearing = calculate_bearing(position)
        if self._commit(cycle, lambda state: state.with_bearing(bearing)) is not None:
            log.info(
                f"[COMPASS] Location {position.latitude:.4f}, {position.longitude:.4f} "
                f"-> qibla bearing {bearing:.2f}°"
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_current(self, cycle: int) -> bool:
        with self._lock:
            return cycle == self._cycle

    def _commit(
        self, cycle: int, update: Callable[[OrientationState], OrientationState]
    ) -> Optional[CompassSnapshot]:
        """
        Apply ``update`` only if ``cycle`` is still the running initialization.

        Returns the snapshot of the committed state, taken under the lock, or
        None when the cycle is stale.
        """
        with self._lock:
            if cycle != self._cycle:
                return None
            self._state = update(self._state)
            return CompassSnapshot.from_state(self._state)

    def _fail(self, cycle: int, reason: ErrorReason) -> None:
        snapshot = self._commit(
            cycle,
            lambda state: replace(state, lifecycle=Lifecycle.FAILED, error_reason=reason),
        )
        if snapshot is not None:
            self._lifecycle_changed(snapshot)

    def _release(self, subscription: Optional[SubscriptionHandle]) -> None:
        if subscription is None:
            return
        try:
            subscription.release()
        except Exception:
            log.exception("[COMPASS] Releasing magnetometer subscription failed")

    def _lifecycle_changed(self, snapshot: CompassSnapshot) -> None:
        if snapshot.error_reason:
            log.error(f"[COMPASS] {snapshot.lifecycle.value}: {snapshot.error_reason}")
        else:
            log.info(f"[COMPASS] {snapshot.lifecycle.value}")

        if self.telemetry:
            self.telemetry.log_lifecycle(snapshot.lifecycle.value, snapshot.error_reason)
        self._notify(snapshot)

    def _notify(self, snapshot: CompassSnapshot) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                log.exception("[COMPASS] Snapshot listener failed")
