"""
Boundary contracts for the location and magnetometer collaborators.

The orchestrator only depends on these protocols. Real platform bindings and
``mock_providers`` both satisfy them structurally.
"""

from typing import Callable, Optional, Protocol

from qibla_compass.core.geo.bearing_calculator import GeoPoint
from qibla_compass.core.imu.heading_normalizer import MagneticSample

SampleCallback = Callable[[MagneticSample], None]


class LocationUnavailableError(RuntimeError):
    """A one-shot position fix could not be obtained."""


class SubscriptionHandle(Protocol):
    def release(self) -> None:
        """Stop sample delivery. Must be safe to call more than once."""


class LocationProvider(Protocol):
    def is_permission_granted(self) -> bool:
        ...

    def request_permission(self) -> bool:
        """Ask for location permission; True when granted."""

    def get_current_position(self) -> Optional[GeoPoint]:
        """
        One-shot position fix.

        May return None or raise (e.g. LocationUnavailableError) when no fix
        is obtainable.
        """


class SensorProvider(Protocol):
    def is_available(self) -> bool:
        ...

    def subscribe(self, interval_ms: int, callback: SampleCallback) -> SubscriptionHandle:
        """Deliver magnetometer samples to ``callback`` every ``interval_ms``."""
