"""
Orientation state owned by the compass orchestrator.

``OrientationState`` is a frozen dataclass: every sample produces a new
instance via ``with_heading`` so the five derived fields always change
together. ``CompassSnapshot`` is the consumer-facing view of it.
"""

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from qibla_compass.core.imu.heading_normalizer import device_heading
from qibla_compass.core.imu.sector_classifier import DirectionLabel, classify_sector


class Lifecycle(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class ErrorReason(str, Enum):
    """Terminal failures of one initialization attempt."""
    SENSOR_UNAVAILABLE = "sensor unavailable"
    LOCATION_PERMISSION_DENIED = "permission not granted"


class LocationStatus(str, Enum):
    """Tells a real 0 bearing apart from "never fetched" or "fetch failed"."""
    NOT_REQUESTED = "not_requested"
    FIXED = "fixed"
    FAILED = "failed"


def face_rotation(heading_deg: float) -> float:
    """Rotation that brings magnetic north to screen-up, in [0, 360)."""
    return (360 - heading_deg) % 360


def target_rotation(face_rotation_deg: float, bearing_deg: float) -> float:
    """Rotation of the target indicator; intentionally not wrapped."""
    return face_rotation_deg + bearing_deg


# Derived values for the pre-first-sample raw heading of 0
_DEFAULT_HEADING = device_heading(0.0)
_DEFAULT_FACE_ROTATION = face_rotation(_DEFAULT_HEADING)


@dataclass(frozen=True)
class OrientationState:
    """Current compass state (see module docstring)."""
    lifecycle: Lifecycle = Lifecycle.IDLE
    error_reason: Optional[ErrorReason] = None
    bearing_to_target: float = 0.0
    location_status: LocationStatus = LocationStatus.NOT_REQUESTED
    raw_heading: float = 0.0
    device_heading: float = _DEFAULT_HEADING
    direction_label: DirectionLabel = classify_sector(_DEFAULT_HEADING)
    face_rotation: float = _DEFAULT_FACE_ROTATION
    target_rotation: float = _DEFAULT_FACE_ROTATION
    has_sample: bool = False

    def with_heading(self, raw_deg: float) -> "OrientationState":
        """Return a copy with every heading-derived field recomputed."""
        heading = device_heading(raw_deg)
        rotation = face_rotation(heading)
        return replace(
            self,
            raw_heading=raw_deg,
            device_heading=heading,
            direction_label=classify_sector(heading),
            face_rotation=rotation,
            target_rotation=target_rotation(rotation, self.bearing_to_target),
            has_sample=True,
        )

    def with_bearing(self, bearing_deg: float) -> "OrientationState":
        """Return a copy with a new target bearing and matching target rotation."""
        return replace(
            self,
            bearing_to_target=bearing_deg,
            location_status=LocationStatus.FIXED,
            target_rotation=target_rotation(self.face_rotation, bearing_deg),
        )

    @property
    def is_loading(self) -> bool:
        return self.lifecycle in (Lifecycle.IDLE, Lifecycle.INITIALIZING)


@dataclass(frozen=True)
class CompassSnapshot:
    """Read-only record handed to consumers."""
    target_bearing_degrees: float
    direction_label: DirectionLabel
    heading_degrees: float
    face_rotation_degrees: float
    target_rotation_degrees: float
    error_reason: Optional[str]
    is_loading: bool
    lifecycle: Lifecycle
    location_status: LocationStatus
    has_heading: bool

    @classmethod
    def from_state(cls, state: OrientationState) -> "CompassSnapshot":
        return cls(
            target_bearing_degrees=state.bearing_to_target,
            direction_label=state.direction_label,
            heading_degrees=state.device_heading,
            face_rotation_degrees=state.face_rotation,
            target_rotation_degrees=state.target_rotation,
            error_reason=state.error_reason.value if state.error_reason else None,
            is_loading=state.is_loading,
            lifecycle=state.lifecycle,
            location_status=state.location_status,
            has_heading=state.has_sample,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["lifecycle"] = self.lifecycle.value
        data["location_status"] = self.location_status.value
        return data


def format_snapshot(snapshot: CompassSnapshot) -> str:
    """One-line text rendering of a snapshot."""
    if snapshot.is_loading:
        return f"[COMPASS] {snapshot.lifecycle.value}..."

    line = (
        f"[COMPASS] {snapshot.direction_label:<2} {snapshot.heading_degrees:>3.0f}° | "
        f"qibla {snapshot.target_bearing_degrees:.2f}° | "
        f"face {snapshot.face_rotation_degrees:.0f}° target {snapshot.target_rotation_degrees:.2f}°"
    )
    if snapshot.error_reason:
        line = f"[COMPASS] Error: {snapshot.error_reason}\n{line}"
    return line
