"""
Great-circle bearing from an observer to the Kaaba.

Uses the closed-form forward-azimuth formula on a spherical Earth. The result
is signed, in (-180, 180], measured clockwise from true north. Callers that
need a heading-compatible value must normalize it themselves.

Usage:
    from qibla_compass.core.geo.bearing_calculator import GeoPoint, calculate_bearing

    bearing = calculate_bearing(GeoPoint(latitude=40.4168, longitude=-3.7038))
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair in degrees."""
    latitude: float
    longitude: float


KAABA = GeoPoint(latitude=21.4225, longitude=39.8264)

# Observer closer than this (degrees) to the target has no defined bearing
_COINCIDENT_TOLERANCE_DEG = 1e-9


def calculate_bearing(observer: GeoPoint, target: GeoPoint = KAABA) -> float:
    """
    Initial great-circle bearing from observer to target.

    Args:
        observer: Observer position in degrees
        target: Target position in degrees (defaults to the Kaaba)

    Returns:
        Bearing in degrees, clockwise from true north, in (-180, 180].
        Returns 0.0 when the observer stands on the target.
    """
    if (
        np.isclose(observer.latitude, target.latitude, rtol=0.0, atol=_COINCIDENT_TOLERANCE_DEG)
        and np.isclose(observer.longitude, target.longitude, rtol=0.0, atol=_COINCIDENT_TOLERANCE_DEG)
    ):
        return 0.0

    phi = np.radians(observer.latitude)
    phi_target = np.radians(target.latitude)
    delta_lambda = np.radians(target.longitude) - np.radians(observer.longitude)

    bearing_rad = np.arctan2(
        np.sin(delta_lambda),
        np.cos(phi) * np.tan(phi_target) - np.sin(phi) * np.cos(delta_lambda),
    )
    return float(np.degrees(bearing_rad))
